[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kernelkit"
version = "0.1.0"
description = "Teaching-kernel building blocks in pure Python: block devices, a block cache, a simple disk filesystem, a chunk heap, event queues and a software framebuffer."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "filesystem",
    "block-device",
    "block-cache",
    "allocator",
    "elf",
    "operating-systems",
    "education",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kernelkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
