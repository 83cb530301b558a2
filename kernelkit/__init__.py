"""Building blocks of a small teaching kernel: lists, hashing, a heap, devices, a block cache, filesystems, ELF loading, events and graphics."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "linkedlist",
    "hashset",
    "clock",
    "kmalloc",
    "validate",
    "eventqueue",
    "device",
    "bcache",
    "bitmap",
    "graphics",
    "fs",
    "elf",
    "diskfs",
]