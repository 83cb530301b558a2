"""Filesystem framework: filesystem drivers, mounted volumes and directory entries."""

from __future__ import annotations

import contextlib
import logging
from typing import Optional

from kernelkit.device import PAGE_SIZE, Device
from kernelkit.errors import (
    InvalidRequestError,
    KernelError,
    NotFoundError,
    NotImplementedOperationError,
)

log = logging.getLogger(__name__)


def _quiet_close(dirent: "Dirent") -> None:
    with contextlib.suppress(NotImplementedOperationError):
        dirent.close()


class FileSystem:
    """A filesystem driver such as "cdromfs" or "diskfs"."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def open_volume(self, device: Device) -> "Volume":
        """Mount the filesystem stored on device."""
        raise NotImplementedOperationError(f"{self.name}: volume open not supported")

    def format(self, device: Device) -> None:
        """Write an empty filesystem onto device."""
        raise NotImplementedOperationError(f"{self.name}: format not supported")


class Volume:
    """An instance of a filesystem stored on a block device."""

    def __init__(
        self,
        fs: FileSystem,
        device: Optional[Device],
        block_size: Optional[int] = None,
    ) -> None:
        if block_size is None:
            if device is None:
                raise ValueError("a volume needs a device or an explicit block size")
            block_size = device.block_size
        if block_size < 1:
            raise ValueError("block size must be positive")
        self.fs = fs
        self.device = device
        self.block_size = block_size

    def root(self) -> "Dirent":
        """Return the root directory of the volume."""
        raise NotImplementedOperationError(f"{self.fs.name}: volume root not supported")

    def close(self) -> None:
        """Release the volume."""
        raise NotImplementedOperationError(f"{self.fs.name}: volume close not supported")


class Dirent:
    """One entry in the filesystem tree: a file or a directory.

    Filesystems override the block-level operations; reading, writing,
    path traversal and recursive copying are built on top of them.
    """

    def __init__(self, volume: Volume, size: int = 0, isdir: bool = False) -> None:
        self.volume = volume
        self.size = size
        self.isdir = isdir

    def _unsupported(self, what: str) -> NotImplementedOperationError:
        return NotImplementedOperationError(f"{self.volume.fs.name}: {what} not supported")

    def read_block(self, blockno: int) -> bytes:
        """Return one whole block of the entry's data."""
        raise self._unsupported("read_block")

    def write_block(self, data: bytes, blockno: int) -> Optional[int]:
        """Store one whole block of the entry's data; may return bytes written."""
        raise self._unsupported("write_block")

    def lookup(self, name: str) -> "Dirent":
        """Return the entry called name inside this directory."""
        raise self._unsupported("lookup")

    def mkdir(self, name: str) -> "Dirent":
        raise self._unsupported("mkdir")

    def mkfile(self, name: str) -> "Dirent":
        raise self._unsupported("mkfile")

    def list(self) -> list[str]:
        """Return the names held in this directory."""
        raise self._unsupported("list")

    def remove(self, name: str) -> None:
        raise self._unsupported("remove")

    def resize(self, size: int) -> None:
        raise self._unsupported("resize")

    def close(self) -> None:
        raise self._unsupported("close")

    def child(self, name: str) -> "Dirent":
        """Look up name, where "." means this directory itself."""
        if name == ".":
            return self
        return self.lookup(name)

    def traverse(self, path: str) -> "Dirent":
        """Follow a slash-separated path starting from this entry."""
        d: Dirent = self
        for part in filter(None, path.split("/")):
            try:
                n = d.child(part)
            except BaseException:
                if d is not self:
                    _quiet_close(d)
                raise
            if d is not self and n is not d:
                _quiet_close(d)
            d = n
        return d

    def _fetch(self, blockno: int) -> bytes:
        block = self.read_block(blockno)
        if len(block) != self.volume.block_size:
            raise KernelError(f"short read of block {blockno}")
        return block

    def _store(self, data: bytes, blockno: int) -> None:
        written = self.write_block(data, blockno)
        if written is not None and written != self.volume.block_size:
            raise KernelError(f"short write of block {blockno}")

    def read(self, length: int, offset: int = 0) -> bytes:
        """Read up to length bytes at offset; stops early after a failure once data was read."""
        if length < 0 or offset < 0:
            raise InvalidRequestError("length and offset must not be negative")
        if offset > self.size:
            return b""
        length = min(length, self.size - offset)
        bs = self.volume.block_size
        out = bytearray()
        while length > 0:
            blocknum, within = divmod(offset, bs)
            try:
                block = self._fetch(blocknum)
            except KernelError:
                if not out:
                    raise
                break
            actual = min(bs - within, length)
            out += block[within:within + actual]
            length -= actual
            offset += actual
        return bytes(out)

    def write(self, data: bytes, offset: int = 0) -> int:
        """Write data at offset, growing the entry if needed; return bytes written."""
        if offset < 0:
            raise InvalidRequestError("offset must not be negative")
        data = bytes(data)
        bs = self.volume.block_size
        if offset + len(data) > self.size:
            self.resize(offset + len(data))
        pos = 0
        while pos < len(data):
            blocknum, within = divmod(offset, bs)
            remaining = len(data) - pos
            try:
                if within == 0 and remaining >= bs:
                    actual = bs
                    self._store(data[pos:pos + bs], blocknum)
                else:
                    block = bytearray(self._fetch(blocknum))
                    actual = min(bs - within, remaining)
                    block[within:within + actual] = data[pos:pos + actual]
                    self._store(bytes(block), blocknum)
            except KernelError:
                if pos == 0:
                    raise
                break
            pos += actual
            offset += actual
        return pos

    def copy_to(self, dst: "Dirent") -> list[str]:
        """Copy this directory's contents recursively into dst; return what was copied."""
        return self._copy_into(dst, 0)

    def _copy_into(self, dst: "Dirent", depth: int) -> list[str]:
        names = self.list()
        if not names:
            raise NotFoundError("nothing to copy")
        copied: list[str] = []
        for name in names:
            if name in (".", ".."):
                continue
            try:
                src = self.child(name)
            except KernelError:
                log.warning("couldn't lookup %s in directory!", name)
                continue
            prefix = ">" * depth
            if src.isdir:
                copied.append(f"{prefix}{name} (dir)")
                try:
                    new_dst = dst.mkdir(name)
                except KernelError:
                    log.warning("couldn't create %s!", name)
                    _quiet_close(src)
                    continue
                try:
                    copied.extend(src._copy_into(new_dst, depth + 1))
                finally:
                    _quiet_close(new_dst)
                    _quiet_close(src)
            else:
                copied.append(f"{prefix}{name} ({src.size} bytes)")
                try:
                    new_dst = dst.mkfile(name)
                except KernelError:
                    log.warning("couldn't create %s!", name)
                    _quiet_close(src)
                    continue
                try:
                    offset = 0
                    while offset < src.size:
                        chunk = min(PAGE_SIZE, src.size - offset)
                        new_dst.write(src.read(chunk, offset), offset)
                        offset += chunk
                finally:
                    _quiet_close(new_dst)
                    _quiet_close(src)
        return copied


class FileSystemRegistry:
    """Registered filesystem drivers; the most recent wins a name clash."""

    def __init__(self) -> None:
        self._filesystems: list[FileSystem] = []

    def register(self, fs: FileSystem) -> None:
        self._filesystems.insert(0, fs)

    def lookup(self, name: str) -> FileSystem:
        for fs in self._filesystems:
            if fs.name == name:
                return fs
        raise NotFoundError(f"no filesystem named {name!r}")