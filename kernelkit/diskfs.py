"""Simple inode-based disk filesystem with a bitmap allocator."""

from __future__ import annotations

import enum
import logging
import struct
from dataclasses import dataclass, field
from typing import Iterator, Optional

from kernelkit.bcache import BlockCache
from kernelkit.device import Device
from kernelkit.errors import (
    InvalidRequestError,
    NotADirectoryError_,
    NotEmptyError,
    NotFoundError,
    OutOfSpaceError,
)
from kernelkit.fs import Dirent, FileSystem, Volume

log = logging.getLogger(__name__)

DISKFS_MAGIC = 0xABCD4321
DISKFS_BLOCK_SIZE = 4096
DISKFS_DIRECT_POINTERS = 6
NAME_MAX = 26

_SUPERBLOCK = struct.Struct("<8I")
_INODE = struct.Struct("<9I")
_ITEM = struct.Struct("<IBB26s")
_POINTER = struct.Struct("<I")

INODE_SIZE = _INODE.size
ITEM_SIZE = _ITEM.size
INODES_PER_BLOCK = DISKFS_BLOCK_SIZE // INODE_SIZE
ITEMS_PER_BLOCK = DISKFS_BLOCK_SIZE // ITEM_SIZE
POINTERS_PER_BLOCK = DISKFS_BLOCK_SIZE // _POINTER.size
BITS_PER_BITMAP_BLOCK = DISKFS_BLOCK_SIZE * 8


class ItemType(enum.IntEnum):
    BLANK = 0
    FILE = 1
    DIR = 2


@dataclass
class Superblock:
    """The layout record stored in block zero."""

    magic: int
    block_size: int
    inode_start: int
    inode_blocks: int
    bitmap_start: int
    bitmap_blocks: int
    data_start: int
    data_blocks: int

    def pack(self) -> bytes:
        return _SUPERBLOCK.pack(
            self.magic, self.block_size, self.inode_start, self.inode_blocks,
            self.bitmap_start, self.bitmap_blocks, self.data_start, self.data_blocks,
        )

    @classmethod
    def unpack(cls, data: bytes) -> "Superblock":
        return cls(*_SUPERBLOCK.unpack_from(data))


@dataclass
class Inode:
    """Size and block pointers of one file or directory."""

    inuse: int = 0
    size: int = 0
    direct: list[int] = field(default_factory=lambda: [0] * DISKFS_DIRECT_POINTERS)
    indirect: int = 0

    def pack(self) -> bytes:
        return _INODE.pack(self.inuse, self.size, *self.direct, self.indirect)

    @classmethod
    def unpack(cls, data: bytes, offset: int = 0) -> "Inode":
        inuse, size, *rest = _INODE.unpack_from(data, offset)
        return cls(inuse, size, list(rest[:DISKFS_DIRECT_POINTERS]), rest[DISKFS_DIRECT_POINTERS])


@dataclass
class Item:
    """One directory entry: a name bound to an inode number."""

    inumber: int = 0
    type: ItemType = ItemType.BLANK
    name: str = ""

    def pack(self) -> bytes:
        raw = self.name.encode("utf-8")
        if len(raw) > NAME_MAX:
            raise InvalidRequestError(f"name {self.name!r} longer than {NAME_MAX} bytes")
        return _ITEM.pack(self.inumber, int(self.type), len(raw), raw)

    @classmethod
    def unpack(cls, data: bytes, offset: int = 0) -> "Item":
        inumber, kind, length, raw = _ITEM.unpack_from(data, offset)
        name = raw[:min(length, NAME_MAX)].decode("utf-8", errors="replace")
        return cls(inumber, ItemType(kind), name)


def _check_device(device: Device) -> None:
    if device.block_size != DISKFS_BLOCK_SIZE:
        raise InvalidRequestError(
            f"diskfs needs {DISKFS_BLOCK_SIZE}-byte blocks, device has {device.block_size}"
        )


def _check_name(name: str) -> None:
    length = len(name.encode("utf-8"))
    if not 1 <= length <= NAME_MAX:
        raise InvalidRequestError(f"invalid name {name!r}")


class DiskFileSystem(FileSystem):
    """The "diskfs" driver; all block traffic goes through a shared cache."""

    def __init__(self, cache: Optional[BlockCache] = None) -> None:
        super().__init__("diskfs")
        self.cache = cache if cache is not None else BlockCache()

    def open_volume(self, device: Device) -> "DiskVolume":
        """Mount the diskfs stored on device."""
        _check_device(device)
        log.info("diskfs: opening device %s unit %d", device.name, device.unit)
        sb = Superblock.unpack(self.cache.read_block(device, 0))
        if sb.magic != DISKFS_MAGIC:
            raise NotFoundError("diskfs: no filesystem found")
        log.info(
            "diskfs: %d bitmap blocks, %d inode blocks, %d data blocks",
            sb.bitmap_blocks, sb.inode_blocks, sb.data_blocks,
        )
        return DiskVolume(self, device, sb)

    def format(self, device: Device) -> Superblock:
        """Write an empty filesystem holding only the root directory."""
        _check_device(device)
        log.info("diskfs: formatting device %s unit %d", device.name, device.unit)
        inode_blocks = 1024 // INODE_SIZE
        remaining = device.nblocks - 1 - inode_blocks
        bitmap_blocks = 1 + max(remaining, 0) // BITS_PER_BITMAP_BLOCK
        data_blocks = remaining - bitmap_blocks
        if data_blocks < 2:
            raise InvalidRequestError("device too small for diskfs")
        sb = Superblock(
            magic=DISKFS_MAGIC,
            block_size=DISKFS_BLOCK_SIZE,
            inode_start=1,
            inode_blocks=inode_blocks,
            bitmap_start=1 + inode_blocks,
            bitmap_blocks=bitmap_blocks,
            data_start=1 + inode_blocks + bitmap_blocks,
            data_blocks=data_blocks,
        )

        def put(block: int, content: bytes = b"") -> None:
            self.cache.write_block(device, content.ljust(DISKFS_BLOCK_SIZE, b"\0"), block)

        put(0, sb.pack())
        for i in reversed(range(sb.inode_blocks)):
            put(sb.inode_start + i)
        for i in reversed(range(sb.bitmap_blocks)):
            put(sb.bitmap_start + i)

        # Data blocks zero and one are in use from the start.
        put(sb.bitmap_start, b"\x03")

        root = Inode(inuse=1, size=ITEM_SIZE)
        root.direct[0] = 1
        put(sb.inode_start, root.pack())
        put(sb.data_start + 1, Item(0, ItemType.DIR, ".").pack())

        self.cache.flush_device(device)
        return sb


class DiskVolume(Volume):
    """A mounted diskfs volume."""

    def __init__(self, fs: DiskFileSystem, device: Device, superblock: Superblock) -> None:
        super().__init__(fs, device)
        self.fs: DiskFileSystem = fs
        self.superblock = superblock

    def root(self) -> "DiskDirent":
        return DiskDirent(self, 0, True)

    def close(self) -> None:
        """Write every dirty block of the device back."""
        self.fs.cache.flush_device(self.device)

    def _read(self, start: int, limit: int, blockno: int, what: str) -> bytes:
        if not 0 <= blockno < limit:
            raise OutOfSpaceError(f"{what} block {blockno} out of range")
        return self.fs.cache.read_block(self.device, start + blockno)

    def _write(self, start: int, limit: int, blockno: int, data: bytes, what: str) -> None:
        if not 0 <= blockno < limit:
            raise OutOfSpaceError(f"{what} block {blockno} out of range")
        self.fs.cache.write_block(self.device, bytes(data), start + blockno)

    def read_data(self, blockno: int) -> bytes:
        sb = self.superblock
        return self._read(sb.data_start, sb.data_blocks, blockno, "data")

    def write_data(self, blockno: int, data: bytes) -> None:
        sb = self.superblock
        self._write(sb.data_start, sb.data_blocks, blockno, data, "data")

    def _read_bitmap(self, blockno: int) -> bytearray:
        sb = self.superblock
        return bytearray(self._read(sb.bitmap_start, sb.bitmap_blocks, blockno, "bitmap"))

    def _write_bitmap(self, blockno: int, data: bytes) -> None:
        sb = self.superblock
        self._write(sb.bitmap_start, sb.bitmap_blocks, blockno, data, "bitmap")

    def _read_inodes(self, blockno: int) -> bytearray:
        sb = self.superblock
        return bytearray(self._read(sb.inode_start, sb.inode_blocks, blockno, "inode"))

    def _write_inodes(self, blockno: int, data: bytes) -> None:
        sb = self.superblock
        self._write(sb.inode_start, sb.inode_blocks, blockno, data, "inode")

    def alloc_block(self) -> int:
        """Claim a free data block and return its number."""
        for i in range(self.superblock.bitmap_blocks):
            bitmap = self._read_bitmap(i)
            for j, byte in enumerate(bitmap):
                if byte == 0xFF:
                    continue
                for k in range(8):
                    if byte & (1 << k):
                        continue
                    blockno = i * BITS_PER_BITMAP_BLOCK + j * 8 + k
                    if blockno == 0:
                        continue
                    if blockno >= self.superblock.data_blocks:
                        log.warning("diskfs: warning: out of space!")
                        raise OutOfSpaceError("diskfs: out of space")
                    bitmap[j] |= 1 << k
                    self._write_bitmap(i, bitmap)
                    return blockno
        log.warning("diskfs: warning: out of space!")
        raise OutOfSpaceError("diskfs: out of space")

    def free_block(self, blockno: int) -> None:
        block, bit = divmod(blockno, BITS_PER_BITMAP_BLOCK)
        bitmap = self._read_bitmap(block)
        bitmap[bit // 8] &= ~(1 << (bit % 8)) & 0xFF
        self._write_bitmap(block, bitmap)

    def alloc_inumber(self) -> int:
        """Claim an unused inode and return its number."""
        for i in range(self.superblock.inode_blocks):
            block = self._read_inodes(i)
            for j in range(INODES_PER_BLOCK):
                inode = Inode.unpack(block, j * INODE_SIZE)
                if not inode.inuse:
                    inode.inuse = 1
                    block[j * INODE_SIZE:(j + 1) * INODE_SIZE] = inode.pack()
                    self._write_inodes(i, block)
                    return i * INODES_PER_BLOCK + j
        log.warning("diskfs: warning: out of inodes!")
        raise OutOfSpaceError("diskfs: out of inodes")

    def load_inode(self, inumber: int) -> Inode:
        block, position = divmod(inumber, INODES_PER_BLOCK)
        return Inode.unpack(self._read_inodes(block), position * INODE_SIZE)

    def save_inode(self, inumber: int, inode: Inode) -> None:
        block, position = divmod(inumber, INODES_PER_BLOCK)
        data = self._read_inodes(block)
        data[position * INODE_SIZE:(position + 1) * INODE_SIZE] = inode.pack()
        self._write_inodes(block, data)

    def delete_inode(self, inumber: int) -> None:
        """Release every data block of an inode, then the inode itself."""
        inode = self.load_inode(inumber)
        for pointer in inode.direct:
            if pointer:
                self.free_block(pointer)
        if inode.indirect:
            table = self.read_data(inode.indirect)
            for (pointer,) in _POINTER.iter_unpack(table):
                if pointer:
                    self.free_block(pointer)
            self.free_block(inode.indirect)
        self.save_inode(inumber, Inode())


class DiskDirent(Dirent):
    """A file or directory on a diskfs volume."""

    def __init__(self, volume: DiskVolume, inumber: int, isdir: bool) -> None:
        self.inode = volume.load_inode(inumber)
        super().__init__(volume, self.inode.size, isdir)
        self.volume: DiskVolume = volume
        self.inumber = inumber

    def __repr__(self) -> str:
        return f"DiskDirent(inumber={self.inumber}, size={self.size}, isdir={self.isdir})"

    def _nblocks(self) -> int:
        return -(-self.size // DISKFS_BLOCK_SIZE)

    def _pointer(self, blockno: int) -> int:
        if blockno < DISKFS_DIRECT_POINTERS:
            return self.inode.direct[blockno]
        index = blockno - DISKFS_DIRECT_POINTERS
        if index >= POINTERS_PER_BLOCK:
            raise OutOfSpaceError(f"block {blockno} beyond the largest file")
        if self.inode.indirect == 0:
            return 0
        return _POINTER.unpack_from(self.volume.read_data(self.inode.indirect), index * 4)[0]

    def _ensure(self, blockno: int) -> int:
        vol, inode = self.volume, self.inode
        if blockno < DISKFS_DIRECT_POINTERS:
            actual = inode.direct[blockno]
            if actual == 0:
                actual = vol.alloc_block()
                inode.direct[blockno] = actual
                vol.save_inode(self.inumber, inode)
            return actual
        index = blockno - DISKFS_DIRECT_POINTERS
        if index >= POINTERS_PER_BLOCK:
            raise OutOfSpaceError(f"block {blockno} beyond the largest file")
        if inode.indirect == 0:
            inode.indirect = vol.alloc_block()
            vol.save_inode(self.inumber, inode)
            vol.write_data(inode.indirect, bytes(DISKFS_BLOCK_SIZE))
        table = bytearray(vol.read_data(inode.indirect))
        actual = _POINTER.unpack_from(table, index * 4)[0]
        if actual == 0:
            actual = vol.alloc_block()
            _POINTER.pack_into(table, index * 4, actual)
            vol.write_data(inode.indirect, table)
        return actual

    def read_block(self, blockno: int) -> bytes:
        actual = self._pointer(blockno)
        if actual == 0:
            return bytes(DISKFS_BLOCK_SIZE)
        return self.volume.read_data(actual)

    def write_block(self, data: bytes, blockno: int) -> int:
        if len(data) != DISKFS_BLOCK_SIZE:
            raise InvalidRequestError("data must be exactly one block")
        self.volume.write_data(self._ensure(blockno), data)
        return DISKFS_BLOCK_SIZE

    def _require_dir(self) -> None:
        if not self.isdir:
            raise NotADirectoryError_(f"inode {self.inumber} is not a directory")

    def _slots(self) -> Iterator[tuple[int, int, bytearray, Item]]:
        for i in range(self._nblocks()):
            block = bytearray(self.read_block(i))
            for j in range(ITEMS_PER_BLOCK):
                yield i, j, block, Item.unpack(block, j * ITEM_SIZE)

    def lookup(self, name: str) -> "DiskDirent":
        self._require_dir()
        for _, _, _, item in self._slots():
            if item.type is not ItemType.BLANK and item.name == name:
                return DiskDirent(self.volume, item.inumber, item.type is ItemType.DIR)
        raise NotFoundError(f"{name!r} not found")

    def list(self) -> list[str]:
        self._require_dir()
        return [item.name for _, _, _, item in self._slots() if item.type is not ItemType.BLANK]

    def resize(self, size: int) -> None:
        if size < 0:
            raise InvalidRequestError("size must not be negative")
        self.size = self.inode.size = size

    def close(self) -> None:
        self.volume.save_inode(self.inumber, self.inode)

    def _add(self, item: Item) -> None:
        for i, j, block, existing in self._slots():
            if existing.type is ItemType.BLANK:
                block[j * ITEM_SIZE:(j + 1) * ITEM_SIZE] = item.pack()
                self.write_block(bytes(block), i)
                end = (i * ITEMS_PER_BLOCK + j + 1) * ITEM_SIZE
                if end > self.size:
                    self.resize(end)
                self.volume.save_inode(self.inumber, self.inode)
                return
        i = self._nblocks()
        block = item.pack().ljust(DISKFS_BLOCK_SIZE, b"\0")
        self.resize(i * DISKFS_BLOCK_SIZE + ITEM_SIZE)
        self.write_block(block, i)
        self.volume.save_inode(self.inumber, self.inode)

    def _create(self, name: str, kind: ItemType) -> "DiskDirent":
        self._require_dir()
        _check_name(name)
        try:
            existing = self.lookup(name)
        except NotFoundError:
            pass
        else:
            existing.close()
            raise InvalidRequestError(f"{name!r} already exists")
        inumber = self.volume.alloc_inumber()
        self.volume.save_inode(inumber, Inode(inuse=1))
        self._add(Item(inumber, kind, name))
        return DiskDirent(self.volume, inumber, kind is ItemType.DIR)

    def mkdir(self, name: str) -> "DiskDirent":
        return self._create(name, ItemType.DIR)

    def mkfile(self, name: str) -> "DiskDirent":
        return self._create(name, ItemType.FILE)

    def remove(self, name: str) -> None:
        """Delete the entry called name; directories must be empty."""
        self._require_dir()
        for i, j, block, item in self._slots():
            if item.type is ItemType.BLANK or item.name != name:
                continue
            if item.type is ItemType.DIR and self.volume.load_inode(item.inumber).size > 0:
                raise NotEmptyError(f"{name!r} is not empty")
            block[j * ITEM_SIZE:(j + 1) * ITEM_SIZE] = bytes(ITEM_SIZE)
            self.write_block(bytes(block), i)
            self.volume.delete_inode(item.inumber)
            return
        raise NotFoundError(f"{name!r} not found")