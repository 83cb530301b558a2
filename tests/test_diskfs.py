import struct

import pytest

from kernelkit import diskfs
from kernelkit.bcache import BlockCache
from kernelkit.device import DriverRegistry, MemoryDriver
from kernelkit.diskfs import (
    DISKFS_BLOCK_SIZE,
    DISKFS_MAGIC,
    DiskFileSystem,
    Inode,
    Item,
    ItemType,
    Superblock,
)
from kernelkit.errors import (
    InvalidRequestError,
    NotADirectoryError_,
    NotEmptyError,
    NotFoundError,
    OutOfSpaceError,
)
from kernelkit.fs import FileSystemRegistry


def make_device(nblocks=64, units=1, unit=0):
    driver = MemoryDriver("ata", units=units, nblocks=nblocks * 8, block_size=512, multiplier=8)
    registry = DriverRegistry()
    registry.register(driver)
    return registry.open("ata", unit), registry


@pytest.fixture
def mounted():
    device, _ = make_device()
    fs = DiskFileSystem(BlockCache())
    fs.format(device)
    volume = fs.open_volume(device)
    return fs, volume, volume.root()


def test_magic_written_to_block_zero():
    device, _ = make_device()
    DiskFileSystem(BlockCache()).format(device)
    raw = device.read(1, 0)
    assert DISKFS_MAGIC == 0xABCD4321
    assert raw[:4] == struct.pack("<I", DISKFS_MAGIC)
    assert Superblock.unpack(raw).block_size == DISKFS_BLOCK_SIZE


def test_format_layout_invariants():
    device, _ = make_device(100)
    sb = DiskFileSystem(BlockCache()).format(device)
    assert sb.inode_start == 1
    assert sb.bitmap_start == sb.inode_start + sb.inode_blocks
    assert sb.data_start == sb.bitmap_start + sb.bitmap_blocks
    assert sb.data_start + sb.data_blocks == device.nblocks


def test_open_unformatted_raises():
    device, _ = make_device()
    with pytest.raises(NotFoundError):
        DiskFileSystem(BlockCache()).open_volume(device)


def test_wrong_block_size_rejected():
    driver = MemoryDriver("ata", units=1, nblocks=64, block_size=512)
    registry = DriverRegistry()
    registry.register(driver)
    device = registry.open("ata", 0)
    with pytest.raises(InvalidRequestError):
        DiskFileSystem(BlockCache()).format(device)


def test_device_too_small():
    device, _ = make_device(20)
    with pytest.raises(InvalidRequestError):
        DiskFileSystem(BlockCache()).format(device)


def test_root_directory_holds_dot(mounted):
    _, _, root = mounted
    assert root.isdir
    assert root.list() == ["."]
    assert root.size == diskfs.ITEM_SIZE


def test_file_round_trip(mounted):
    _, _, root = mounted
    f = root.mkfile("hello.txt")
    payload = b"hello, world\n" * 500
    assert f.write(payload) == len(payload)
    f.close()
    again = root.lookup("hello.txt")
    assert not again.isdir
    assert again.size == len(payload)
    assert again.read(len(payload)) == payload
    assert again.read(5, 7) == payload[7:12]
    assert "hello.txt" in root.list()


def test_persistence_across_remount():
    device, _ = make_device()
    fs = DiskFileSystem(BlockCache())
    fs.format(device)
    volume = fs.open_volume(device)
    root = volume.root()
    sub = root.mkdir("sub")
    f = sub.mkfile("data")
    f.write(b"persistent")
    f.close()
    sub.close()
    root.close()
    volume.close()

    fresh = DiskFileSystem(BlockCache())
    root2 = fresh.open_volume(device).root()
    assert root2.traverse("sub/data").read(100) == b"persistent"


def test_mkdir_and_traverse(mounted):
    _, _, root = mounted
    sub = root.mkdir("dir")
    assert sub.isdir
    assert sub.list() == []
    inner = sub.mkfile("inner")
    inner.write(b"x")
    inner.close()
    found = root.traverse("dir/inner")
    assert found.read(10) == b"x"
    assert root.traverse("./dir").isdir


def test_duplicate_name_rejected(mounted):
    _, _, root = mounted
    root.mkfile("same")
    with pytest.raises(InvalidRequestError):
        root.mkfile("same")
    with pytest.raises(InvalidRequestError):
        root.mkdir("same")


def test_invalid_names(mounted):
    _, _, root = mounted
    with pytest.raises(InvalidRequestError):
        root.mkfile("n" * (diskfs.NAME_MAX + 1))
    with pytest.raises(InvalidRequestError):
        root.mkfile("")


def test_lookup_is_exact(mounted):
    _, _, root = mounted
    root.mkfile("ab")
    with pytest.raises(NotFoundError):
        root.lookup("abc")
    with pytest.raises(NotFoundError):
        root.lookup("a")


def test_directory_ops_on_file_raise(mounted):
    _, _, root = mounted
    f = root.mkfile("plain")
    with pytest.raises(NotADirectoryError_):
        f.lookup("x")
    with pytest.raises(NotADirectoryError_):
        f.list()
    with pytest.raises(NotADirectoryError_):
        f.mkfile("x")


def test_remove_file(mounted):
    _, _, root = mounted
    f = root.mkfile("gone")
    f.write(b"abc")
    f.close()
    root.remove("gone")
    assert "gone" not in root.list()
    with pytest.raises(NotFoundError):
        root.lookup("gone")
    with pytest.raises(NotFoundError):
        root.remove("gone")


def test_remove_directory(mounted):
    _, _, root = mounted
    full = root.mkdir("full")
    full.mkfile("child")
    with pytest.raises(NotEmptyError):
        root.remove("full")
    root.mkdir("empty")
    root.remove("empty")
    assert root.list() == [".", "full"]


def test_inode_numbers_reused_after_remove(mounted):
    _, _, root = mounted
    first = root.mkfile("one")
    root.remove("one")
    second = root.mkfile("two")
    assert second.inumber == first.inumber


def test_out_of_space_partial_write():
    device, _ = make_device(40)
    fs = DiskFileSystem(BlockCache())
    fs.format(device)
    root = fs.open_volume(device).root()
    big = root.mkfile("big")
    payload = bytes(range(256)) * (9 * DISKFS_BLOCK_SIZE // 256)
    written = big.write(payload)
    assert 0 < written < len(payload)
    assert written % DISKFS_BLOCK_SIZE == 0
    big.close()
    assert big.read(written) == payload[:written]

    other = root.mkfile("other")
    with pytest.raises(OutOfSpaceError):
        other.write(b"y" * DISKFS_BLOCK_SIZE)


def test_freed_blocks_are_reused():
    device, _ = make_device(40)
    fs = DiskFileSystem(BlockCache())
    fs.format(device)
    root = fs.open_volume(device).root()
    payload = b"z" * (7 * DISKFS_BLOCK_SIZE)
    f = root.mkfile("a")
    assert f.write(payload) == len(payload)
    f.close()
    root.remove("a")
    g = root.mkfile("b")
    assert g.write(payload) == len(payload)
    g.close()
    assert root.lookup("b").read(len(payload)) == payload


def test_large_file_uses_indirect_block(mounted):
    _, _, root = mounted
    nblocks = diskfs.DISKFS_DIRECT_POINTERS + 3
    payload = b"".join(bytes([i]) * DISKFS_BLOCK_SIZE for i in range(nblocks))
    f = root.mkfile("large")
    assert f.write(payload) == len(payload)
    f.close()
    again = root.lookup("large")
    assert again.inode.indirect != 0
    assert again.read(len(payload)) == payload


def test_many_entries_span_blocks(mounted):
    _, _, root = mounted
    names = [f"f{i}" for i in range(diskfs.ITEMS_PER_BLOCK + 5)]
    for name in names:
        root.mkfile(name)
    listed = root.list()
    assert listed == ["."] + names
    assert root.lookup(names[-1]).isdir is False


def test_copy_between_volumes():
    cache = BlockCache()
    fs = DiskFileSystem(cache)
    src_dev, registry = make_device(units=2)
    dst_dev = registry.open("ata", 1)
    fs.format(src_dev)
    fs.format(dst_dev)
    src = fs.open_volume(src_dev).root()
    dst = fs.open_volume(dst_dev).root()
    docs = src.mkdir("docs")
    note = docs.mkfile("note")
    note.write(b"text inside")
    note.close()
    docs.close()
    b = src.mkfile("b")
    b.write(b"bee")
    b.close()

    copied = src.copy_to(dst)
    assert "docs (dir)" in copied
    assert sorted(dst.list()) == [".", "b", "docs"]
    assert dst.traverse("docs/note").read(100) == b"text inside"
    assert dst.lookup("b").read(10) == b"bee"


def test_registry_lookup():
    registry = FileSystemRegistry()
    fs = DiskFileSystem()
    registry.register(fs)
    assert registry.lookup("diskfs") is fs


def test_item_pack_round_trip():
    item = Item(7, ItemType.FILE, "abc")
    raw = item.pack()
    assert len(raw) == diskfs.ITEM_SIZE
    assert raw[:4] == (7).to_bytes(4, "little")
    assert raw[4] == ItemType.FILE
    assert raw[5] == len("abc")
    assert Item.unpack(raw) == item


def test_inode_pack_round_trip():
    inode = Inode(1, 12345, [1, 2, 3, 4, 5, 6], 9)
    raw = inode.pack()
    assert len(raw) == diskfs.INODE_SIZE
    assert Inode.unpack(raw) == inode


def test_superblock_round_trip():
    sb = Superblock(DISKFS_MAGIC, DISKFS_BLOCK_SIZE, 1, 2, 3, 4, 5, 6)
    assert Superblock.unpack(sb.pack()) == sb


def test_save_and_load_inode(mounted):
    _, volume, _ = mounted
    inode = Inode(1, 99, [0, 0, 0, 0, 0, 0], 0)
    volume.save_inode(5, inode)
    assert volume.load_inode(5) == inode


def test_write_block_requires_full_block(mounted):
    _, _, root = mounted
    f = root.mkfile("f")
    with pytest.raises(InvalidRequestError):
        f.write_block(b"short", 0)