# kernelkit

This package contains parts of a small teaching operating-system kernel as plain
Python objects. They run and can be tested without hardware or an emulator. It
has no dependencies outside the standard library.

## Modules

- `kernelkit.errors` defines `KernelError` and its subclasses. The subclasses are
  `NotFoundError`, `NotADirectoryError_`, `NotEmptyError`, `OutOfSpaceError`,
  `InvalidRequestError`, `NotImplementedOperationError`, `NotExecutableError` and
  `ExecutionFailedError`. Every subsystem reports failure by raising one of these.
- `kernelkit.linkedlist` provides `LinkedList` and `ListNode`. The list is doubly
  linked and nodes are stored in it directly. It supports `push_head`,
  `push_tail`, `push_priority`, `pop_head`, `pop_tail` and `remove`. Popping from
  an empty list raises `IndexError`.
- `kernelkit.hashset` provides `HashSet`, which maps unsigned 32-bit keys to data
  and keeps each bucket sorted. It has `add`, `lookup`, `remove`, `in`, `len` and
  `dump`. The module also has `hash_string(string, range_min, range_max)`.
- `kernelkit.clock` provides `Clock`. Each `tick()` advances it by one click, and
  `tick()` returns `True` when a full second has passed. The module also has the
  `ClockTime` value type and `clock_diff(start, stop)`.
- `kernelkit.kmalloc` provides `Heap`, a first-fit allocator over a simulated
  address range. Chunks are split on allocation and merged with free neighbours
  on `free`. `chunks()` walks the chunk list and `debug()` formats it as a table.
- `kernelkit.validate` provides `is_valid_path`, `is_valid_tag` and
  `is_valid_location`, which check a string against the allowed character set.
- `kernelkit.eventqueue` provides `EventQueue`, which holds at most 31 pending
  `Event` records. Events posted to a full queue are counted in
  `overflow_count` and dropped. It offers a blocking `read` with an optional
  timeout, `read_nonblock` and `read_key`.
- `kernelkit.device` provides the following:
  - `DriverRegistry`, with `register`, `lookup`, `open` and `stats`.
  - `BlockDriver`, the base class for drivers.
  - `MemoryDriver`, whose units are in-memory byte arrays.
  - `Device`, an opened unit. A device can group raw blocks with a multiplier,
    which is set from the driver or with `set_multiplier`.
- `kernelkit.bcache` provides `BlockCache`, a write-back cache for device blocks.
  Once `max_size` is exceeded it evicts the oldest entry and writes that entry
  back first if it is dirty. It counts hits, misses and writebacks in
  `CacheStats`.
- `kernelkit.bitmap` provides `Bitmap`, a 24-bit pixel buffer.
  `Bitmap.pixel(x, y)` returns `(r, g, b)`.
- `kernelkit.graphics` provides `Graphics`, a clipped drawing context over a
  bitmap. It has `rect`, `clear`, `line`, `blit` for 1-bit images, `scrollup`,
  `set_clip` and `child`. It can also run a stream of `GraphicsCommand` tuples
  through `write`.
- `kernelkit.fs` provides the generic filesystem layer:
  - `FileSystemRegistry`.
  - `FileSystem` and `Volume`, the base classes for filesystem drivers and
    mounted volumes.
  - `Dirent`, which builds `traverse`, byte-level `read` and `write`, and the
    recursive `copy_to` on top of block operations that each filesystem
    provides.
- `kernelkit.elf` provides `load_elf(dirent, entry_point)`. It validates a 32-bit
  i386 ELF executable and returns an `ElfImage` with the entry point, load
  address, segment bytes and data size, where the data size includes `.bss`.
- `kernelkit.diskfs` provides `DiskFileSystem`, a simple inode and bitmap
  filesystem that uses 4096-byte blocks and does all I/O through a
  `BlockCache`. Its classes are `DiskVolume` and `DiskDirent`. It supports
  `format`, `open_volume`, `mkfile`, `mkdir`, `lookup`, `list`, `remove` and
  byte-level reads and writes.

## Example

```python
from kernelkit.device import DriverRegistry, MemoryDriver
from kernelkit.bcache import BlockCache
from kernelkit.diskfs import DiskFileSystem

drivers = DriverRegistry()
drivers.register(MemoryDriver("ata", units=1, nblocks=8192, block_size=512, multiplier=8))
device = drivers.open("ata", 0)          # 1024 blocks of 4096 bytes

fs = DiskFileSystem(BlockCache(100))
fs.format(device)
volume = fs.open_volume(device)
root = volume.root()

notes = root.mkfile("notes")
notes.write(b"hello, disk", 0)
print(root.list())               # ['.', 'notes']
print(notes.read(11, 0))         # b'hello, disk'
notes.close()
root.close()
volume.close()                   # writes dirty cached blocks back to the device
```

## What this package does not do

This is a library and has no command-line program. It does not boot or run
anything by itself and does not include an interactive shell.

- The only storage it provides is `MemoryDriver`, which keeps data in memory.
  There is no driver for real disks or CD-ROMs, and no ISO 9660 filesystem.
- `load_elf` returns an `ElfImage` and does not load the image into a process.
  The package has no process, memory-mapping or scheduling layer.
- `Graphics` has no built-in font. To draw text through a `TEXT` command, assign
  glyph data to `Graphics.font` first. Without it, `NotImplementedOperationError`
  is raised.

## Installing and testing

```
pip install -e ".[test]"
pytest
```