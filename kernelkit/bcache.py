"""Write-back block cache shared by all devices."""

from __future__ import annotations

from dataclasses import dataclass

from kernelkit.device import Device
from kernelkit.errors import InvalidRequestError, KernelError


@dataclass
class CacheStats:
    read_hits: int = 0
    read_misses: int = 0
    write_hits: int = 0
    write_misses: int = 0
    writebacks: int = 0


@dataclass(eq=False)
class _Entry:
    device: Device
    block: int
    data: bytes
    dirty: bool = False


class BlockCache:
    """Caches device blocks; the oldest entry is evicted once max_size is exceeded."""

    def __init__(self, max_size: int = 100) -> None:
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.stats = CacheStats()
        self._entries: dict[tuple[Device, int], _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _clean(self, entry: _Entry) -> None:
        if entry.dirty:
            entry.device.write(entry.data, entry.block)
            entry.dirty = False
            self.stats.writebacks += 1

    def _trim(self) -> None:
        while len(self._entries) > self.max_size:
            oldest = next(iter(self._entries))
            self._clean(self._entries.pop(oldest))

    def _find_or_create(self, device: Device, block: int) -> tuple[_Entry, bool]:
        key = (device, block)
        entry = self._entries.get(key)
        hit = entry is not None
        if entry is None:
            entry = _Entry(device, block, bytes(device.block_size))
            self._entries[key] = entry
        self._trim()
        return entry, hit

    def read_block(self, device: Device, block: int) -> bytes:
        """Return one block, reading it from the device on a miss."""
        entry, hit = self._find_or_create(device, block)
        if hit:
            self.stats.read_hits += 1
            return entry.data
        self.stats.read_misses += 1
        try:
            entry.data = device.read(1, block)
        except Exception:
            self._entries.pop((device, block), None)
            raise
        return entry.data

    def read(self, device: Device, blocks: int, offset: int) -> bytes:
        """Read consecutive blocks; stop early at the first failure after some succeed."""
        parts: list[bytes] = []
        for block in range(offset, offset + blocks):
            try:
                parts.append(self.read_block(device, block))
            except KernelError:
                if not parts:
                    raise
                break
        return b"".join(parts)

    def write_block(self, device: Device, data: bytes, block: int) -> None:
        """Store one block in the cache and mark it dirty."""
        if len(data) != device.block_size:
            raise InvalidRequestError("data must be exactly one block")
        entry, hit = self._find_or_create(device, block)
        if hit:
            self.stats.write_hits += 1
        else:
            self.stats.write_misses += 1
        entry.data = bytes(data)
        entry.dirty = True

    def write(self, device: Device, data: bytes, offset: int) -> int:
        """Cache consecutive blocks starting at offset; return how many."""
        size = device.block_size
        if len(data) % size:
            raise InvalidRequestError("data is not a whole number of blocks")
        count = len(data) // size
        for index in range(count):
            self.write_block(device, data[index * size:(index + 1) * size], offset + index)
        return count

    def flush_block(self, device: Device, block: int) -> None:
        entry = self._entries.get((device, block))
        if entry is not None:
            self._clean(entry)

    def flush_device(self, device: Device) -> None:
        for entry in list(self._entries.values()):
            if entry.device is device:
                self._clean(entry)

    def flush_all(self) -> None:
        for entry in list(self._entries.values()):
            self._clean(entry)