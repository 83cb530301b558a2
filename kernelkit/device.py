"""Block device drivers, opened device instances and the driver registry."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from kernelkit.errors import (
    InvalidRequestError,
    NotFoundError,
    NotImplementedOperationError,
)

PAGE_SIZE = 4096


@dataclass
class DriverStats:
    blocks_read: int = 0
    blocks_written: int = 0


class BlockDriver:
    """Base class of block drivers; every operation is unsupported by default."""

    def __init__(self, name: str, multiplier: int = 0) -> None:
        self.name = name
        self.multiplier = multiplier
        self.stats = DriverStats()

    def probe(self, unit: int) -> Optional[tuple[int, int, str]]:
        """Return (nblocks, block_size, info) for a present unit, else None."""
        raise NotImplementedOperationError(f"{self.name}: probe not supported")

    def read(self, unit: int, nblocks: int, offset: int) -> bytes:
        raise NotImplementedOperationError(f"{self.name}: read not supported")

    def read_nonblock(self, unit: int, nblocks: int, offset: int) -> bytes:
        raise NotImplementedOperationError(f"{self.name}: read_nonblock not supported")

    def write(self, unit: int, data: bytes, offset: int) -> int:
        raise NotImplementedOperationError(f"{self.name}: write not supported")


class MemoryDriver(BlockDriver):
    """A driver whose units are in-memory byte arrays."""

    def __init__(
        self,
        name: str,
        units: int = 1,
        nblocks: int = 64,
        block_size: int = 512,
        multiplier: int = 0,
    ) -> None:
        super().__init__(name, multiplier)
        if nblocks < 0 or block_size < 1:
            raise ValueError("invalid geometry")
        self.nblocks = nblocks
        self.block_size = block_size
        self._storage = [bytearray(nblocks * block_size) for _ in range(units)]

    def _unit(self, unit: int) -> bytearray:
        if not 0 <= unit < len(self._storage):
            raise NotFoundError(f"{self.name} unit {unit} not present")
        return self._storage[unit]

    def _span(self, offset: int, nblocks: int) -> slice:
        if offset < 0 or nblocks < 0 or offset + nblocks > self.nblocks:
            raise InvalidRequestError(f"blocks {offset}..{offset + nblocks} out of range")
        return slice(offset * self.block_size, (offset + nblocks) * self.block_size)

    def probe(self, unit: int) -> Optional[tuple[int, int, str]]:
        if 0 <= unit < len(self._storage):
            return self.nblocks, self.block_size, f"{self.name} unit {unit}"
        return None

    def read(self, unit: int, nblocks: int, offset: int) -> bytes:
        storage = self._unit(unit)
        return bytes(storage[self._span(offset, nblocks)])

    def read_nonblock(self, unit: int, nblocks: int, offset: int) -> bytes:
        return self.read(unit, nblocks, offset)

    def write(self, unit: int, data: bytes, offset: int) -> int:
        storage = self._unit(unit)
        if len(data) % self.block_size:
            raise InvalidRequestError("data is not a whole number of blocks")
        nblocks = len(data) // self.block_size
        storage[self._span(offset, nblocks)] = data
        return nblocks


class Device:
    """An opened unit of a driver, optionally grouping raw blocks by a multiplier."""

    def __init__(self, driver: BlockDriver, unit: int, nblocks: int, block_size: int) -> None:
        self.driver = driver
        self.unit = unit
        self._nblocks = nblocks
        self._block_size = block_size
        self.multiplier = driver.multiplier if driver.multiplier > 0 else 1

    @property
    def name(self) -> str:
        return self.driver.name

    @property
    def block_size(self) -> int:
        return self._block_size * self.multiplier

    @property
    def nblocks(self) -> int:
        return self._nblocks // self.multiplier

    def __repr__(self) -> str:
        return f"Device({self.name!r}, unit={self.unit})"

    def _check_count(self, count: int, offset: int) -> None:
        if count < 0 or offset < 0:
            raise InvalidRequestError("count and offset must not be negative")

    def read(self, count: int, offset: int) -> bytes:
        """Read count device blocks starting at block offset."""
        self._check_count(count, offset)
        data = self.driver.read(self.unit, count * self.multiplier, offset * self.multiplier)
        self.driver.stats.blocks_read += count * self.multiplier
        return data

    def read_nonblock(self, count: int, offset: int) -> bytes:
        self._check_count(count, offset)
        data = self.driver.read_nonblock(
            self.unit, count * self.multiplier, offset * self.multiplier
        )
        self.driver.stats.blocks_read += count * self.multiplier
        return data

    def write(self, data: bytes, offset: int) -> int:
        """Write whole device blocks at block offset; return the number written."""
        if len(data) % self.block_size:
            raise InvalidRequestError("data is not a whole number of blocks")
        self._check_count(0, offset)
        raw = self.driver.write(self.unit, bytes(data), offset * self.multiplier)
        self.driver.stats.blocks_written += raw
        return len(data) // self.block_size

    def set_multiplier(self, multiplier: int) -> None:
        if multiplier < 1 or multiplier * self._block_size > PAGE_SIZE:
            raise InvalidRequestError(f"invalid multiplier {multiplier}")
        self.multiplier = multiplier


class DriverRegistry:
    """Registered drivers; the most recently registered wins a name clash."""

    def __init__(self) -> None:
        self._drivers: list[BlockDriver] = []

    def register(self, driver: BlockDriver) -> None:
        driver.stats = DriverStats()
        self._drivers.insert(0, driver)

    def lookup(self, name: str) -> BlockDriver:
        for driver in self._drivers:
            if driver.name == name:
                return driver
        raise NotFoundError(f"no driver named {name!r}")

    def open(self, name: str, unit: int) -> Device:
        driver = self.lookup(name)
        info = driver.probe(unit)
        if info is None:
            raise NotFoundError(f"{name} unit {unit} not present")
        nblocks, block_size, _ = info
        return Device(driver, unit, nblocks, block_size)

    def stats(self, name: str) -> DriverStats:
        return replace(self.lookup(name).stats)