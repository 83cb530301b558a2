"""First-fit heap allocator over a simulated address range."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, Optional

KUNIT = 16


class ChunkState(enum.IntEnum):
    FREE = 0xA1A1A1A1
    USED = 0xBFBFBFBF


@dataclass(eq=False)
class Chunk:
    """A run of heap memory starting with its header at address."""

    address: int
    length: int
    state: ChunkState = ChunkState.FREE
    next: Optional["Chunk"] = field(default=None, repr=False)
    prev: Optional["Chunk"] = field(default=None, repr=False)


class Heap:
    """Allocates addresses out of [start, start + length)."""

    def __init__(self, start: int, length: int) -> None:
        if length < KUNIT:
            raise ValueError("heap is smaller than one chunk header")
        self.start = start
        self.length = length
        self.head = Chunk(start, length)

    def _split(self, chunk: Chunk, length: int) -> None:
        remainder = Chunk(chunk.address + length, chunk.length - length)
        remainder.prev = chunk
        remainder.next = chunk.next
        if chunk.next is not None:
            chunk.next.prev = remainder
        chunk.next = remainder
        chunk.length = length

    def alloc(self, length: int) -> int:
        """Return the address of a new block of at least length bytes."""
        if length < 0:
            raise ValueError("length must not be negative")
        extra = length % KUNIT
        if extra:
            length += KUNIT - extra
        length += KUNIT

        chunk = next(
            (c for c in self.chunks() if c.state is ChunkState.FREE and c.length >= length),
            None,
        )
        if chunk is None:
            raise MemoryError("kmalloc: out of memory")

        if chunk.length - length > 2 * KUNIT:
            self._split(chunk, length)
        chunk.state = ChunkState.USED
        return chunk.address + KUNIT

    @staticmethod
    def _merge(chunk: Optional[Chunk]) -> None:
        if chunk is None or chunk.state is not ChunkState.FREE:
            return
        following = chunk.next
        if following is not None and following.state is ChunkState.FREE:
            chunk.length += following.length
            if following.next is not None:
                following.next.prev = chunk
            chunk.next = following.next

    def free(self, address: int) -> None:
        """Release the block at address and merge it with free neighbours."""
        header = address - KUNIT
        chunk = next((c for c in self.chunks() if c.address == header), None)
        if chunk is None or chunk.state is not ChunkState.USED:
            raise ValueError(f"invalid kfree({address:x})")
        chunk.state = ChunkState.FREE
        self._merge(chunk)
        self._merge(chunk.prev)

    def chunks(self) -> Iterator[Chunk]:
        c: Optional[Chunk] = self.head
        while c is not None:
            yield c
            c = c.next

    def debug(self) -> str:
        """Return a table of every chunk in address order."""
        lines = ["state ptr      prev     next     length"]
        for c in self.chunks():
            letter = "F" if c.state is ChunkState.FREE else "U"
            prev = c.prev.address if c.prev else 0
            nxt = c.next.address if c.next else 0
            lines.append(f"{letter}     {c.address:x} {prev:x} {nxt:x} {c.length}")
        return "\n".join(lines) + "\n"