"""Hash set keyed by unsigned 32-bit integers, with sorted chains."""

from __future__ import annotations

from bisect import bisect_left
from typing import Any, Optional

_PRIME = 31
_GOLDEN_RATIO = 0x61C88647
_MASK = 0xFFFFFFFF


def hash_string(string: str, range_min: int, range_max: int) -> int:
    """Hash a string into the half-open range [range_min, range_max)."""
    if range_max <= range_min:
        raise ValueError("range_max must be greater than range_min")
    value = _PRIME
    for byte in string.encode("utf-8"):
        signed = byte - 256 if byte > 127 else byte
        value = (_PRIME * value + signed) & _MASK
    return value % (range_max - range_min) + range_min


def _hash_uint(key: int, buckets: int) -> int:
    return ((key * _GOLDEN_RATIO) & _MASK) % buckets


class HashSet:
    """Maps unsigned integer keys to data; each bucket is kept sorted."""

    def __init__(self, buckets: int) -> None:
        if buckets < 1:
            raise ValueError("a hash set needs at least one bucket")
        self._buckets: list[list[tuple[int, Any]]] = [[] for _ in range(buckets)]
        self._entries = 0

    def _locate(self, key: int) -> tuple[list[tuple[int, Any]], int, int]:
        key &= _MASK
        chain = self._buckets[_hash_uint(key, len(self._buckets))]
        return chain, bisect_left(chain, key, key=lambda item: item[0]), key

    def add(self, key: int, data: Any) -> None:
        """Insert key with data; an existing key raises KeyError."""
        chain, pos, key = self._locate(key)
        if pos < len(chain) and chain[pos][0] == key:
            raise KeyError(key)
        chain.insert(pos, (key, data))
        self._entries += 1

    def lookup(self, key: int) -> Optional[Any]:
        """Return the data stored under key, or None."""
        chain, pos, key = self._locate(key)
        if pos < len(chain) and chain[pos][0] == key:
            return chain[pos][1]
        return None

    def remove(self, key: int) -> None:
        """Delete key; a missing key raises KeyError."""
        chain, pos, key = self._locate(key)
        if pos < len(chain) and chain[pos][0] == key:
            del chain[pos]
            self._entries -= 1
            return
        raise KeyError(key)

    def __len__(self) -> int:
        return self._entries

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, int):
            return False
        chain, pos, masked = self._locate(key)
        return pos < len(chain) and chain[pos][0] == masked

    def dump(self) -> str:
        """Describe every bucket entry as 'bucket: key' lines."""
        lines = ["printing hash set:"]
        for index, chain in enumerate(self._buckets):
            lines.extend(f"{index}: {key}" for key, _ in chain)
        return "\n".join(lines) + "\n"