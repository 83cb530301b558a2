"""Loader for statically linked 32-bit i386 ELF executables."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Protocol

from kernelkit.errors import (
    ExecutionFailedError,
    KernelError,
    NotExecutableError,
    NotFoundError,
)

_HEADER = struct.Struct("<16sHHIIIIIHHHHHH")
_PROGRAM = struct.Struct("<8I")
_SECTION = struct.Struct("<10I")

ELF_MAGIC = b"\x7fELF"
ELF_MACHINE_I386 = 3
ELF_VERSION = 1
ELF_PROGRAM_TYPE_LOADABLE = 1
ELF_SECTION_TYPE_BSS = 8
MAX_IMAGE_SIZE = 0x8000000


class _Readable(Protocol):
    def read(self, length: int, offset: int) -> bytes: ...


@dataclass(frozen=True)
class ElfImage:
    """A loaded program: its entry point, load address, loaded bytes and data size."""

    entry: int
    vaddr: int
    segment: bytes
    data_size: int

    @property
    def memory(self) -> bytes:
        """The segment followed by zero-filled space up to data_size."""
        return self.segment + bytes(max(self.data_size - len(self.segment), 0))


def _read(dirent: _Readable, length: int, offset: int, error: type[KernelError], what: str) -> bytes:
    try:
        data = dirent.read(length, offset)
    except KernelError as exc:
        raise error(f"elf: could not read {what}") from exc
    if len(data) != length:
        raise error(f"elf: short read of {what}")
    return data


def load_elf(dirent: _Readable, entry_point: int) -> ElfImage:
    """Load the executable in dirent, whose segment must start at or above entry_point."""
    (ident, _type, machine, version, entry, program_offset, section_offset,
     _flags, _hsize, _phentsize, _phnum, shentsize, shnum, _shstrndx) = _HEADER.unpack(
        _read(dirent, _HEADER.size, 0, NotFoundError, "header")
    )
    if ident[:4] != ELF_MAGIC or machine != ELF_MACHINE_I386 or version != ELF_VERSION:
        raise NotExecutableError("elf: not a valid i386 ELF executable")

    (ptype, offset, vaddr, _paddr, file_size, memory_size, _pflags, _align) = _PROGRAM.unpack(
        _read(dirent, _PROGRAM.size, program_offset, NotFoundError, "program header")
    )
    if (
        ptype != ELF_PROGRAM_TYPE_LOADABLE
        or vaddr < entry_point
        or memory_size > MAX_IMAGE_SIZE
        or memory_size != file_size
    ):
        raise NotExecutableError("elf: not a valid i386 ELF executable")

    data_size = memory_size
    segment = _read(dirent, memory_size, offset, ExecutionFailedError, "program segment")

    for index in range(shnum):
        fields = _SECTION.unpack(
            _read(
                dirent,
                _SECTION.size,
                section_offset + index * shentsize,
                ExecutionFailedError,
                f"section {index}",
            )
        )
        stype, address, size = fields[1], fields[3], fields[5]
        if stype == ELF_SECTION_TYPE_BSS:
            limit = address + size - entry_point
            if limit > data_size:
                data_size = limit

    return ElfImage(entry=entry, vaddr=vaddr, segment=segment, data_size=data_size)