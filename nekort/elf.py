"""Locate bytecode embedded in a dedicated section of an ELF executable."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO

BYTECODE_SECTION = ".nekobytecode"

EI_NIDENT = 16
EI_CLASS = 4
EI_DATA = 5
ELFCLASS32 = 1
ELFCLASS64 = 2
ELFDATA2MSB = 2
ET_EXEC = 2

# e_type .. e_shstrndx, following e_ident
_EHDR32 = "HHIIIIIHHHHHH"
_EHDR64 = "HHIQQQIHHHHHH"
# sh_name .. sh_entsize
_SHDR32 = "IIIIIIIIII"
_SHDR64 = "IIQQQQIIQQ"


class ElfError(Exception):
    """Raised when a file is not a readable ELF executable."""


@dataclass(frozen=True)
class ElfHeader:
    """The parts of the ELF header needed to walk the section headers."""

    is_32: bool
    big_endian: bool
    shoff: int
    shentsize: int
    shnum: int
    shstrndx: int


@dataclass(frozen=True)
class _Section:
    name: int
    offset: int
    size: int


def _read_at(stream: BinaryIO, offset: int, size: int) -> bytes:
    try:
        stream.seek(offset)
        data = stream.read(size)
    except (OSError, ValueError) as exc:
        raise ElfError(f"cannot read {size} bytes at {offset}") from exc
    if len(data) != size:
        raise ElfError(f"cannot read {size} bytes at {offset}")
    return data


def read_header(stream: BinaryIO) -> ElfHeader:
    """Read the ELF header of an executable."""
    ident = _read_at(stream, 0, EI_NIDENT)
    cls = ident[EI_CLASS]
    if cls not in (ELFCLASS32, ELFCLASS64):
        raise ElfError("unknown ELF class")
    is_32 = cls == ELFCLASS32
    order = ">" if ident[EI_DATA] == ELFDATA2MSB else "<"
    fmt = order + (_EHDR32 if is_32 else _EHDR64)
    raw = _read_at(stream, EI_NIDENT, struct.calcsize(fmt))
    (e_type, _machine, _version, _entry, _phoff, shoff, _flags, _ehsize,
     _phentsize, _phnum, shentsize, shnum, shstrndx) = struct.unpack(fmt, raw)
    if e_type != ET_EXEC:
        raise ElfError("not an executable")
    return ElfHeader(is_32, order == ">", shoff, shentsize, shnum, shstrndx)


def _read_section(stream: BinaryIO, header: ElfHeader, index: int) -> _Section:
    raw = _read_at(stream, header.shoff + index * header.shentsize, header.shentsize)
    fmt = (">" if header.big_endian else "<") + (_SHDR32 if header.is_32 else _SHDR64)
    size = struct.calcsize(fmt)
    if len(raw) < size:
        raise ElfError("section header too short")
    fields = struct.unpack(fmt, raw[:size])
    return _Section(name=fields[0], offset=fields[4], size=fields[5])


def find_section(stream: BinaryIO, header: ElfHeader, name: str | bytes) -> int | None:
    """Return the index of the first section whose name starts with ``name``, or None."""
    wanted = name.encode("utf-8") if isinstance(name, str) else bytes(name)
    strtab_header = _read_section(stream, header, header.shstrndx)
    strtab = _read_at(stream, strtab_header.offset, strtab_header.size)
    for index in range(header.shnum):
        section = _read_section(stream, header, index)
        if section.name < len(strtab) and strtab[section.name:].startswith(wanted):
            return index
    return None


def find_embedded_bytecode(path: str) -> tuple[int, int] | None:
    """Return the ``(begin, end)`` file offsets of the embedded bytecode, or None."""
    try:
        with open(path, "rb") as stream:
            header = read_header(stream)
            index = find_section(stream, header, BYTECODE_SECTION)
            if index is None:
                return None
            section = _read_section(stream, header, index)
    except (OSError, ElfError):
        return None
    return section.offset, section.offset + section.size