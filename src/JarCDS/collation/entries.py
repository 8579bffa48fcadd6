"""Entry kinds compared by the collation engine.

Collation works on three very different kinds of list items and needs one
stable notion of "equal" for each:

- :class:`LiteralEntry` wraps a line of a plain list; equal iff the text is equal.
- :class:`FileEntry` wraps a file on disk; its equality depends on the
  :class:`~JarCDS.settings.CompareMode` it was created with. ``rough`` compares
  file name and size, ``precise`` compares content byte by byte (the same file
  reached through two paths is equal without reading it).
- :class:`ArchiveMemberEntry` describes a member of a nested archive; equal iff
  name and size match, hashed by the member's CRC-32.

The mode is carried by each :class:`FileEntry` rather than read from global
state, so a collation run cannot change its mind half way through.
"""

from __future__ import annotations

import os
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from JarCDS.settings import CompareMode

__all__ = [
    "ArchiveMemberEntry",
    "Entry",
    "FileEntry",
    "LiteralEntry",
    "entries_equal",
    "files_precisely_equal",
    "files_roughly_equal",
]

_BUFFER_SIZE = 8192


def files_roughly_equal(one: Path, another: Path) -> bool:
    """Return True when both files share a name and a size.

    Timestamps are ignored as they vary between builds of the same library.
    """

    if one.name != another.name:
        return False
    return one.stat().st_size == another.stat().st_size


def files_precisely_equal(one: Path, another: Path) -> bool:
    """Return True when both paths hold byte-identical content."""

    try:
        if os.path.samefile(one, another):
            return True
    except FileNotFoundError:
        if one == another:
            return True
        raise
    if one.stat().st_size != another.stat().st_size:
        return False
    with one.open("rb") as first, another.open("rb") as second:
        while True:
            chunk1 = first.read(_BUFFER_SIZE)
            chunk2 = second.read(_BUFFER_SIZE)
            if chunk1 != chunk2:
                return False
            if not chunk1:
                return True


@dataclass(frozen=True, eq=False)
class LiteralEntry:
    """A raw text token, typically one line of a class list."""

    value: str

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LiteralEntry):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, eq=False)
class FileEntry:
    """A file on disk compared according to ``mode``."""

    path: Path
    mode: CompareMode = CompareMode.ROUGH
    size: int = field(default=-1, compare=False)

    def __post_init__(self) -> None:
        if self.size < 0:
            object.__setattr__(self, "size", self.path.stat().st_size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileEntry):
            return NotImplemented
        if self is other:
            return True
        try:
            if self.mode is CompareMode.PRECISE:
                return files_precisely_equal(self.path, other.path)
            return files_roughly_equal(self.path, other.path)
        except OSError:
            return False

    def __hash__(self) -> int:
        # equal entries always share a size; rough mode also requires the name
        if self.mode is CompareMode.PRECISE:
            return hash(self.size)
        return hash((self.path.name, self.size))

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True, eq=False)
class ArchiveMemberEntry:
    """A member of a nested archive identified by name, size, and CRC-32."""

    name: str
    size: int
    checksum: int

    @classmethod
    def from_zipinfo(cls, info: zipfile.ZipInfo) -> "ArchiveMemberEntry":
        return cls(name=info.filename, size=info.file_size, checksum=info.CRC)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArchiveMemberEntry):
            return NotImplemented
        return self.name == other.name and self.size == other.size

    def __hash__(self) -> int:
        return self.checksum

    def __str__(self) -> str:
        return self.name


Entry = Union[LiteralEntry, FileEntry, ArchiveMemberEntry]


def entries_equal(one: Entry, another: Entry) -> bool:
    """Compare two entries of any kind; entries of different kinds are never equal."""

    if type(one) is not type(another):
        return False
    return one == another
