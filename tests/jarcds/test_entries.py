"""Equality and hashing of the three collation entry kinds."""

from __future__ import annotations

import zipfile
from pathlib import Path

from JarCDS.collation.entries import (
    ArchiveMemberEntry,
    FileEntry,
    LiteralEntry,
    entries_equal,
    files_precisely_equal,
    files_roughly_equal,
)
from JarCDS.settings import CompareMode


def _write(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def test_literal_entries_compare_by_text() -> None:
    """Literal entries are equal exactly when their text is."""

    assert LiteralEntry("java/lang/Object") == LiteralEntry("java/lang/Object")
    assert LiteralEntry("java/lang/Object") != LiteralEntry("java/lang/String")
    assert len({LiteralEntry("a"), LiteralEntry("a"), LiteralEntry("b")}) == 2
    assert str(LiteralEntry("a/B")) == "a/B"


def test_rough_equality_uses_name_and_size(tmp_path: Path) -> None:
    """Rough mode ignores content but requires equal names and sizes."""

    one = _write(tmp_path / "a" / "lib.jar", b"x" * 10)
    same = _write(tmp_path / "b" / "lib.jar", b"y" * 10)
    renamed = _write(tmp_path / "c" / "other.jar", b"x" * 10)
    resized = _write(tmp_path / "d" / "lib.jar", b"x" * 11)

    assert files_roughly_equal(one, same)
    assert FileEntry(one) == FileEntry(same)
    assert hash(FileEntry(one)) == hash(FileEntry(same))
    assert FileEntry(one) != FileEntry(renamed)
    assert FileEntry(one) != FileEntry(resized)


def test_rough_equality_is_reflexive(tmp_path: Path) -> None:
    """An entry always equals itself."""

    entry = FileEntry(_write(tmp_path / "lib.jar", b"abc"))
    assert entry == entry
    assert entry == FileEntry(tmp_path / "lib.jar")


def test_precise_equality_detects_content_difference(tmp_path: Path) -> None:
    """Same-size files with different bytes are unequal in precise mode only."""

    one = _write(tmp_path / "a" / "lib.jar", b"x" * 10)
    other = _write(tmp_path / "b" / "lib.jar", b"y" * 10)

    assert FileEntry(one, CompareMode.ROUGH) == FileEntry(other, CompareMode.ROUGH)
    assert FileEntry(one, CompareMode.PRECISE) != FileEntry(other, CompareMode.PRECISE)
    assert not files_precisely_equal(one, other)


def test_precise_equality_accepts_identical_bytes(tmp_path: Path) -> None:
    """Identical content is equal in precise mode, and a path equals itself."""

    payload = bytes(range(256)) * 100
    one = _write(tmp_path / "a" / "lib.jar", payload)
    copy = _write(tmp_path / "b" / "lib.jar", payload)

    assert files_precisely_equal(one, copy)
    assert files_precisely_equal(one, tmp_path / "a" / ".." / "a" / "lib.jar")
    assert FileEntry(one, CompareMode.PRECISE) == FileEntry(copy, CompareMode.PRECISE)
    assert {FileEntry(one, CompareMode.PRECISE)} & {FileEntry(copy, CompareMode.PRECISE)}


def test_archive_member_entries(tmp_path: Path) -> None:
    """Nested members are equal on name and size and hashed by their CRC."""

    archive_path = tmp_path / "fat.jar"
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr("BOOT-INF/lib/a.jar", b"abc")
    with zipfile.ZipFile(archive_path) as archive:
        info = archive.getinfo("BOOT-INF/lib/a.jar")
    entry = ArchiveMemberEntry.from_zipinfo(info)

    assert entry.size == 3
    assert hash(entry) == info.CRC
    assert entry == ArchiveMemberEntry("BOOT-INF/lib/a.jar", 3, 0)
    assert entry != ArchiveMemberEntry("BOOT-INF/lib/b.jar", 3, info.CRC)
    assert entry != ArchiveMemberEntry("BOOT-INF/lib/a.jar", 4, info.CRC)
    assert str(entry) == "BOOT-INF/lib/a.jar"


def test_entries_of_different_kinds_never_match(tmp_path: Path) -> None:
    """Entries of different kinds are unequal even when they print the same."""

    path = _write(tmp_path / "lib.jar", b"abc")
    assert not entries_equal(LiteralEntry(str(path)), FileEntry(path))
    assert not entries_equal(LiteralEntry("a.jar"), ArchiveMemberEntry("a.jar", 3, 1))
    assert entries_equal(LiteralEntry("a"), LiteralEntry("a"))
