"""Glob matching and directory helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from JarCDS.core.paths import (
    GlobMatcher,
    copy_file,
    delete_files_by_name,
    dir_listing,
    has_wildcards,
    prepare_dir,
    walk_matching,
)
from JarCDS.errors import InvalidPatternError


@pytest.mark.parametrize(
    ("pattern", "path", "expected"),
    [
        ("*.jar", "a.jar", True),
        ("*.jar", "lib/a.jar", False),
        ("*/*.jar", "lib/a.jar", True),
        ("**/*.jar", "a.jar", True),
        ("**/*.jar", "x/y/z/a.jar", True),
        ("app?.jar", "app1.jar", True),
        ("app?.jar", "app12.jar", False),
        ("*.{jar,war}", "a.war", True),
        ("*.{jar,war}", "a.ear", False),
        ("[ab]*.jar", "b.jar", True),
        ("[!ab]*.jar", "b.jar", False),
        ("build/**", "build/libs/a.jar", True),
        ("[]a]*.jar", "]x.jar", True),
        ("[]a]*.jar", "b.jar", False),
        ("[!]]", "a", True),
        ("[!]]", "]", False),
        ("[\\]x", "\\x", True),
        ("[^a]", "^", True),
    ],
)
def test_glob_matcher(pattern: str, path: str, expected: bool) -> None:
    """Wildcards follow the usual shell glob conventions."""

    assert GlobMatcher(pattern).matches(path) is expected


@pytest.mark.parametrize("pattern", ["[z-a]*.jar", "lib/{a,b"])
def test_invalid_pattern_is_a_configuration_error(pattern: str) -> None:
    with pytest.raises(InvalidPatternError) as excinfo:
        GlobMatcher(pattern)
    assert excinfo.value.pattern == pattern
    assert excinfo.value.exit_code == 2


def test_has_wildcards() -> None:
    assert has_wildcards("*/lib")
    assert has_wildcards("app.{jar,war}")
    assert not has_wildcards("apps/lib")


def test_walk_matching_relative_and_absolute(tmp_path: Path) -> None:
    """Relative patterns match paths under the root; absolute ones match full paths."""

    for name in ("a/app.jar", "b/app.jar", "b/deep/app.jar", "c/readme.txt"):
        (tmp_path / name).parent.mkdir(parents=True, exist_ok=True)
        (tmp_path / name).write_bytes(b"x")

    assert walk_matching(tmp_path, "*/app.jar") == [tmp_path / "a/app.jar", tmp_path / "b/app.jar"]
    assert walk_matching(tmp_path, "**/app.jar", [GlobMatcher("b/**")]) == [tmp_path / "a/app.jar"]
    absolute = f"{tmp_path.as_posix()}/b/**/*.jar"
    assert walk_matching(tmp_path, absolute) == [tmp_path / "b/app.jar", tmp_path / "b/deep/app.jar"]


def test_prepare_dir_cleans_existing_content(tmp_path: Path) -> None:
    """An existing directory is emptied; a missing one is created."""

    target = tmp_path / "out"
    (target / "stale").mkdir(parents=True)
    (target / "stale" / "old.jar").write_bytes(b"old")

    assert prepare_dir(target) == target
    assert list(target.iterdir()) == []
    assert prepare_dir(tmp_path / "new" / "dir").is_dir()


def test_copy_and_delete_by_name(tmp_path: Path) -> None:
    """Files are copied under their own name and deleted by name only."""

    source = tmp_path / "src"
    source.mkdir()
    (source / "a.jar").write_bytes(b"a")
    (source / "b.jar").write_bytes(b"b")
    target = tmp_path / "dst"
    target.mkdir()

    copied = copy_file(source / "a.jar", target)

    assert copied == target / "a.jar"
    assert copied.read_bytes() == b"a"
    assert delete_files_by_name(source, {"a.jar", "zzz.jar"}) == 1
    assert [path.name for path in dir_listing(source)] == ["b.jar"]


def test_copy_file_failure_is_reported(tmp_path: Path, error_records) -> None:
    """A failed copy returns None and logs a warning instead of raising."""

    assert copy_file(tmp_path / "missing.jar", tmp_path) is None
    assert error_records("COPY_FAILED")
