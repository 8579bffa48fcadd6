"""Filesystem helpers shared by every JarCDS stage.

The stages only ever deal with flat directories of libraries, so the helpers
here stay simple: clean-or-create a directory, list its immediate
children in a stable order, copy a file next to its peers, and delete files by
name. Glob handling follows the conventions operators already use on the
command line: ``*`` and ``?`` stay within one path segment, ``**`` crosses
directories (``**/`` may also match nothing), ``{a,b}`` lists alternatives and
``[...]`` is a character class.
"""

from __future__ import annotations

import os
import re
import shutil
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from JarCDS.errors import InvalidPatternError
from JarCDS.logging import get_logger, log_event

__all__ = [
    "GlobMatcher",
    "absolutify",
    "copy_file",
    "delete_files_by_name",
    "dir_listing",
    "has_wildcards",
    "is_excluded",
    "prepare_dir",
    "walk_matching",
]

LOGGER = get_logger(__name__, base_fields={"stage": "core"})

_WILDCARD_CHARS = frozenset("*?[{")


def has_wildcards(argument: str) -> bool:
    """Return True when ``argument`` should be treated as a glob pattern."""

    return any(char in _WILDCARD_CHARS for char in argument)


def _translate_glob(pattern: str) -> str:
    """Translate a glob ``pattern`` into an anchored regular expression."""

    out: list[str] = []
    i, n = 0, len(pattern)
    in_group = 0
    while i < n:
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            start = i + 1
            if start < n and pattern[start] == "!":
                start += 1
            # a leading ']' is a member, not the end of the class
            if start < n and pattern[start] == "]":
                start += 1
            end = pattern.find("]", start)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = pattern[i + 1 : end]
                negate = body.startswith("!")
                if negate:
                    body = body[1:]
                body = body.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")
                if body.startswith("^"):
                    body = "\\" + body
                out.append("[" + ("^" if negate else "") + body + "]")
                i = end
        elif char == "{":
            in_group += 1
            out.append("(?:")
        elif char == "}" and in_group:
            in_group -= 1
            out.append(")")
        elif char == "," and in_group:
            out.append("|")
        elif char == "\\" and i + 1 < n:
            i += 1
            out.append(re.escape(pattern[i]))
        else:
            out.append(re.escape(char))
        i += 1
    if in_group:
        raise ValueError(f"Unbalanced '{{' in glob pattern: {pattern!r}")
    return "^" + "".join(out) + "$"


@dataclass(frozen=True)
class GlobMatcher:
    """Compiled glob pattern matched against POSIX-style path strings."""

    pattern: str
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        normalised = self.pattern.replace(os.sep, "/")
        try:
            regex = re.compile(_translate_glob(normalised))
        except (re.error, ValueError) as exc:
            raise InvalidPatternError(self.pattern, str(exc)) from exc
        object.__setattr__(self, "_regex", regex)

    def matches(self, path: Path | str) -> bool:
        """Return True when ``path`` (converted to POSIX form) matches the pattern."""

        text = path.as_posix() if isinstance(path, Path) else str(path).replace(os.sep, "/")
        return self._regex.match(text) is not None


def is_excluded(path: Path, root: Path, exclusions: Iterable[GlobMatcher]) -> bool:
    """Return True when ``path`` (absolute or relative to ``root``) matches an exclusion."""

    candidates = [path.as_posix()]
    try:
        candidates.append(path.relative_to(root).as_posix())
    except ValueError:
        pass
    return any(matcher.matches(text) for matcher in exclusions for text in candidates)


def walk_matching(
    root: Path,
    pattern: str,
    exclusions: Iterable[GlobMatcher] = (),
) -> list[Path]:
    """Return paths under ``root`` matching ``pattern`` minus any excluded ones.

    Relative patterns are matched against the path relative to ``root``;
    absolute patterns against the absolute path. Results are sorted so repeated
    runs visit inputs in the same order.
    """

    matcher = GlobMatcher(pattern)
    absolute = Path(pattern).is_absolute()
    exclusion_list = list(exclusions)
    matched: list[Path] = []
    for candidate in _walk(root):
        subject = candidate.as_posix() if absolute else candidate.relative_to(root).as_posix()
        if not matcher.matches(subject):
            continue
        if is_excluded(candidate, root, exclusion_list):
            log_event(LOGGER, "debug", "Path excluded by filter", path=str(candidate))
            continue
        matched.append(candidate)
    return sorted(matched)


def _walk(root: Path) -> Iterator[Path]:
    for current, dirnames, filenames in os.walk(root):
        dirnames.sort()
        base = Path(current)
        for name in dirnames:
            yield base / name
        for name in sorted(filenames):
            yield base / name


def absolutify(path: Path, root: Path) -> Path:
    """Return ``path`` resolved against ``root`` when it is relative."""

    return path if path.is_absolute() else root / path


def prepare_dir(dir_path: Path) -> Path:
    """Create ``dir_path``, first removing everything inside it if it already exists."""

    if dir_path.is_dir():
        removed = sum(1 for _ in dir_path.rglob("*"))
        shutil.rmtree(dir_path)
        log_event(
            LOGGER,
            "debug",
            "Directory already existed and was cleaned out",
            path=str(dir_path),
            removed_entries=removed,
        )
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def dir_listing(dir_path: Path) -> list[Path]:
    """Return the immediate children of ``dir_path`` sorted by name."""

    return sorted(dir_path.iterdir(), key=lambda p: p.name)


def copy_file(source_file: Path, target_dir: Path) -> Path | None:
    """Copy ``source_file`` into ``target_dir`` keeping its name and metadata.

    Returns the new path, or ``None`` when the copy failed; the failure is
    logged and left for the caller to count.
    """

    target_file = target_dir / source_file.name
    try:
        shutil.copy2(source_file, target_file)
    except OSError as exc:
        log_event(
            LOGGER,
            "warning",
            "Failed to copy file",
            error_code="COPY_FAILED",
            source=str(source_file),
            target=str(target_file),
            error=str(exc),
        )
        return None
    return target_file


def delete_files_by_name(dir_path: Path, names: Iterable[str]) -> int:
    """Delete the children of ``dir_path`` whose file name is in ``names``."""

    wanted = set(names)
    deleted = 0
    for child in dir_listing(dir_path):
        if child.name in wanted and child.is_file():
            child.unlink(missing_ok=True)
            deleted += 1
    return deleted
