"""Acquisition of collation sources from command-line style arguments.

Each argument is classified once:

1. an argument containing a wildcard is expanded under the loader's root and
   every match is classified by the remaining rules;
2. a directory contributes its immediate children as :class:`FileEntry` values;
3. a ``.jar`` carrying ``Start-Class`` contributes its nested library members as
   :class:`ArchiveMemberEntry` values;
4. any other readable file contributes its lines as :class:`LiteralEntry`
   values (after log conversion where applicable).

Paths matching an exclusion glob are dropped before classification. A source
that cannot be read is still recorded, with no entries, so statistics over a
run stay comparable between sources.
"""

from __future__ import annotations

import os
import zipfile
from collections.abc import Iterable, Sequence
from pathlib import Path

from JarCDS.collation.conversion import read_class_names
from JarCDS.collation.entries import ArchiveMemberEntry, Entry, FileEntry, LiteralEntry
from JarCDS.constants import NESTED_ARCHIVE_SUFFIX, START_CLASS_ATTRIBUTE
from JarCDS.core.jars import iter_nested_archives, read_manifest
from JarCDS.core.paths import (
    GlobMatcher,
    absolutify,
    dir_listing,
    has_wildcards,
    is_excluded,
    walk_matching,
)
from JarCDS.logging import get_logger, log_event
from JarCDS.settings import CompareMode, ListConversion

__all__ = ["SourceLoader"]

LOGGER = get_logger(__name__, base_fields={"stage": "collate"})


class SourceLoader:
    """Turn path arguments into the ``{source name: entries}`` mapping collation needs."""

    def __init__(
        self,
        root: Path,
        *,
        exclusions: Iterable[str] = (),
        compare_mode: CompareMode = CompareMode.ROUGH,
        convert_lists: ListConversion = ListConversion.AUTO,
    ) -> None:
        self.root = root
        self.exclusions = [GlobMatcher(pattern) for pattern in exclusions]
        self.compare_mode = compare_mode
        self.convert_lists = convert_lists

    def load(self, arguments: Sequence[str]) -> dict[str, list[Entry]]:
        """Load every argument and return the sources in argument order."""

        sources: dict[str, list[Entry]] = {}
        for argument in arguments:
            if has_wildcards(argument):
                matches = walk_matching(self.root, argument, self.exclusions)
                log_event(
                    LOGGER, "debug", "Expanded glob pattern", pattern=argument, matches=len(matches)
                )
                for path in matches:
                    self._load_path(path, sources)
            else:
                self._load_path(absolutify(Path(argument), self.root), sources)
        log_event(LOGGER, "info", "Loaded sources", sources=len(sources))
        return sources

    def load_paths(self, paths: Sequence[Path]) -> dict[str, list[Entry]]:
        """Load concrete ``paths`` as given; glob characters in them are literal."""

        sources: dict[str, list[Entry]] = {}
        for path in paths:
            self._load_path(absolutify(path, self.root), sources)
        log_event(LOGGER, "info", "Loaded sources", sources=len(sources))
        return sources

    def _load_path(self, path: Path, sources: dict[str, list[Entry]]) -> None:
        if is_excluded(path, self.root, self.exclusions):
            log_event(LOGGER, "debug", "Source excluded by filter", path=str(path))
            return
        name = str(path)
        try:
            if path.is_dir():
                entries: list[Entry] | None = self._load_directory(path)
            elif path.name.lower().endswith(NESTED_ARCHIVE_SUFFIX) and os.access(path, os.R_OK):
                entries = self._load_fat_jar(path)
                if entries is None:
                    return
            elif path.is_file() and os.access(path, os.R_OK):
                entries = [LiteralEntry(line) for line in read_class_names(path, self.convert_lists)]
            else:
                log_event(
                    LOGGER,
                    "warning",
                    "Path does not point to an existing readable file; recorded as empty",
                    error_code="UNREADABLE_SOURCE",
                    path=name,
                )
                entries = []
        except (OSError, UnicodeDecodeError, zipfile.BadZipFile) as exc:
            log_event(
                LOGGER,
                "warning",
                "Failed to load source; recorded as empty",
                error_code="UNREADABLE_SOURCE",
                path=name,
                error=str(exc),
            )
            entries = []
        sources[name] = entries
        log_event(LOGGER, "debug", "Loaded source", path=name, entries=len(entries))

    def _load_directory(self, path: Path) -> list[Entry]:
        return [
            FileEntry(child, self.compare_mode)
            for child in dir_listing(path)
            if child.is_file() and not is_excluded(child, self.root, self.exclusions)
        ]

    def _load_fat_jar(self, path: Path) -> list[Entry] | None:
        with zipfile.ZipFile(path) as archive:
            manifest = read_manifest(archive)
            start_class = manifest.get(START_CLASS_ATTRIBUTE) if manifest is not None else None
            if not start_class or not start_class.strip():
                log_event(
                    LOGGER,
                    "warning",
                    "File is not a self-contained package or is malformed; skipped",
                    error_code="NOT_A_FAT_JAR",
                    path=str(path),
                )
                return None
            return [ArchiveMemberEntry.from_zipinfo(info) for info in iter_nested_archives(archive)]
