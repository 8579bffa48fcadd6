"""Rendering of ``java @argfile`` classpath descriptors.

Every descriptor spells the classpath as a single quoted token spread over
several lines: entries are joined by the platform path separator followed by
a backslash-newline continuation, so the JVM reads one long classpath while a
human reads one entry per line. Private descriptors also state how many
leading entries are shared; tooling downstream relies on that count matching
the actual entry order.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

from JarCDS.constants import MY_PRETTY_NAME, NEW_LINE, PATH_SEPARATOR

__all__ = [
    "COMMON_ARGFILE_INTRO",
    "PRIVATE_HEADER_LINES",
    "render_private_argfile",
    "render_shared_argfile",
    "render_single_argfile",
    "to_classpath",
]

COMMON_ARGFILE_INTRO = "-classpath" + NEW_LINE + "# Common (shared) classpath" + NEW_LINE

# lines preceding the first classpath entry in a private descriptor
PRIVATE_HEADER_LINES = 3

_PRIVATE_ARGFILE_TEMPLATE = (
    "-XX:SharedArchiveFile={jsa}" + NEW_LINE
    + "-classpath" + NEW_LINE
    + "# the first {shared} entries are shared and the last {private} entries "
    "(starting at line {first_private_line}) are private" + NEW_LINE
    + "{classpath}" + NEW_LINE
    + "# application's main class" + NEW_LINE
    + "{start_class}" + NEW_LINE
    + "# Carefully generated with " + MY_PRETTY_NAME + NEW_LINE
)

_SINGLE_ARGFILE_TEMPLATE = (
    "-classpath" + NEW_LINE
    + "# there are {total} entries in this classpath: 1 for the app itself and "
    "{libs} for its libraries " + NEW_LINE
    + "{classpath}" + NEW_LINE
    + "# application's main class" + NEW_LINE
    + "{start_class}" + NEW_LINE
    + "# Carefully generated with " + MY_PRETTY_NAME + NEW_LINE
)

_SINGLE_ARGFILE_PREFIX = "-XX:SharedArchiveFile={jsa}" + NEW_LINE


def _quote_entry(entry: Path | str) -> str:
    # backslashes are escape characters inside quoted argfile tokens
    return str(entry).replace("\\", "\\\\")


def to_classpath(entries: Iterable[Path | str]) -> str:
    """Join ``entries`` into the quoted, line-continued classpath token."""

    separator = f"{PATH_SEPARATOR}\\{NEW_LINE}  "
    return ' "' + separator.join(_quote_entry(entry) for entry in entries) + '"'


def render_shared_argfile(shared_libs: Sequence[Path]) -> str:
    """Return the descriptor used by the archive dump for the shared classpath."""

    return COMMON_ARGFILE_INTRO + to_classpath(shared_libs)


def render_private_argfile(
    *,
    jsa_path: Path,
    shared_libs: Sequence[Path],
    private_libs: Sequence[Path],
    start_class: str,
) -> str:
    """Return an application's descriptor: shared entries first, then private ones."""

    shared_count = len(shared_libs)
    return _PRIVATE_ARGFILE_TEMPLATE.format(
        jsa=jsa_path,
        shared=shared_count,
        private=len(private_libs),
        first_private_line=shared_count + PRIVATE_HEADER_LINES + 1,
        classpath=to_classpath([*shared_libs, *private_libs]),
        start_class=start_class,
    )


def render_single_argfile(
    *,
    libs: Sequence[Path],
    start_class: str,
    jsa_path: Path | None = None,
) -> str:
    """Return a standalone descriptor listing every library of one application."""

    content = _SINGLE_ARGFILE_TEMPLATE.format(
        total=len(libs),
        libs=max(len(libs) - 1, 0),
        classpath=to_classpath(libs),
        start_class=start_class,
    )
    if jsa_path is not None:
        content = _SINGLE_ARGFILE_PREFIX.format(jsa=jsa_path) + content
    return content
