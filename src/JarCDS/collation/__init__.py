# === NAVMAP v1 ===
# {
#   "module": "JarCDS.collation.__init__",
#   "purpose": "Collation namespace: entry kinds, source loading, and the set engine.",
#   "sections": []
# }
# === /NAVMAP ===

"""Collation namespace: entry kinds, source loading, and the set engine.

Example:
    from JarCDS.collation import SourceLoader, collate

    sources = SourceLoader(root).load(["app*/lib"])
    result = collate(sources)
    print(sorted(result.intersection))
"""

from __future__ import annotations

from JarCDS.collation.conversion import convert_class_load_log, detect_list_type, read_class_names
from JarCDS.collation.engine import CollationResult, IntersectionStats, collate, write_lines
from JarCDS.collation.entries import (
    ArchiveMemberEntry,
    Entry,
    FileEntry,
    LiteralEntry,
    entries_equal,
    files_precisely_equal,
    files_roughly_equal,
)
from JarCDS.collation.loading import SourceLoader

__all__ = [
    "ArchiveMemberEntry",
    "CollationResult",
    "Entry",
    "FileEntry",
    "IntersectionStats",
    "LiteralEntry",
    "SourceLoader",
    "collate",
    "convert_class_load_log",
    "detect_list_type",
    "entries_equal",
    "files_precisely_equal",
    "files_roughly_equal",
    "read_class_names",
    "write_lines",
]
