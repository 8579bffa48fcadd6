# === NAVMAP v1 ===
# {
#   "module": "JarCDS.collation.engine",
#   "purpose": "Set collation (intersection, merging, owns) over named entry sources.",
#   "sections": [
#     {"id": "intersectionstats", "name": "IntersectionStats", "anchor": "class-intersectionstats", "kind": "class"},
#     {"id": "collationresult", "name": "CollationResult", "anchor": "class-collationresult", "kind": "class"},
#     {"id": "collate", "name": "collate", "anchor": "function-collate", "kind": "function"},
#     {"id": "write-lines", "name": "write_lines", "anchor": "function-write-lines", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Set collation over named sources of entries.

Given ``{source name: entries}`` the engine derives three sets:

``intersection``
    entries present in every source,
``merging``
    entries present in any source,
``owns``
    for each source, its own entries minus the intersection.

All three are computed purely from entry equality and hashing, so the order in
which sources are supplied only affects which equal representative survives,
never the resulting sets. ``merging`` and ``intersection`` are normalised to
strings because that is what every consumer writes to disk.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from JarCDS.collation.entries import Entry
from JarCDS.constants import NEW_LINE
from JarCDS.errors import EmptyInputError
from JarCDS.logging import get_logger, log_event

__all__ = [
    "CollationResult",
    "IntersectionStats",
    "collate",
    "write_lines",
]

LOGGER = get_logger(__name__, base_fields={"stage": "collate"})


@dataclass(frozen=True)
class IntersectionStats:
    """Diagnostic figures describing how much of each source is shared."""

    list_size_min: int
    list_size_avg: float
    list_size_max: int
    list_count: int
    merged_size: int
    intersection_size: int
    share_min: int
    share_avg: float
    share_max: int


@dataclass(frozen=True)
class CollationResult:
    """Immutable outcome of one :func:`collate` call."""

    merging: frozenset[str]
    intersection: frozenset[str]
    owns: Mapping[str, tuple[Entry, ...]] = field(default_factory=dict)
    intersection_entries: frozenset[Entry] = field(default_factory=frozenset, repr=False)
    stats: IntersectionStats | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "owns", MappingProxyType(dict(self.owns)))

    def sorted_intersection(self) -> list[str]:
        return sorted(self.intersection)

    def sorted_merging(self) -> list[str]:
        return sorted(self.merging)


def _share_percent(intersection_size: int, source_size: int) -> int:
    if source_size == 0:
        return 0
    # half-up rounding of the percentage
    return int(math.floor(intersection_size / source_size * 100.0 + 0.5))


def _compute_stats(
    sources: Mapping[str, Sequence[Entry]], merged_size: int, intersection_size: int
) -> IntersectionStats:
    sizes = [len(entries) for entries in sources.values()]
    shares = [_share_percent(intersection_size, size) for size in sizes]
    return IntersectionStats(
        list_size_min=min(sizes),
        list_size_avg=sum(sizes) / len(sizes),
        list_size_max=max(sizes),
        list_count=len(sizes),
        merged_size=merged_size,
        intersection_size=intersection_size,
        share_min=min(shares),
        share_avg=sum(shares) / len(shares),
        share_max=max(shares),
    )


def collate(sources: Mapping[str, Sequence[Entry]]) -> CollationResult:
    """Collate ``sources`` into intersection, merging and owns.

    Args:
        sources: Mapping from source name to its entries. A source that failed
            to load is expected to be present with an empty sequence.

    Returns:
        The :class:`CollationResult` for ``sources``.

    Raises:
        EmptyInputError: ``sources`` is empty, i.e. no source was loaded at all.
    """

    if not sources:
        raise EmptyInputError("No sources were loaded; nothing to collate", stage="collate")

    iterator = iter(sources.values())
    intersection: set[Entry] = set(next(iterator))
    for entries in iterator:
        other = set(entries)
        intersection = {entry for entry in intersection if entry in other}

    merged: set[Entry] = set()
    for entries in sources.values():
        merged.update(entries)

    owns = {
        name: tuple(entry for entry in entries if entry not in intersection)
        for name, entries in sources.items()
    }

    stats = _compute_stats(sources, len(merged), len(intersection))
    log_event(
        LOGGER,
        "info",
        "Collation finished",
        list_size_min=stats.list_size_min,
        list_size_avg=round(stats.list_size_avg),
        list_size_max=stats.list_size_max,
        list_count=stats.list_count,
        merged_size=stats.merged_size,
        intersection_size=stats.intersection_size,
        intersection_share_min=stats.share_min,
        intersection_share_avg=round(stats.share_avg),
        intersection_share_max=stats.share_max,
    )
    return CollationResult(
        merging=frozenset(str(entry) for entry in merged),
        intersection=frozenset(str(entry) for entry in intersection),
        owns=owns,
        intersection_entries=frozenset(intersection),
        stats=stats,
    )


def write_lines(path: Path, lines: Iterable[str]) -> int:
    """Write ``lines`` to ``path`` (one per line, creating parents) and return the count."""

    items = list(lines)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(item + NEW_LINE for item in items), encoding="utf-8")
    return len(items)
