"""Estimate how much of an application's class loading the shared archive serves.

Every record of a ``-Xlog:class+load`` log names the source a class came
from. Records read from the shared archive say ``source: shared objects file``;
the share of such records among all class-load records is the part of start-up
the archive takes care of.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from JarCDS.core.paths import walk_matching
from JarCDS.logging import get_logger, log_event

__all__ = [
    "EstimateSummary",
    "LogEstimate",
    "SourceType",
    "detect_source_type",
    "estimate_file",
    "estimate_logs",
]

LOGGER = get_logger(__name__, base_fields={"stage": "estimate"})

_RELEVANT_MARKER = " source: "


class SourceType(str, Enum):
    """Where a class was loaded from."""

    SHARED = "shared"
    FILE = "file"
    JAR = "jar"
    JRT = "jrt"
    OTHER = "other"


_SOURCE_MARKERS: tuple[tuple[str, SourceType], ...] = (
    ("source: shared", SourceType.SHARED),
    ("source: file:", SourceType.FILE),
    ("source: jar:", SourceType.JAR),
    ("source: jrt:", SourceType.JRT),
)


def detect_source_type(record: str) -> SourceType:
    for marker, source_type in _SOURCE_MARKERS:
        if marker in record:
            return source_type
    return SourceType.OTHER


@dataclass(frozen=True)
class LogEstimate:
    """Class source distribution of one log."""

    path: Path
    counts: dict[SourceType, int]

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def shared_percent(self) -> int:
        if self.total == 0:
            return 0
        return int(self.counts.get(SourceType.SHARED, 0) / self.total * 100.0 + 0.5)


@dataclass(frozen=True)
class EstimateSummary:
    estimates: list[LogEstimate] = field(default_factory=list)

    @property
    def shares(self) -> list[int]:
        return [estimate.shared_percent for estimate in self.estimates if estimate.total]

    @property
    def minimum(self) -> int:
        return min(self.shares, default=0)

    @property
    def maximum(self) -> int:
        return max(self.shares, default=0)

    @property
    def average(self) -> float:
        shares = self.shares
        return sum(shares) / len(shares) if shares else 0.0


def estimate_file(path: Path) -> LogEstimate:
    """Count class-load records of ``path`` by source type."""

    counts: Counter[SourceType] = Counter()
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for line in handle:
            if _RELEVANT_MARKER in line:
                counts[detect_source_type(line)] += 1
    estimate = LogEstimate(path=path, counts={kind: counts[kind] for kind in SourceType if counts[kind]})
    log_event(
        LOGGER,
        "info",
        "Estimated class sources",
        path=str(path),
        shared_percent=estimate.shared_percent,
        **{kind.value: count for kind, count in estimate.counts.items()},
    )
    return estimate


def estimate_logs(root: Path, patterns: Iterable[str]) -> EstimateSummary:
    """Estimate every log under ``root`` matching one of ``patterns``; unreadable logs are skipped."""

    estimates: list[LogEstimate] = []
    for pattern in patterns:
        for path in walk_matching(root, pattern):
            if not path.is_file():
                continue
            try:
                estimates.append(estimate_file(path))
            except OSError as exc:
                log_event(
                    LOGGER,
                    "warning",
                    "Failed to read class-loading log; skipped",
                    error_code="UNREADABLE_SOURCE",
                    path=str(path),
                    error=str(exc),
                )
    summary = EstimateSummary(estimates)
    log_event(
        LOGGER,
        "info",
        "Estimate finished",
        logs=len(summary.shares),
        shared_min=summary.minimum,
        shared_avg=round(summary.average),
        shared_max=summary.maximum,
    )
    return summary
