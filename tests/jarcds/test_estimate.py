"""Shared-archive share estimates from class-loading logs."""

from __future__ import annotations

from pathlib import Path

import pytest

from JarCDS.estimate import EstimateSummary, LogEstimate, SourceType, detect_source_type, estimate_file, estimate_logs

LOG = (
    "[0.010s][info][class,load] java.lang.Object source: shared objects file\n"
    "[0.011s][info][class,load] java.lang.String source: shared objects file\n"
    "[0.012s][info][class,load] java.lang.Thread source: shared objects file\n"
    "[0.050s][info][class,load] app.Main source: file:/srv/app/classes/\n"
    "[0.051s][info][class,load] lib.Util source: jar:file:/srv/app/lib/util.jar!/\n"
    "[0.052s][info][gc] Using G1\n"
)


@pytest.mark.parametrize(
    ("record", "expected"),
    [
        ("x.Y source: shared objects file", SourceType.SHARED),
        ("x.Y source: file:/tmp/", SourceType.FILE),
        ("x.Y source: jar:file:/a.jar!/", SourceType.JAR),
        ("x.Y source: jrt:/java.base", SourceType.JRT),
        ("x.Y source: __JVM_DefineClass__", SourceType.OTHER),
    ],
)
def test_detect_source_type(record: str, expected: SourceType) -> None:
    assert detect_source_type(record) is expected


def test_estimate_file_counts_records(tmp_path: Path) -> None:
    log = tmp_path / "app.log"
    log.write_text(LOG, encoding="utf-8")

    estimate = estimate_file(log)

    assert estimate.counts == {SourceType.SHARED: 3, SourceType.FILE: 1, SourceType.JAR: 1}
    assert estimate.total == 5
    assert estimate.shared_percent == 60


def test_shared_percent_rounds_half_up(tmp_path: Path) -> None:
    estimate = LogEstimate(path=tmp_path, counts={SourceType.SHARED: 1, SourceType.JRT: 7})

    assert estimate.shared_percent == 13  # 12.5


def test_summary_ignores_logs_without_records(tmp_path: Path) -> None:
    """A log with no class-load records does not drag the minimum to zero."""

    summary = EstimateSummary(
        [
            LogEstimate(path=tmp_path / "a", counts={SourceType.SHARED: 1, SourceType.JAR: 1}),
            LogEstimate(path=tmp_path / "b", counts={SourceType.SHARED: 9, SourceType.JAR: 1}),
            LogEstimate(path=tmp_path / "c", counts={}),
        ]
    )

    assert summary.shares == [50, 90]
    assert summary.minimum == 50
    assert summary.maximum == 90
    assert summary.average == 70.0


def test_empty_summary() -> None:
    summary = EstimateSummary()

    assert (summary.minimum, summary.maximum, summary.average) == (0, 0, 0.0)


def test_estimate_logs_walks_patterns(tmp_path: Path) -> None:
    (tmp_path / "one").mkdir()
    (tmp_path / "one" / "run.log").write_text(LOG, encoding="utf-8")
    (tmp_path / "two").mkdir()
    (tmp_path / "two" / "run.log").write_text("[info][gc] nothing\n", encoding="utf-8")
    (tmp_path / "two" / "notes.txt").write_text(LOG, encoding="utf-8")

    summary = estimate_logs(tmp_path, ["*/*.log"])

    assert sorted(estimate.path.parent.name for estimate in summary.estimates) == ["one", "two"]
    assert summary.shares == [60]
