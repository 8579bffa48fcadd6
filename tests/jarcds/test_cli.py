"""Typer CLI wiring and exit codes."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from JarCDS import __version__
from JarCDS.cli import app
from JarCDS.core.concurrency import acquire_run_lock
from JarCDS.stages import shared

runner = CliRunner()

COMMON = {"common.jar": b"c" * 32}


@pytest.fixture
def workspace(tmp_path: Path, make_fat_jar) -> Path:
    for app_name in ("a", "b"):
        make_fat_jar(tmp_path / app_name / f"{app_name}.jar", libs={**COMMON, f"{app_name}.jar": b"p"})
        (tmp_path / app_name / "classes.list").write_text("java/lang/Object\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def dump_exit(monkeypatch: pytest.MonkeyPatch) -> dict[str, int]:
    """Replace the dump runner; tests set ``code`` to choose its exit status."""

    state = {"code": 0, "calls": 0}

    def fake_run(command, cwd):
        state["calls"] += 1
        return state["code"]

    monkeypatch.setattr(shared, "_run_command", fake_run)
    return state


def _run_args(root: Path) -> list[str]:
    return [
        "run",
        "--work-dir",
        str(root),
        "--class-lists",
        "*/classes.list",
        "--fat-jars",
        "*/*.jar",
        "--java-home",
        str(root / "jdk"),
    ]


def test_root_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("run", "collate", "evert", "convert", "list-classes", "estimate"):
        assert command in result.output


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_succeeds(workspace: Path, dump_exit) -> None:
    result = runner.invoke(app, _run_args(workspace))

    assert result.exit_code == 0, result.output
    assert dump_exit["calls"] == 1
    assert (workspace / "a" / "a" / "appcds.arg").is_file()


def test_run_reports_occupied_output(workspace: Path, dump_exit) -> None:
    """An occupied output directory exits with 1 and keeps the marker."""

    lock = acquire_run_lock(workspace / "_appcds")
    try:
        result = runner.invoke(app, _run_args(workspace))
        assert result.exit_code == 1
        assert lock.path.exists()
    finally:
        lock.release()


def test_run_reports_dump_failure(workspace: Path, dump_exit) -> None:
    dump_exit["code"] = 1

    result = runner.invoke(app, _run_args(workspace))

    assert result.exit_code == 2
    assert not (workspace / "_appcds" / ".lock").exists()


def test_run_reports_internal_error(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Unexpected failures exit with 3 after releasing the lock."""

    def explode(command, cwd):
        raise KeyError("unexpected")

    monkeypatch.setattr(shared, "_run_command", explode)

    result = runner.invoke(app, _run_args(workspace))

    assert result.exit_code == 3
    assert not (workspace / "_appcds" / ".lock").exists()


def test_run_requires_class_lists(workspace: Path) -> None:
    result = runner.invoke(app, ["run", "--work-dir", str(workspace), "--fat-jars", "*/*.jar"])

    assert result.exit_code == 2
    assert "--class-lists" in result.output


def test_run_reads_patterns_from_environment(
    workspace: Path, dump_exit, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Comma-separated environment values stand in for missing options."""

    monkeypatch.setenv("JARCDS_CLASS_LISTS", "a/classes.list,b/classes.list")
    monkeypatch.setenv("JARCDS_FAT_JARS", "*/*.jar")
    monkeypatch.setenv("JARCDS_JAVA_HOME", str(workspace / "jdk"))

    result = runner.invoke(app, ["run", "--work-dir", str(workspace)])

    assert result.exit_code == 0, result.output
    assert dump_exit["calls"] == 1


def test_collate_writes_outputs(tmp_path: Path) -> None:
    (tmp_path / "one.list").write_text("a\nb\nc\n", encoding="utf-8")
    (tmp_path / "two.list").write_text("b\nc\nd\n", encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "collate",
            "*.list",
            "--work-dir",
            str(tmp_path),
            "--merging-out",
            "out/merged.list",
            "--intersection-out",
            "out/common.list",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "intersection=2" in result.output
    assert (tmp_path / "out" / "common.list").read_text(encoding="utf-8") == "b\nc\n"
    assert (tmp_path / "out" / "merged.list").read_text(encoding="utf-8") == "a\nb\nc\nd\n"


def test_collate_without_sources(tmp_path: Path) -> None:
    result = runner.invoke(app, ["collate", "*.list", "--work-dir", str(tmp_path)])

    assert result.exit_code == 2


def test_evert_command(workspace: Path) -> None:
    result = runner.invoke(app, ["evert", "*/*.jar", "--work-dir", str(workspace), "--jsa-path", "/x.jsa"])

    assert result.exit_code == 0, result.output
    argfile = workspace / "a" / "a" / "appcds.arg"
    assert argfile.read_text(encoding="utf-8").startswith("-XX:SharedArchiveFile=")


def test_convert_command(tmp_path: Path, make_fat_jar) -> None:
    jar = make_fat_jar(tmp_path / "svc.jar", libs=COMMON, classes={"svc/Main.class": b"m"})

    result = runner.invoke(app, ["convert", "--input-jar", str(jar)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "svc.slim.jar").is_file()


def test_list_classes_command(tmp_path: Path, jar_writer) -> None:
    jar_writer(tmp_path / "libs" / "one.jar", {"b/B.class": b"", "a/A.class": b""})
    jar_writer(tmp_path / "libs" / "two.jar", {"a/A.class": b"", "c/C.class": b""})

    result = runner.invoke(app, ["list-classes", str(tmp_path / "libs"), "-o", str(tmp_path / "out.list")])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out.list").read_text(encoding="utf-8") == "a/A\nb/B\nc/C\n"


def test_estimate_command(tmp_path: Path) -> None:
    (tmp_path / "app.log").write_text(
        "[info][class,load] a.A source: shared objects file\n"
        "[info][class,load] b.B source: jrt:/java.base\n",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["estimate", "*.log", "--work-dir", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "min=50% avg=50% max=50% cnt=1" in result.output


def test_copy_by_list_command(tmp_path: Path) -> None:
    (tmp_path / "a.jar").write_bytes(b"a")
    (tmp_path / "b.jar").write_bytes(b"b")
    listing = tmp_path / "shared.list"
    listing.write_text("a.jar\nb.jar\n", encoding="utf-8")

    result = runner.invoke(
        app,
        [
            "copy-by-list",
            "--list",
            str(listing),
            "--target",
            str(tmp_path / "copies"),
            "--base-dir",
            str(tmp_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "copied=2 expected=2" in result.output
    assert sorted(path.name for path in (tmp_path / "copies").iterdir()) == ["a.jar", "b.jar"]


def test_copy_by_list_requires_existing_list(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["copy-by-list", "--list", str(tmp_path / "none.list"), "--target", str(tmp_path / "t")]
    )

    assert result.exit_code == 2
    assert "--list" in result.output


def test_invalid_glob_is_reported_as_bad_input(tmp_path: Path) -> None:
    """A pattern that cannot be compiled exits with 2, not as an internal error."""

    result = runner.invoke(app, ["collate", "[z-a]*.list", "--work-dir", str(tmp_path)])

    assert result.exit_code == 2
    assert "Invalid glob pattern" in result.output
