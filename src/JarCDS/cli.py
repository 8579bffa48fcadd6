# === NAVMAP v1 ===
# {
#   "module": "JarCDS.cli",
#   "purpose": "Typer command-line interface for JarCDS.",
#   "sections": [
#     {"id": "root-callback", "name": "root_callback", "anchor": "function-root-callback", "kind": "function"},
#     {"id": "run", "name": "run", "anchor": "function-run", "kind": "function"},
#     {"id": "collate-command", "name": "collate_command", "anchor": "function-collate-command", "kind": "function"},
#     {"id": "evert-command", "name": "evert_command", "anchor": "function-evert-command", "kind": "function"},
#     {"id": "convert-command", "name": "convert_command", "anchor": "function-convert-command", "kind": "function"},
#     {"id": "list-classes-command", "name": "list_classes_command", "anchor": "function-list-classes-command", "kind": "function"},
#     {"id": "copy-by-list-command", "name": "copy_by_list_command", "anchor": "function-copy-by-list-command", "kind": "function"},
#     {"id": "estimate-command", "name": "estimate_command", "anchor": "function-estimate-command", "kind": "function"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Typer command-line interface for JarCDS.

``jarcds run`` is the whole pipeline; the other commands expose its building
blocks for manual use. Exit codes:

- ``0`` success
- ``1`` the output directory is occupied by another run
- ``2`` a stage could not continue (including a failed archive dump) or an
  option was invalid
- ``3`` unexpected internal error (traceback is logged)
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Annotated, Optional, TypeVar

import typer
from pydantic import ValidationError

from JarCDS import __version__
from JarCDS.collation.engine import collate, write_lines
from JarCDS.collation.loading import SourceLoader
from JarCDS.constants import (
    APPCDS_ARGFILE_NAME,
    APPCDS_ERROR_EXIT_CODE,
    INTERNAL_ERROR_EXIT_CODE,
    MY_NAME,
    MY_PRETTY_NAME,
)
from JarCDS.core.jars import list_class_names
from JarCDS.core.paths import absolutify, dir_listing
from JarCDS.errors import CLIValidationError, EmptyInputError, JarCDSError, format_cli_error
from JarCDS.estimate import estimate_logs
from JarCDS.logging import get_logger, setup_logging
from JarCDS.pipeline import run_pipeline
from JarCDS.settings import CompareMode, ListConversion, LogFormat, LogLevel, RunCfg, build_settings
from JarCDS.stages.eversion import convert_to_slim, evert_all, write_single_argfiles
from JarCDS.stages.shared import copy_files_by_list

__all__ = ["app", "main"]

LOGGER = get_logger(__name__, base_fields={"stage": "cli"})

T = TypeVar("T")

# ============================================================================
# CLI Application Setup
# ============================================================================

app = typer.Typer(
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
    help=f"[bold]{MY_PRETTY_NAME}[/bold]: prepare a class-data sharing archive common to several "
    "self-contained Java applications.",
)

WorkDirOption = Annotated[
    Optional[Path],
    typer.Option("--work-dir", "-w", help="Absolute root directory of the applications"),
]
ExclusionOption = Annotated[
    Optional[list[str]],
    typer.Option("--exclusion", "-e", help="Glob pattern of paths to skip (repeatable)"),
]


def _execute(action: Callable[[], T]) -> T:
    """Run ``action`` and translate recognised failures into exit codes."""

    try:
        return action()
    except CLIValidationError as exc:
        typer.secho(format_cli_error(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=APPCDS_ERROR_EXIT_CODE) from exc
    except ValidationError as exc:
        typer.secho(f"✗ Invalid configuration: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=APPCDS_ERROR_EXIT_CODE) from exc
    except JarCDSError as exc:
        typer.secho(f"✗ {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=exc.exit_code) from exc
    except Exception as exc:
        LOGGER.exception(
            "Unexpected internal error",
            extra={"extra_fields": {"error_code": "INTERNAL_ERROR", "error": str(exc)}},
        )
        typer.secho(f"✗ Internal error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=INTERNAL_ERROR_EXIT_CODE) from exc


def _root(work_dir: Optional[Path]) -> Path:
    root = work_dir if work_dir is not None else Path.cwd()
    if not root.is_absolute():
        raise CLIValidationError(option="--work-dir", message="must be an absolute path")
    return root


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{MY_NAME} {__version__}")
        raise typer.Exit()


# ============================================================================
# Root Callback (Global Options)
# ============================================================================


@app.callback()
def root_callback(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = False,
    log_level: Annotated[
        Optional[LogLevel], typer.Option("--log-level", help="Logging level")
    ] = None,
    log_format: Annotated[
        Optional[LogFormat], typer.Option("--log-format", help="console or json")
    ] = None,
    log_file: Annotated[
        Optional[Path], typer.Option("--log-file", help="Also write JSON lines to this file")
    ] = None,
) -> None:
    """
    [bold yellow]Precedence:[/bold yellow] CLI args > ENV vars (JARCDS_*) > defaults

    [bold yellow]Example:[/bold yellow]
    [cyan]jarcds run -w /srv/apps -c '**/classes.list' -f '*/build/libs/*.jar'[/cyan]
    """

    overrides = {"log_level": log_level, "log_format": log_format, "log_file": log_file}
    settings = _execute(lambda: build_settings(**overrides))
    setup_logging(
        level=settings.log_level.value,
        fmt=settings.log_format.value,
        log_file=settings.log_file,
    )
    ctx.obj = overrides


# ============================================================================
# Pipeline
# ============================================================================


@app.command()
def run(
    ctx: typer.Context,
    work_dir: WorkDirOption = None,
    class_lists: Annotated[
        Optional[list[str]],
        typer.Option("--class-lists", "-c", help="Class list file, directory or glob (repeatable)"),
    ] = None,
    fat_jars: Annotated[
        Optional[list[str]],
        typer.Option("--fat-jars", "-f", help="Self-contained package path or glob (repeatable)"),
    ] = None,
    out_dir: Annotated[
        Optional[Path], typer.Option("--out-dir", "-o", help="Shared output directory")
    ] = None,
    exclusions: ExclusionOption = None,
    compare_mode: Annotated[
        Optional[CompareMode], typer.Option("--compare-mode", help="rough (name+size) or precise")
    ] = None,
    convert_lists: Annotated[
        Optional[ListConversion],
        typer.Option("--convert-lists", help="Convert class-loading logs: on, off or auto"),
    ] = None,
    java_home: Annotated[
        Optional[Path], typer.Option("--java-home", help="JDK used for the archive dump")
    ] = None,
) -> None:
    """Run all stages: class lists, eversion, shared archive, private arg-files."""

    def action() -> None:
        settings: RunCfg = build_settings(
            **(ctx.obj or {}),
            work_dir=work_dir,
            out_dir=out_dir,
            class_lists=class_lists or None,
            fat_jars=fat_jars or None,
            exclusions=exclusions or None,
            compare_mode=compare_mode,
            convert_lists=convert_lists,
            java_home=java_home,
        )
        if not settings.class_lists:
            raise CLIValidationError(
                option="--class-lists",
                message="at least one class list path or glob is required",
                hint="or set JARCDS_CLASS_LISTS",
            )
        if not settings.fat_jars:
            raise CLIValidationError(
                option="--fat-jars",
                message="at least one package path or glob is required",
                hint="or set JARCDS_FAT_JARS",
            )
        result = run_pipeline(settings)
        typer.secho(
            f"✓ Prepared {len(result.argfiles)} application(s) with "
            f"{len(result.shared_libs)} shared libraries in {result.elapsed_ms} ms",
            fg=typer.colors.GREEN,
        )

    _execute(action)


# ============================================================================
# Building blocks
# ============================================================================


@app.command("collate")
def collate_command(
    sources: Annotated[list[str], typer.Argument(help="Lists, directories, packages or globs")],
    work_dir: WorkDirOption = None,
    exclusions: ExclusionOption = None,
    compare_mode: Annotated[
        CompareMode, typer.Option("--compare-mode", help="rough (name+size) or precise")
    ] = CompareMode.ROUGH,
    convert_lists: Annotated[
        ListConversion, typer.Option("--convert-lists", help="Convert class-loading logs")
    ] = ListConversion.AUTO,
    merging_out: Annotated[
        Optional[Path], typer.Option("--merging-out", "-m", help="Write the merging here")
    ] = None,
    intersection_out: Annotated[
        Optional[Path], typer.Option("--intersection-out", "-i", help="Write the intersection here")
    ] = None,
) -> None:
    """Compute the intersection and merging of several sources."""

    def action() -> None:
        root = _root(work_dir)
        loader = SourceLoader(
            root, exclusions=exclusions or (), compare_mode=compare_mode, convert_lists=convert_lists
        )
        loaded = loader.load(sources)
        if not loaded:
            raise EmptyInputError(f"No sources found by {sources!r}", stage="collate")
        result = collate(loaded)
        if merging_out is not None:
            write_lines(absolutify(merging_out, root), result.sorted_merging())
        if intersection_out is not None:
            write_lines(absolutify(intersection_out, root), result.sorted_intersection())
        typer.echo(
            f"sources={len(loaded)} merging={len(result.merging)} "
            f"intersection={len(result.intersection)}"
        )

    _execute(action)


@app.command("evert")
def evert_command(
    fat_jars: Annotated[list[str], typer.Argument(help="Package paths or globs")],
    work_dir: WorkDirOption = None,
    exclusions: ExclusionOption = None,
    out_dir: Annotated[
        Optional[Path],
        typer.Option("--out-dir", "-o", help="Output directory; defaults to each package's directory"),
    ] = None,
    argfile_name: Annotated[
        str, typer.Option("--arg-file-name", "-a", help="Arg-file written next to each lib directory")
    ] = APPCDS_ARGFILE_NAME,
    no_argfile: Annotated[
        bool, typer.Option("--no-arg-file", help="Do not write arg-files")
    ] = False,
    jsa_path: Annotated[
        Optional[Path], typer.Option("--jsa-path", "-j", help="Shared archive to reference in arg-files")
    ] = None,
) -> None:
    """Extract the libraries of self-contained packages."""

    def action() -> None:
        root = _root(work_dir)
        target = absolutify(out_dir, root) if out_dir is not None else None
        report = evert_all(root, fat_jars, exclusions=exclusions or (), out_dir=target)
        if not no_argfile:
            write_single_argfiles(report.lib_dirs, argfile_name=argfile_name, jsa_path=jsa_path)
        for lib_dir in report.lib_dirs:
            typer.echo(str(lib_dir))
        if report.skipped:
            typer.secho(f"Skipped {len(report.skipped)} non self-contained package(s)", err=True)

    _execute(action)


@app.command("convert")
def convert_command(
    input_jar: Annotated[Path, typer.Option("--input-jar", "-i", help="Self-contained package")],
    output_dir: Annotated[
        Optional[Path], typer.Option("--output-dir", "-o", help="Defaults to the package's directory")
    ] = None,
) -> None:
    """Write a slim copy (``<name>.slim.jar``) of a self-contained package."""

    def action() -> None:
        if not input_jar.is_file():
            raise CLIValidationError(option="--input-jar", message=f"no such file: {input_jar}")
        slim = convert_to_slim(input_jar, output_dir)
        if slim is None:
            typer.secho("Package has no application classes; nothing written", err=True)
        else:
            typer.echo(str(slim))

    _execute(action)


@app.command("list-classes")
def list_classes_command(
    path: Annotated[Path, typer.Argument(help="A jar or a directory of jars")],
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Write the list here instead of stdout")
    ] = None,
) -> None:
    """List the classes stored in jars, sorted and de-duplicated."""

    def action() -> None:
        if path.is_dir():
            jars = [child for child in dir_listing(path) if child.suffix.lower() == ".jar"]
        elif path.is_file():
            jars = [path]
        else:
            raise CLIValidationError(option="PATH", message=f"no such file or directory: {path}")
        classes: set[str] = set()
        for jar in jars:
            classes.update(list_class_names(jar))
        ordered = sorted(classes)
        if output is not None:
            write_lines(output, ordered)
        else:
            for name in ordered:
                typer.echo(name)

    _execute(action)


@app.command("copy-by-list")
def copy_by_list_command(
    list_path: Annotated[Path, typer.Option("--list", "-l", help="File naming one file to copy per line")],
    target_dir: Annotated[Path, typer.Option("--target", "-t", help="Directory receiving the copies")],
    base_dir: Annotated[
        Optional[Path],
        typer.Option("--base-dir", "-b", help="Directory the listed names are resolved against"),
    ] = None,
    argfile: Annotated[
        Optional[Path],
        typer.Option("--arg-file", "-a", help="Also write a shared classpath arg-file (relative: next to --target)"),
    ] = None,
) -> None:
    """Copy the files named in a list into a directory."""

    def action() -> None:
        if not list_path.is_file():
            raise CLIValidationError(option="--list", message=f"no such file: {list_path}")
        base = base_dir if base_dir is not None else Path.cwd()
        copied, expected = copy_files_by_list(list_path, target_dir, base_dir=base, argfile=argfile)
        typer.echo(f"copied={len(copied)} expected={expected}")

    _execute(action)


@app.command("estimate")
def estimate_command(
    patterns: Annotated[list[str], typer.Argument(help="Globs of class-loading logs")],
    work_dir: WorkDirOption = None,
) -> None:
    """Estimate the share of classes served from the shared archive."""

    def action() -> None:
        summary = estimate_logs(_root(work_dir), patterns)
        for estimate in summary.estimates:
            typer.echo(f"{estimate.path}: {estimate.shared_percent}%")
        typer.echo(
            f"min={summary.minimum}% avg={summary.average:.0f}% max={summary.maximum}% "
            f"cnt={len(summary.shares)}"
        )

    _execute(action)


def main() -> None:
    """Console-script entry point."""

    app(prog_name=MY_NAME)


if __name__ == "__main__":
    main()
