# === NAVMAP v1 ===
# {
#   "module": "JarCDS.pipeline",
#   "purpose": "Run stages A to D against one output directory under the run lock.",
#   "sections": [
#     {"id": "pipelineresult", "name": "PipelineResult", "anchor": "class-pipelineresult", "kind": "class"},
#     {"id": "run-pipeline", "name": "run_pipeline", "anchor": "function-run-pipeline", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Run stages A to D against one output directory under the run lock.

Stages run strictly one after another; each reads only what the previous one
left on disk. The output directory is occupied for the whole run. The lock is
released whenever this run owns it, including when a stage fails, and left in
place when it belongs to another run.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path

from JarCDS.constants import MY_PRETTY_NAME
from JarCDS.core.concurrency import occupy_out_dir
from JarCDS.errors import AlreadyLockedError, ConfigurationError, NoEligiblePackagesError
from JarCDS.logging import get_logger, log_event
from JarCDS.settings import RunCfg
from JarCDS.stages.classlists import process_class_lists
from JarCDS.stages.eversion import EversionReport, evert_all
from JarCDS.stages.private import rewrite_private
from JarCDS.stages.shared import build_shared

__all__ = ["PipelineResult", "run_pipeline"]

LOGGER = get_logger(__name__, base_fields={"stage": "pipeline"})


@dataclass
class PipelineResult:
    """Artifacts produced by a successful run."""

    out_dir: Path
    class_list_path: Path
    eversion: EversionReport
    shared_libs: list[Path] = field(default_factory=list)
    argfiles: list[Path] = field(default_factory=list)
    elapsed_ms: int = 0


def _validate_root(root: Path) -> None:
    if not root.is_absolute():
        log_event(
            LOGGER,
            "error",
            "Work directory must be absolute",
            error_code="RELATIVE_WORK_DIR",
            work_dir=str(root),
        )
        raise ConfigurationError(f"Work directory must be absolute: {root}")


def run_pipeline(settings: RunCfg) -> PipelineResult:
    """Prepare every application matched by ``settings`` for class-data sharing.

    Raises:
        ConfigurationError: ``work_dir`` is relative (checked before locking).
        AlreadyLockedError: another run owns the output directory.
        EmptyInputError: no class list was found.
        NoEligiblePackagesError: no package could be everted.
        ArchiveDumpError: the archive dump failed.
    """

    root = settings.work_dir
    _validate_root(root)
    out_dir = settings.resolved_out_dir
    log_event(
        LOGGER,
        "info",
        f"{MY_PRETTY_NAME} has been called",
        class_lists=settings.class_lists,
        fat_jars=settings.fat_jars,
        out_dir=str(out_dir),
        exclusions=settings.exclusions,
        work_dir=str(root),
        compare_mode=settings.compare_mode.value,
    )
    started = time.perf_counter()
    try:
        with occupy_out_dir(out_dir):
            # Stage A
            class_list_path = process_class_lists(
                root,
                settings.class_lists,
                out_dir,
                exclusions=settings.exclusions,
                convert_lists=settings.convert_lists,
            )
            # Stage B
            report = evert_all(root, settings.fat_jars, exclusions=settings.exclusions)
            if not report.lib_dirs:
                log_event(
                    LOGGER,
                    "error",
                    "No self-contained packages were processed",
                    error_code="NO_FAT_JARS",
                    patterns=settings.fat_jars,
                )
                raise NoEligiblePackagesError(
                    f"No self-contained packages were processed by {settings.fat_jars!r}",
                    stage="evert",
                )
            # Stage C
            shared_libs = build_shared(
                report.lib_dirs,
                out_dir,
                root=root,
                compare_mode=settings.compare_mode,
                java_home=settings.java_home,
            )
            # Stage D
            argfiles = rewrite_private(report.lib_dirs, shared_libs, settings.shared_archive_path)
    except AlreadyLockedError as exc:
        # the marker belongs to the other run
        log_event(
            LOGGER,
            "warning",
            "Output directory is already occupied by another run; retry later, remove the "
            "lock file manually or choose another output directory",
            error_code="ALREADY_LOCKED",
            lock_path=str(exc.lock_path),
        )
        raise

    elapsed_ms = round((time.perf_counter() - started) * 1000)
    log_event(LOGGER, "info", f"{MY_PRETTY_NAME} run finished", elapsed_ms=elapsed_ms)
    return PipelineResult(
        out_dir=out_dir,
        class_list_path=class_list_path,
        eversion=report,
        shared_libs=shared_libs,
        argfiles=argfiles,
        elapsed_ms=elapsed_ms,
    )
