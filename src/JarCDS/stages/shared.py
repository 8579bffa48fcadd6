# === NAVMAP v1 ===
# {
#   "module": "JarCDS.stages.shared",
#   "purpose": "Stage C: collect shared libraries and dump the shared class-data archive.",
#   "sections": [
#     {"id": "find-common-libs", "name": "find_common_libs", "anchor": "function-find-common-libs", "kind": "function"},
#     {"id": "copy-shared-libs", "name": "copy_shared_libs", "anchor": "function-copy-shared-libs", "kind": "function"},
#     {"id": "copy-files-by-list", "name": "copy_files_by_list", "anchor": "function-copy-files-by-list", "kind": "function"},
#     {"id": "write-shared-argfile", "name": "write_shared_argfile", "anchor": "function-write-shared-argfile", "kind": "function"},
#     {"id": "resolve-java-executable", "name": "resolve_java_executable", "anchor": "function-resolve-java-executable", "kind": "function"},
#     {"id": "run-archive-dump", "name": "run_archive_dump", "anchor": "function-run-archive-dump", "kind": "function"},
#     {"id": "build-shared", "name": "build_shared", "anchor": "function-build-shared", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Stage C: shared libraries and the shared archive.

The libraries present in every application's ``lib`` directory are copied
once into ``<out>/_shared/lib``, listed in ``<out>/_shared/list/classpath.arg``
and handed, together with the shared class list from stage A, to
``java -Xshare:dump``. The dump runs with ``<out>`` as its working directory,
inherits this process's standard streams, and is waited for without a
timeout. Any non-zero exit aborts the run.

Shared files are copied from the first library directory. Every other copy is
equal to it under the active comparison mode; in ``rough`` mode that means
equal name and size, not necessarily equal bytes.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import time
from collections.abc import Sequence
from pathlib import Path

from JarCDS.collation.engine import collate
from JarCDS.collation.loading import SourceLoader
from JarCDS.constants import (
    LIB_DIR_NAME,
    SHARED_ARCHIVE_PATH,
    SHARED_ARGFILE_PATH,
    SHARED_CLASS_LIST_PATH,
    SHARED_ROOT,
)
from JarCDS.core.argfiles import render_shared_argfile
from JarCDS.core.paths import copy_file, dir_listing, prepare_dir
from JarCDS.errors import ArchiveDumpError, ConfigurationError
from JarCDS.logging import get_logger, log_event
from JarCDS.settings import CompareMode

__all__ = [
    "build_dump_command",
    "build_shared",
    "copy_files_by_list",
    "copy_shared_libs",
    "find_common_libs",
    "resolve_java_executable",
    "run_archive_dump",
    "write_shared_argfile",
]

LOGGER = get_logger(__name__, base_fields={"stage": "shared"})


def find_common_libs(
    lib_dirs: Sequence[Path],
    *,
    root: Path,
    compare_mode: CompareMode = CompareMode.ROUGH,
) -> set[str]:
    """Return the file names of libraries present in every directory of ``lib_dirs``."""

    loader = SourceLoader(root, compare_mode=compare_mode)
    result = collate(loader.load_paths(lib_dirs))
    names = {Path(entry).name for entry in result.intersection}
    log_event(LOGGER, "info", "Found common libraries", common=len(names), applications=len(lib_dirs))
    return names


def copy_shared_libs(lib_dirs: Sequence[Path], out_dir: Path, names: set[str]) -> list[Path]:
    """Copy the libraries called ``names`` from the first directory into ``<out>/_shared/lib``.

    A partial copy is reported as a warning; the shared archive is then simply
    less complete than intended.
    """

    source_dir = lib_dirs[0]
    target_dir = prepare_dir(out_dir / SHARED_ROOT / LIB_DIR_NAME)
    copied: list[Path] = []
    for source_file in dir_listing(source_dir):
        if source_file.name not in names:
            continue
        target = copy_file(source_file, target_dir)
        if target is not None:
            copied.append(target.absolute())

    if len(copied) != len(names):
        log_event(
            LOGGER,
            "warning",
            "Not all common libraries were copied; shared archive may be incomplete",
            error_code="PARTIAL_SHARED_COPY",
            copied=len(copied),
            expected=len(names),
        )
    else:
        log_event(
            LOGGER,
            "info",
            "Copied common libraries",
            copied=len(copied),
            source=str(source_dir),
            target=str(target_dir),
        )
    return copied


def write_shared_argfile(out_dir: Path, shared_libs: Sequence[Path]) -> Path:
    """Write the shared classpath descriptor and return its path."""

    argfile = out_dir / SHARED_ARGFILE_PATH
    argfile.parent.mkdir(parents=True, exist_ok=True)
    argfile.write_text(render_shared_argfile(shared_libs), encoding="utf-8")
    log_event(LOGGER, "info", "Wrote shared arg-file", argfile=str(argfile), entries=len(shared_libs))
    return argfile


def copy_files_by_list(
    list_path: Path,
    target_dir: Path,
    *,
    base_dir: Path,
    argfile: Path | None = None,
) -> tuple[list[Path], int]:
    """Copy every file named in ``list_path`` into ``target_dir``.

    Relative names are resolved against ``base_dir``. When ``argfile`` is given
    (relative paths land next to ``target_dir``) a shared classpath descriptor
    listing the source files is written too.

    Returns:
        The copied files and the number of names in the list.
    """

    names = [line.strip() for line in list_path.read_text(encoding="utf-8").splitlines() if line.strip()]
    sources = [base_dir / name for name in names]
    log_event(LOGGER, "info", "Loaded file names from list", list=str(list_path), names=len(names))
    target_dir.mkdir(parents=True, exist_ok=True)
    copied = [target for target in (copy_file(source, target_dir) for source in sources) if target is not None]
    if len(copied) != len(sources):
        log_event(
            LOGGER,
            "warning",
            "Not all listed files were copied",
            error_code="PARTIAL_COPY",
            copied=len(copied),
            expected=len(sources),
        )
    else:
        log_event(LOGGER, "info", "Copied listed files", copied=len(copied), target=str(target_dir))

    if argfile is not None:
        argfile_path = argfile if argfile.is_absolute() else target_dir.parent / argfile
        argfile_path.parent.mkdir(parents=True, exist_ok=True)
        argfile_path.write_text(render_shared_argfile(sources), encoding="utf-8")
        log_event(LOGGER, "info", "Wrote shared arg-file", argfile=str(argfile_path), entries=len(sources))
    return copied, len(sources)


def resolve_java_executable(java_home: Path | None = None) -> str:
    """Locate ``java``: ``java_home``, then ``$JAVA_HOME``, then ``PATH``.

    Raises:
        ConfigurationError: no Java executable could be located.
    """

    executable = "java.exe" if os.name == "nt" else "java"
    home = java_home or (Path(os.environ["JAVA_HOME"]) if os.environ.get("JAVA_HOME") else None)
    if home is not None:
        return str(home / "bin" / executable)
    found = shutil.which("java")
    if found is None:
        raise ConfigurationError(
            "Cannot locate a Java executable; set --java-home or JAVA_HOME", stage="shared"
        )
    return found


def build_dump_command(java: str) -> list[str]:
    """Return the ``-Xshare:dump`` command line; paths are relative to the output directory."""

    return [
        java,
        "-Xshare:dump",
        f"-XX:SharedClassListFile={SHARED_CLASS_LIST_PATH}",
        f"-XX:SharedArchiveFile={SHARED_ARCHIVE_PATH}",
        f"@{SHARED_ARGFILE_PATH}",
    ]


def _run_command(command: Sequence[str], cwd: Path) -> int:
    return subprocess.run(list(command), cwd=cwd, check=False).returncode


def run_archive_dump(out_dir: Path, java_home: Path | None = None) -> None:
    """Run the archive dump in ``out_dir`` and wait for it to finish.

    Raises:
        ArchiveDumpError: the process could not be started or exited non-zero.
    """

    prepare_dir(out_dir / SHARED_ARCHIVE_PATH.parent)
    command = build_dump_command(resolve_java_executable(java_home))
    log_event(LOGGER, "info", "Starting archive dump", command=" ".join(command), cwd=str(out_dir))
    started = time.perf_counter()
    try:
        returncode = _run_command(command, out_dir)
    except OSError as exc:
        log_event(
            LOGGER,
            "error",
            "Failed to start archive dump",
            error_code="DUMP_NOT_STARTED",
            command=command[0],
            error=str(exc),
        )
        raise ArchiveDumpError(f"Failed to start {command[0]}: {exc}", returncode=-1) from exc
    elapsed_ms = round((time.perf_counter() - started) * 1000)
    if returncode != 0:
        log_event(
            LOGGER,
            "error",
            "Failed to create shared archive",
            error_code="DUMP_FAILED",
            returncode=returncode,
        )
        raise ArchiveDumpError(f"Archive dump exited with code {returncode}", returncode=returncode)
    log_event(LOGGER, "info", "Shared archive created", elapsed_ms=elapsed_ms)


def build_shared(
    lib_dirs: Sequence[Path],
    out_dir: Path,
    *,
    root: Path,
    compare_mode: CompareMode = CompareMode.ROUGH,
    java_home: Path | None = None,
) -> list[Path]:
    """Run stage C and return the absolute paths of the shared libraries."""

    names = find_common_libs(lib_dirs, root=root, compare_mode=compare_mode)
    shared_libs = copy_shared_libs(lib_dirs, out_dir, names)
    write_shared_argfile(out_dir, shared_libs)
    run_archive_dump(out_dir, java_home)
    return shared_libs
