"""Stage D: strip shared libraries from each application and write its ``appcds.arg``."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from JarCDS.constants import APPCDS_ARGFILE_NAME, START_CLASS_FILE_NAME
from JarCDS.core.argfiles import render_private_argfile
from JarCDS.core.paths import delete_files_by_name, dir_listing
from JarCDS.logging import get_logger, log_event

__all__ = ["delete_common_libs", "rewrite_private"]

LOGGER = get_logger(__name__, base_fields={"stage": "private"})


def delete_common_libs(lib_dirs: Sequence[Path], shared_libs: Sequence[Path]) -> int:
    """Delete, by file name, every shared library from each directory in ``lib_dirs``."""

    names = {lib.name for lib in shared_libs}
    deleted = sum(delete_files_by_name(lib_dir, names) for lib_dir in lib_dirs)
    log_event(
        LOGGER,
        "info",
        "Removed shared libraries from application directories",
        shared=len(names),
        directories=len(lib_dirs),
        deleted=deleted,
    )
    return deleted


def rewrite_private(lib_dirs: Sequence[Path], shared_libs: Sequence[Path], jsa_path: Path) -> list[Path]:
    """Run stage D and return the written arg-files.

    Each arg-file lists the shared libraries first and the remaining private
    ones after them; its header comment states both counts.
    """

    delete_common_libs(lib_dirs, shared_libs)
    written: list[Path] = []
    for lib_dir in lib_dirs:
        private_libs = [path.absolute() for path in dir_listing(lib_dir)]
        start_class = (lib_dir.parent / START_CLASS_FILE_NAME).read_text(encoding="utf-8").strip()
        argfile = lib_dir.parent / APPCDS_ARGFILE_NAME
        argfile.write_text(
            render_private_argfile(
                jsa_path=jsa_path,
                shared_libs=shared_libs,
                private_libs=private_libs,
                start_class=start_class,
            ),
            encoding="utf-8",
        )
        log_event(
            LOGGER,
            "info",
            "Wrote application arg-file",
            argfile=str(argfile),
            shared=len(shared_libs),
            private=len(private_libs),
        )
        written.append(argfile)
    log_event(LOGGER, "info", "Prepared applications for class-data sharing", applications=len(written))
    return written
