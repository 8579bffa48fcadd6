# === NAVMAP v1 ===
# {
#   "module": "JarCDS.core.concurrency",
#   "purpose": "Run-level mutual exclusion for JarCDS output directories.",
#   "sections": [
#     {"id": "runlock", "name": "RunLock", "anchor": "class-runlock", "kind": "class"},
#     {"id": "acquire-run-lock", "name": "acquire_run_lock", "anchor": "function-acquire-run-lock", "kind": "function"},
#     {"id": "occupy-out-dir", "name": "occupy_out_dir", "anchor": "function-occupy-out-dir", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Run-level mutual exclusion for JarCDS output directories.

Two pipeline runs must never write into the same output directory at once.
Ownership is expressed by a zero-byte ``.lock`` marker created with the
platform's exclusive-create primitive (via :class:`filelock.SoftFileLock`), so
there is no window between checking for the marker and creating it. The
marker is a *soft* lock: it stays on disk while its owner runs and
is only removed by that owner's :meth:`RunLock.release`. A run that fails to
acquire the marker raises :class:`~JarCDS.errors.AlreadyLockedError` and must
leave the marker alone.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from pathlib import Path

from filelock import SoftFileLock, Timeout

from JarCDS.constants import LOCK_FILE_NAME
from JarCDS.errors import AlreadyLockedError
from JarCDS.logging import get_logger, log_event

__all__ = [
    "RunLock",
    "acquire_run_lock",
    "lock_path_for",
    "occupy_out_dir",
]

LOGGER = get_logger(__name__, base_fields={"stage": "lock"})


def lock_path_for(out_dir: Path) -> Path:
    """Return the marker path guarding ``out_dir``."""

    return out_dir / LOCK_FILE_NAME


class RunLock:
    """Ownership of an output directory for the duration of one pipeline run."""

    def __init__(self, out_dir: Path, file_lock: SoftFileLock) -> None:
        self._out_dir = out_dir
        self._file_lock = file_lock

    @property
    def out_dir(self) -> Path:
        return self._out_dir

    @property
    def path(self) -> Path:
        """Return the marker file path."""

        return lock_path_for(self._out_dir)

    @property
    def is_held(self) -> bool:
        return self._file_lock.is_locked

    def release(self) -> None:
        """Remove the marker; releasing twice is a no-op."""

        if not self._file_lock.is_locked:
            return
        self._file_lock.release(force=True)
        log_event(LOGGER, "debug", "Released output directory", lock_path=str(self.path))

    def __enter__(self) -> "RunLock":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def acquire_run_lock(out_dir: Path) -> RunLock:
    """Create the marker inside ``out_dir`` or fail immediately if it exists.

    Raises:
        AlreadyLockedError: another run holds (or left behind) the marker.
    """

    out_dir.mkdir(parents=True, exist_ok=True)
    lock_path = lock_path_for(out_dir)
    file_lock = SoftFileLock(str(lock_path), timeout=0)
    try:
        file_lock.acquire(timeout=0)
    except Timeout as exc:
        raise AlreadyLockedError(lock_path) from exc
    log_event(LOGGER, "debug", "Occupied output directory", lock_path=str(lock_path))
    return RunLock(out_dir, file_lock)


@contextlib.contextmanager
def occupy_out_dir(out_dir: Path) -> Iterator[RunLock]:
    """Hold the run lock on ``out_dir`` for the body of a ``with`` block.

    The marker is removed on every exit path once it has been acquired; when
    acquisition itself fails nothing is removed.
    """

    run_lock = acquire_run_lock(out_dir)
    try:
        yield run_lock
    finally:
        run_lock.release()
