"""Run-level mutual exclusion on the output directory."""

from __future__ import annotations

from pathlib import Path

import pytest

from JarCDS.core.concurrency import acquire_run_lock, lock_path_for, occupy_out_dir
from JarCDS.errors import AlreadyLockedError


def test_acquire_creates_and_release_removes_marker(tmp_path: Path) -> None:
    """The marker exists exactly while the lock is held."""

    out_dir = tmp_path / "out"
    lock = acquire_run_lock(out_dir)

    assert lock.path == lock_path_for(out_dir) == out_dir / ".lock"
    assert lock.path.exists()
    assert lock.path.stat().st_size == 0
    assert lock.is_held

    lock.release()
    assert not lock.path.exists()
    lock.release()


def test_second_acquire_fails_and_keeps_marker(tmp_path: Path) -> None:
    """A second acquisition is refused and never removes the owner's marker."""

    first = acquire_run_lock(tmp_path)
    try:
        with pytest.raises(AlreadyLockedError) as excinfo:
            acquire_run_lock(tmp_path)
        assert excinfo.value.lock_path == tmp_path / ".lock"
        assert excinfo.value.exit_code == 1
        assert first.path.exists()

        with pytest.raises(AlreadyLockedError):
            with occupy_out_dir(tmp_path):
                pytest.fail("body must not run without the lock")
        assert first.path.exists()
    finally:
        first.release()
    assert not first.path.exists()


def test_occupy_out_dir_releases_on_error(tmp_path: Path) -> None:
    """The marker is removed when the body fails."""

    with pytest.raises(RuntimeError):
        with occupy_out_dir(tmp_path) as lock:
            assert lock.path.exists()
            raise RuntimeError("stage blew up")
    assert not (tmp_path / ".lock").exists()


def test_lock_can_be_reacquired_after_release(tmp_path: Path) -> None:
    with occupy_out_dir(tmp_path):
        pass
    with occupy_out_dir(tmp_path) as lock:
        assert lock.is_held


def test_foreign_empty_marker_is_respected(tmp_path: Path) -> None:
    """A marker left by another process blocks acquisition and survives it."""

    marker = tmp_path / ".lock"
    marker.touch()

    with pytest.raises(AlreadyLockedError):
        acquire_run_lock(tmp_path)
    assert marker.exists()
    assert marker.stat().st_size == 0
