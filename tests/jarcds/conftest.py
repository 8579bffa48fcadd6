"""Shared pytest fixtures for the JarCDS test suite."""

from __future__ import annotations

import logging
import os
import zipfile
from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from JarCDS.logging import PACKAGE_LOGGER_NAME

FIXED_DATE = (2020, 1, 1, 0, 0, 0)

FatJarFactory = Callable[..., Path]


def write_jar(path: Path, members: Mapping[str, bytes], manifest: str | None = None) -> Path:
    """Write a zip at ``path`` holding ``members`` (and ``manifest`` when given)."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        if manifest is not None:
            archive.writestr(zipfile.ZipInfo("META-INF/MANIFEST.MF", FIXED_DATE), manifest)
        for name, data in members.items():
            info = zipfile.ZipInfo(name, FIXED_DATE)
            info.compress_type = zipfile.ZIP_STORED if name.endswith("/") else zipfile.ZIP_DEFLATED
            archive.writestr(info, data)
    return path


@pytest.fixture
def make_fat_jar() -> FatJarFactory:
    """Return a factory building synthetic self-contained packages."""

    def factory(
        path: Path,
        *,
        libs: Mapping[str, bytes] | None = None,
        classes: Mapping[str, bytes] | None = None,
        start_class: str | None = "app.Main",
        prefix: str = "BOOT-INF/lib/",
        extra_attributes: Mapping[str, str] | None = None,
    ) -> Path:
        lines = ["Manifest-Version: 1.0", "Main-Class: org.springframework.boot.loader.JarLauncher"]
        if start_class is not None:
            lines.append(f"Start-Class: {start_class}")
        lines.append("Spring-Boot-Version: 2.7.0")
        lines.append("Spring-Boot-Classes: BOOT-INF/classes/")
        lines.extend(f"{key}: {value}" for key, value in (extra_attributes or {}).items())
        members: dict[str, bytes] = {"org/springframework/boot/loader/JarLauncher.class": b"launcher"}
        members.update({prefix + name: data for name, data in (libs or {}).items()})
        members.update({"BOOT-INF/classes/" + name: data for name, data in (classes or {}).items()})
        return write_jar(path, members, "\r\n".join(lines) + "\r\n\r\n")

    return factory


@pytest.fixture
def jarcds_caplog(caplog: pytest.LogCaptureFixture):
    """Capture records emitted below the ``JarCDS`` package logger."""

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    previous_level = logger.level
    previous_propagate = logger.propagate
    logger.propagate = False
    logger.addHandler(caplog.handler)
    logger.setLevel(logging.DEBUG)
    caplog.handler.setLevel(logging.DEBUG)
    try:
        yield caplog
    finally:
        logger.removeHandler(caplog.handler)
        logger.setLevel(previous_level)
        logger.propagate = previous_propagate


@pytest.fixture(autouse=True)
def _reset_package_logger() -> None:
    """Drop handlers installed by ``setup_logging`` during a test."""

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_jarcds_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def _restore_environ() -> None:
    """Keep ``JARCDS_*`` and ``JAVA_HOME`` from leaking into or out of tests."""

    original = os.environ.copy()
    for key in list(os.environ):
        if key.startswith("JARCDS_") or key == "JAVA_HOME":
            del os.environ[key]
    try:
        yield
    finally:
        os.environ.clear()
        os.environ.update(original)


def records_with_code(caplog: pytest.LogCaptureFixture, error_code: str) -> list[logging.LogRecord]:
    """Return captured records whose structured ``error_code`` equals ``error_code``."""

    return [
        record
        for record in caplog.records
        if getattr(record, "extra_fields", {}).get("error_code") == error_code
    ]


@pytest.fixture
def error_records(jarcds_caplog: pytest.LogCaptureFixture) -> Callable[[str], list[logging.LogRecord]]:
    """Return a lookup of captured records by structured ``error_code``."""

    return lambda error_code: records_with_code(jarcds_caplog, error_code)


@pytest.fixture
def jar_writer() -> Callable[..., Path]:
    """Expose :func:`write_jar` to tests building plain archives."""

    return write_jar
