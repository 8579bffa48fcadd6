# === NAVMAP v1 ===
# {
#   "module": "JarCDS.stages.eversion",
#   "purpose": "Stage B: turn self-contained packages inside out into library directories.",
#   "sections": [
#     {"id": "eversionreport", "name": "EversionReport", "anchor": "class-eversionreport", "kind": "class"},
#     {"id": "convert-to-slim", "name": "convert_to_slim", "anchor": "function-convert-to-slim", "kind": "function"},
#     {"id": "evert", "name": "evert", "anchor": "function-evert", "kind": "function"},
#     {"id": "evert-all", "name": "evert_all", "anchor": "function-evert-all", "kind": "function"},
#     {"id": "write-single-argfiles", "name": "write_single_argfiles", "anchor": "function-write-single-argfiles", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Stage B: eversion of self-contained packages.

Everting ``build/app.jar`` produces, next to it (or under an explicit output
directory)::

    app/
      start-class.txt      entry-point class named by the manifest
      lib/
        *.jar              nested libraries, extracted by file name
        app.slim.jar       application classes only, when the package has any

The local directory is cleaned before anything is written, so everting the
same package twice leaves exactly the same files behind. Packages without a
``Start-Class`` attribute are ordinary jars: they are logged and skipped.
"""

from __future__ import annotations

import shutil
import zipfile
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from JarCDS.constants import (
    APPCDS_ARGFILE_NAME,
    BASE_ATTRIBUTE_NAMES,
    FAT_JAR_ATTRIBUTE_PREFIX,
    LIB_DIR_NAME,
    MANIFEST_NAME,
    MY_PRETTY_NAME,
    SLIM_SUFFIX,
    START_CLASS_FILE_NAME,
)
from JarCDS.core.argfiles import render_single_argfile
from JarCDS.core.jars import (
    Manifest,
    class_member_target,
    iter_nested_archives,
    parse_manifest,
    read_start_class,
    render_manifest,
)
from JarCDS.core.paths import (
    GlobMatcher,
    absolutify,
    dir_listing,
    has_wildcards,
    is_excluded,
    prepare_dir,
    walk_matching,
)
from JarCDS.logging import get_logger, log_event

__all__ = [
    "EversionReport",
    "clean_manifest",
    "convert_to_slim",
    "evert",
    "evert_all",
    "find_packages",
    "slim_name",
    "write_single_argfiles",
]

LOGGER = get_logger(__name__, base_fields={"stage": "evert"})

_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass
class EversionReport:
    """Outcome of everting a batch of packages."""

    lib_dirs: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.lib_dirs)


# --- Slim packages ---


def slim_name(package_path: Path) -> str:
    """Return ``<stem>.slim<suffix>`` for ``package_path`` (``app.jar`` -> ``app.slim.jar``)."""

    return package_path.stem + SLIM_SUFFIX + (package_path.suffix or ".jar")


def clean_manifest(manifest: Manifest) -> Manifest:
    """Drop launcher attributes that mean nothing once libraries are external."""

    doomed = list(BASE_ATTRIBUTE_NAMES)
    doomed.extend(name for name in manifest.main if name.startswith(FAT_JAR_ATTRIBUTE_PREFIX))
    for name in doomed:
        manifest.remove(name)
    manifest.put("Created-By", MY_PRETTY_NAME)
    return manifest


def _member_info(name: str, source: zipfile.ZipInfo | None) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=source.date_time if source is not None else _EPOCH)
    info.compress_type = zipfile.ZIP_STORED if name.endswith("/") else zipfile.ZIP_DEFLATED
    if source is not None:
        info.external_attr = source.external_attr
    return info


def convert_to_slim(package_path: Path, target_dir: Path | None = None) -> Path | None:
    """Write a slim copy of ``package_path`` holding only its application classes.

    Members under ``BOOT-INF/classes/`` or ``WEB-INF/classes/`` are stored with
    that prefix stripped, next to a cleaned manifest. Timestamps are copied
    from the source members so repeated conversions are byte-identical.

    Returns:
        Path of the slim package, or ``None`` when the package carries no
        application classes and nothing was written.
    """

    target = (target_dir or package_path.parent) / slim_name(package_path)
    with zipfile.ZipFile(package_path) as source:
        manifest_info: zipfile.ZipInfo | None = None
        members: list[tuple[zipfile.ZipInfo, str]] = []
        for info in source.infolist():
            if info.filename.upper() == MANIFEST_NAME:
                manifest_info = info
                continue
            target_name = class_member_target(info.filename)
            if target_name is not None:
                members.append((info, target_name))

        if not any(not info.is_dir() for info, _ in members):
            log_event(
                LOGGER,
                "info",
                "Package has no application classes; slim package not produced",
                package=str(package_path),
            )
            return None

        manifest = parse_manifest(source.read(manifest_info)) if manifest_info else Manifest()
        clean_manifest(manifest)
        target.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(target, "w") as slim:
            slim.writestr(_member_info(MANIFEST_NAME, manifest_info), render_manifest(manifest))
            for info, target_name in members:
                if info.is_dir():
                    slim.writestr(_member_info(target_name, info), b"")
                else:
                    slim.writestr(_member_info(target_name, info), source.read(info))

    log_event(
        LOGGER,
        "info",
        "Converted package into slim one",
        package=str(package_path),
        slim=str(target),
        entries=len(members),
    )
    return target


# --- Eversion ---


def _extract_nested_archives(package_path: Path, lib_dir: Path) -> int:
    extracted = 0
    with zipfile.ZipFile(package_path) as archive:
        for info in iter_nested_archives(archive):
            target = lib_dir / PurePosixPath(info.filename).name
            with archive.open(info) as src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)
            extracted += 1
    return extracted


def evert(package_path: Path, out_dir: Path | None = None) -> Path | None:
    """Evert one package and return its library directory.

    Args:
        package_path: Self-contained package to process.
        out_dir: Directory receiving the per-package directory; defaults to the
            package's own directory.

    Returns:
        The absolute ``lib`` directory, or ``None`` when the package has no
        ``Start-Class`` and was skipped.

    Raises:
        OSError, zipfile.BadZipFile: the package could not be read or written.
    """

    start_class = read_start_class(package_path)
    if start_class is None:
        log_event(
            LOGGER,
            "warning",
            "File is not a self-contained package; skipped",
            error_code="NOT_A_FAT_JAR",
            package=str(package_path),
        )
        return None
    log_event(LOGGER, "debug", "Found Start-Class", package=str(package_path), start_class=start_class)

    local_dir = prepare_dir((out_dir or package_path.parent) / package_path.stem)
    (local_dir / START_CLASS_FILE_NAME).write_text(start_class, encoding="utf-8")
    lib_dir = local_dir / LIB_DIR_NAME
    lib_dir.mkdir(parents=True, exist_ok=True)

    extracted = _extract_nested_archives(package_path, lib_dir)
    convert_to_slim(package_path, lib_dir)
    log_event(
        LOGGER,
        "info",
        "Everted package",
        package=str(package_path),
        lib_dir=str(lib_dir),
        extracted=extracted,
    )
    return lib_dir.absolute()


def find_packages(
    root: Path, arguments: Sequence[str], exclusions: Iterable[GlobMatcher] = ()
) -> list[Path]:
    """Resolve package arguments (paths or glob patterns) into existing files."""

    exclusion_list = list(exclusions)
    packages: list[Path] = []
    for argument in arguments:
        if has_wildcards(argument):
            matches = [path for path in walk_matching(root, argument, exclusion_list) if path.is_file()]
            log_event(LOGGER, "debug", "Expanded glob pattern", pattern=argument, matches=len(matches))
            packages.extend(matches)
            continue
        concrete = absolutify(Path(argument), root)
        if is_excluded(concrete, root, exclusion_list):
            log_event(LOGGER, "debug", "Package excluded by filter", package=str(concrete))
            continue
        packages.append(concrete)
    return packages


def evert_all(
    root: Path,
    arguments: Sequence[str],
    *,
    exclusions: Iterable[str] = (),
    out_dir: Path | None = None,
) -> EversionReport:
    """Evert every package matched by ``arguments``; per-package failures are recorded, not raised."""

    report = EversionReport()
    matchers = [GlobMatcher(pattern) for pattern in exclusions]
    for package in find_packages(root, arguments, matchers):
        try:
            lib_dir = evert(package, out_dir)
        except (OSError, zipfile.BadZipFile, ValueError) as exc:
            log_event(
                LOGGER,
                "warning",
                "Failed to evert package; skipped",
                error_code="EVERSION_FAILED",
                package=str(package),
                error=str(exc),
            )
            report.failed.append(package)
            continue
        if lib_dir is None:
            report.skipped.append(package)
        else:
            report.lib_dirs.append(lib_dir)
    log_event(
        LOGGER,
        "info",
        "Eversion finished",
        processed=report.processed,
        skipped=len(report.skipped),
        failed=len(report.failed),
    )
    return report


def write_single_argfiles(
    lib_dirs: Iterable[Path],
    *,
    argfile_name: str = APPCDS_ARGFILE_NAME,
    jsa_path: Path | None = None,
) -> list[Path]:
    """Write a standalone arg-file next to each library directory."""

    written: list[Path] = []
    for lib_dir in lib_dirs:
        libs = dir_listing(lib_dir)
        start_class = (lib_dir.parent / START_CLASS_FILE_NAME).read_text(encoding="utf-8").strip()
        argfile = lib_dir.parent / argfile_name
        argfile.write_text(
            render_single_argfile(libs=libs, start_class=start_class, jsa_path=jsa_path),
            encoding="utf-8",
        )
        log_event(LOGGER, "info", "Wrote application arg-file", argfile=str(argfile), entries=len(libs))
        written.append(argfile)
    return written
