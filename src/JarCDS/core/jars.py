"""Jar container helpers: manifests, nested archives, and class names.

Self-contained ("fat") packages are ordinary zip files whose manifest names an
entry-point class in ``Start-Class`` and which keep their libraries as nested
``.jar`` members under ``BOOT-INF/`` or ``WEB-INF/``. The manifest is parsed
and rendered here instead of relying on the order of zip entries, because fat
packages do not necessarily store ``META-INF/MANIFEST.MF`` first.
"""

from __future__ import annotations

import zipfile
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from JarCDS.constants import (
    CLASS_SUFFIX,
    EMBEDDED_CLASSES_PREFIXES,
    EMBEDDED_PREFIXES,
    MANIFEST_NAME,
    NESTED_ARCHIVE_SUFFIX,
    START_CLASS_ATTRIBUTE,
)

__all__ = [
    "Manifest",
    "class_member_target",
    "is_nested_archive_member",
    "iter_nested_archives",
    "list_class_names",
    "parse_manifest",
    "read_manifest",
    "read_start_class",
    "render_manifest",
]

_MAX_LINE_BYTES = 72
_MANIFEST_VERSION = "Manifest-Version"


@dataclass
class Manifest:
    """Main attributes plus any per-entry sections of a jar manifest."""

    main: dict[str, str] = field(default_factory=dict)
    sections: list[dict[str, str]] = field(default_factory=list)

    def get(self, name: str) -> str | None:
        """Return the main attribute ``name`` (case-insensitive) or ``None``."""

        lowered = name.lower()
        for key, value in self.main.items():
            if key.lower() == lowered:
                return value
        return None

    def remove(self, name: str) -> None:
        lowered = name.lower()
        for key in [key for key in self.main if key.lower() == lowered]:
            del self.main[key]

    def put(self, name: str, value: str) -> None:
        self.remove(name)
        self.main[name] = value


def _parse_block(lines: list[str]) -> dict[str, str]:
    attributes: dict[str, str] = {}
    last: str | None = None
    for line in lines:
        if line.startswith(" ") and last is not None:
            attributes[last] += line[1:]
            continue
        name, sep, value = line.partition(":")
        if not sep:
            raise ValueError(f"Malformed manifest line: {line!r}")
        last = name.strip()
        attributes[last] = value[1:] if value.startswith(" ") else value
    return attributes


def parse_manifest(data: bytes | str) -> Manifest:
    """Parse manifest ``data`` into a :class:`Manifest`."""

    text = data.decode("utf-8") if isinstance(data, bytes) else data
    blocks: list[list[str]] = [[]]
    for raw in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if raw == "":
            if blocks[-1]:
                blocks.append([])
            continue
        blocks[-1].append(raw)
    blocks = [block for block in blocks if block]
    if not blocks:
        return Manifest()
    return Manifest(
        main=_parse_block(blocks[0]),
        sections=[_parse_block(block) for block in blocks[1:]],
    )


def _wrap_line(name: str, value: str) -> list[bytes]:
    lines: list[bytes] = []
    current = bytearray()
    for char in f"{name}: {value}":
        encoded = char.encode("utf-8")
        if len(current) + len(encoded) > _MAX_LINE_BYTES:
            lines.append(bytes(current))
            # continuation lines start with a space that counts toward the limit
            current = bytearray(b" ")
        current += encoded
    lines.append(bytes(current))
    return lines


def _render_block(attributes: dict[str, str]) -> bytes:
    out = bytearray()
    for name, value in attributes.items():
        for line in _wrap_line(name, value):
            out += line + b"\r\n"
    return bytes(out)


def render_manifest(manifest: Manifest) -> bytes:
    """Render ``manifest`` with ``Manifest-Version`` first and 72-byte line wrapping."""

    main = dict(manifest.main)
    version = manifest.get(_MANIFEST_VERSION) or "1.0"
    main = {key: value for key, value in main.items() if key.lower() != _MANIFEST_VERSION.lower()}
    ordered = {_MANIFEST_VERSION: version, **main}
    out = _render_block(ordered) + b"\r\n"
    for section in manifest.sections:
        out += _render_block(section) + b"\r\n"
    return out


def read_manifest(archive: zipfile.ZipFile) -> Manifest | None:
    """Return the manifest of an open ``archive`` or ``None`` when it has none."""

    for info in archive.infolist():
        if info.filename.upper() == MANIFEST_NAME:
            return parse_manifest(archive.read(info))
    return None


def read_start_class(package_path: Path) -> str | None:
    """Return the ``Start-Class`` of ``package_path`` or ``None`` if it is not a fat package.

    Raises :class:`zipfile.BadZipFile` or :class:`OSError` when the file cannot
    be read as a zip container at all.
    """

    with zipfile.ZipFile(package_path) as archive:
        manifest = read_manifest(archive)
    if manifest is None:
        return None
    start_class = manifest.get(START_CLASS_ATTRIBUTE)
    return start_class.strip() if start_class and start_class.strip() else None


def is_nested_archive_member(name: str) -> bool:
    """Return True for members stored under an embedded-libraries prefix with a jar name."""

    return name.startswith(EMBEDDED_PREFIXES) and name.lower().endswith(NESTED_ARCHIVE_SUFFIX)


def iter_nested_archives(archive: zipfile.ZipFile) -> Iterator[zipfile.ZipInfo]:
    """Yield the nested library members of an open fat ``archive``."""

    for info in archive.infolist():
        if not info.is_dir() and is_nested_archive_member(info.filename):
            yield info


def class_member_target(name: str) -> str | None:
    """Map an embedded application-class member to its path in a slim jar.

    ``BOOT-INF/classes/org/acme/App.class`` becomes ``org/acme/App.class``.
    Members outside the embedded-classes prefixes and the prefix directories
    themselves map to ``None``.
    """

    for prefix in EMBEDDED_CLASSES_PREFIXES:
        if name.startswith(prefix):
            stripped = name[len(prefix) :]
            return stripped or None
    return None


def list_class_names(jar_path: Path) -> set[str]:
    """Return the class names (``a/b/C`` form) stored in ``jar_path``."""

    classes: set[str] = set()
    with zipfile.ZipFile(jar_path) as archive:
        for info in archive.infolist():
            name = info.filename
            if not name.lower().endswith(CLASS_SUFFIX) or "-" in name:
                continue
            classes.add(name[: -len(CLASS_SUFFIX)])
    return classes
