"""Conversion of JVM class-loading logs into plain class lists.

A log produced with ``-Xlog:class+load`` contains lines such as::

    [0.021s][info][class,load] java.lang.Object source: shared objects file
    [0.310s][info][class,load] org.acme.App source: file:/opt/app/classes/

Only classes loaded from the runtime image, plain files, jars or the shared
archive can be dumped again, so everything else (generated proxies, lambdas,
classes defined at runtime) is dropped. Names are converted to the internal
``a/b/C`` form the archive dump expects.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path

from JarCDS.logging import get_logger, log_event
from JarCDS.settings import ListConversion

__all__ = [
    "ACCEPTED_SOURCES",
    "EXCLUDED_NAME_MARKERS",
    "convert_class_load_log",
    "convert_lines",
    "detect_list_type",
    "read_class_names",
]

LOGGER = get_logger(__name__, base_fields={"stage": "convert"})

ACCEPTED_SOURCES: tuple[str, ...] = ("jrt:/", "file:", "jar:", "shared objects file")
EXCLUDED_NAME_MARKERS: tuple[str, ...] = ("$$Lambda", "$$FastClassBySpringCGLIB$$")

_LOG_LINE = re.compile(r"^(?:\[[^\]]*\])*\s*(?P<name>\S+)\s+source:\s*(?P<source>.*?)\s*$")
_SNIFF_LINES = 50


def detect_list_type(path: Path) -> ListConversion:
    """Return ``ON`` when ``path`` looks like a class-loading log, ``OFF`` otherwise."""

    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for index, line in enumerate(handle):
            if index >= _SNIFF_LINES:
                break
            if _LOG_LINE.match(line.strip()):
                return ListConversion.ON
    return ListConversion.OFF


def convert_lines(lines: Iterable[str]) -> list[str]:
    """Convert class-loading log ``lines`` into unique class names, keeping first-seen order."""

    seen: set[str] = set()
    classes: list[str] = []
    for raw in lines:
        match = _LOG_LINE.match(raw.strip())
        if match is None:
            continue
        name, source = match.group("name"), match.group("source")
        if not source.startswith(ACCEPTED_SOURCES):
            continue
        if any(marker in name for marker in EXCLUDED_NAME_MARKERS):
            continue
        internal = name.replace(".", "/")
        if internal not in seen:
            seen.add(internal)
            classes.append(internal)
    return classes


def convert_class_load_log(path: Path) -> list[str]:
    """Read the log at ``path`` and return its dumpable class names."""

    with path.open("r", encoding="utf-8", errors="replace") as handle:
        classes = convert_lines(handle)
    log_event(
        LOGGER,
        "info",
        "Converted class-loading log into plain class list",
        path=str(path),
        records=len(classes),
    )
    return classes


def read_class_names(path: Path, conversion: ListConversion) -> list[str]:
    """Return the class names in ``path``, converting it first when it is a log.

    With :attr:`ListConversion.AUTO` every file is sniffed on its own, so a mix
    of logs and plain lists can be collated together.
    """

    effective = detect_list_type(path) if conversion is ListConversion.AUTO else conversion
    if effective is ListConversion.ON:
        return convert_class_load_log(path)
    return [line for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]
