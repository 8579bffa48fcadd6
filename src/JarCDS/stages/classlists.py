"""Stage A: collate class lists and save their common part as the shared class list."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

from JarCDS.collation.engine import collate, write_lines
from JarCDS.collation.loading import SourceLoader
from JarCDS.constants import SHARED_CLASS_LIST_PATH
from JarCDS.errors import EmptyInputError
from JarCDS.logging import get_logger, log_event
from JarCDS.settings import ListConversion

__all__ = ["process_class_lists"]

LOGGER = get_logger(__name__, base_fields={"stage": "classlists"})


def process_class_lists(
    root: Path,
    arguments: Sequence[str],
    out_dir: Path,
    *,
    exclusions: Iterable[str] = (),
    convert_lists: ListConversion = ListConversion.AUTO,
) -> Path:
    """Write the classes common to every list into ``out_dir/_shared/list/classes.list``.

    Raises:
        EmptyInputError: no class list matched ``arguments``.
    """

    loader = SourceLoader(root, exclusions=exclusions, convert_lists=convert_lists)
    sources = loader.load(arguments)
    if not sources:
        log_event(
            LOGGER,
            "error",
            "No class lists found",
            error_code="NO_CLASS_LISTS",
            patterns=list(arguments),
        )
        raise EmptyInputError(f"No class lists found by {list(arguments)!r}", stage="classlists")

    result = collate(sources)
    class_list_path = out_dir / SHARED_CLASS_LIST_PATH
    count = write_lines(class_list_path, result.sorted_intersection())
    log_event(LOGGER, "info", "Saved shared class list", path=str(class_list_path), classes=count)
    return class_list_path
