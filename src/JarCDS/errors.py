# === NAVMAP v1 ===
# {
#   "module": "JarCDS.errors",
#   "purpose": "Exception hierarchy and CLI formatting helpers for JarCDS.",
#   "sections": [
#     {"id": "jarcdserror", "name": "JarCDSError", "anchor": "class-jarcdserror", "kind": "class"},
#     {"id": "stagefatalerror", "name": "StageFatalError", "anchor": "class-stagefatalerror", "kind": "class"},
#     {"id": "invalidpatternerror", "name": "InvalidPatternError", "anchor": "class-invalidpatternerror", "kind": "class"},
#     {"id": "alreadylockederror", "name": "AlreadyLockedError", "anchor": "class-alreadylockederror", "kind": "class"},
#     {"id": "clivalidationerror", "name": "CLIValidationError", "anchor": "class-clivalidationerror", "kind": "class"},
#     {"id": "format-cli-error", "name": "format_cli_error", "anchor": "function-format-cli-error", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Exception hierarchy shared by the JarCDS stages and their CLI.

A pipeline run can fail in three recognisable ways besides plain bugs: a stage
may find nothing to work on or an external tool may refuse to cooperate
(:class:`StageFatalError` and its subclasses), or another run may already own
the output directory (:class:`AlreadyLockedError`). Each kind carries the
process exit code the CLI should surface so the driver never has to guess.
Per-item problems (an unreadable list, a jar without ``Start-Class``) are not
represented here because they are recovered inside the stage that met them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .constants import (
    ALREADY_IN_PROGRESS_EXIT_CODE,
    APPCDS_ERROR_EXIT_CODE,
    INTERNAL_ERROR_EXIT_CODE,
)

__all__ = [
    "JarCDSError",
    "StageFatalError",
    "EmptyInputError",
    "NoEligiblePackagesError",
    "ArchiveDumpError",
    "ConfigurationError",
    "InvalidPatternError",
    "AlreadyLockedError",
    "CLIValidationError",
    "format_cli_error",
]


class JarCDSError(RuntimeError):
    """Base exception for recognisable JarCDS failures."""

    exit_code: int = INTERNAL_ERROR_EXIT_CODE


class StageFatalError(JarCDSError):
    """Raised when a pipeline stage cannot continue and the whole run must stop."""

    exit_code = APPCDS_ERROR_EXIT_CODE

    def __init__(self, message: str, *, stage: str = "pipeline") -> None:
        super().__init__(message)
        self.stage = stage


class EmptyInputError(StageFatalError):
    """Raised when no collation source could be loaded at all."""


class NoEligiblePackagesError(StageFatalError):
    """Raised when no self-contained package was everted successfully."""


class ArchiveDumpError(StageFatalError):
    """Raised when the external archive-dump process exits with a non-zero code."""

    def __init__(self, message: str, *, returncode: int, stage: str = "shared") -> None:
        super().__init__(message, stage=stage)
        self.returncode = returncode


class ConfigurationError(StageFatalError):
    """Raised when run settings are unusable (e.g. a relative work directory)."""


class InvalidPatternError(ConfigurationError):
    """Raised when a glob pattern cannot be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid glob pattern {pattern!r}: {reason}", stage="paths")
        self.pattern = pattern


class AlreadyLockedError(JarCDSError):
    """Raised when another run already owns the output directory.

    The marker file named by :attr:`lock_path` belongs to that other run and must
    be left untouched by whoever catches this error.
    """

    exit_code = ALREADY_IN_PROGRESS_EXIT_CODE

    def __init__(self, lock_path: Path) -> None:
        super().__init__(f"Output directory is already occupied: lock file {lock_path} exists")
        self.lock_path = lock_path


@dataclass(slots=True)
class CLIValidationError(ValueError):
    """Invalid CLI option value, reported with the option name and an optional hint."""

    option: str
    message: str
    hint: Optional[str] = None
    stage: str = "cli"

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        ValueError.__init__(self, self.message)

    def __str__(self) -> str:  # pragma: no cover - formatting handled in helper
        return self.message


def format_cli_error(error: CLIValidationError) -> str:
    """Return a consistent error string for CLI consumption."""

    prefix = f"[{error.stage}]"
    hint = f" Hint: {error.hint}" if error.hint else ""
    return f"{prefix} {error.option}: {error.message}.{hint}".strip()
