# === NAVMAP v1 ===
# {
#   "module": "JarCDS.settings",
#   "purpose": "Pydantic v2 settings for JarCDS pipeline runs.",
#   "sections": [
#     {"id": "comparemode", "name": "CompareMode", "anchor": "class-comparemode", "kind": "class"},
#     {"id": "listconversion", "name": "ListConversion", "anchor": "class-listconversion", "kind": "class"},
#     {"id": "loglevel", "name": "LogLevel", "anchor": "class-loglevel", "kind": "class"},
#     {"id": "logformat", "name": "LogFormat", "anchor": "class-logformat", "kind": "class"},
#     {"id": "runcfg", "name": "RunCfg", "anchor": "class-runcfg", "kind": "class"},
#     {"id": "build-settings", "name": "build_settings", "anchor": "function-build-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Pydantic v2 settings for JarCDS pipeline runs.

Settings are layered CLI > ENV (``JARCDS_`` prefix) > defaults. The comparison
mode lives here and is handed explicitly to every loader, so it is fixed for
the whole run once :class:`RunCfg` is built.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .constants import DEFAULT_OUT_DIR, SHARED_ARCHIVE_PATH

# ============================================================================
# Enums for validated choices
# ============================================================================


class CompareMode(str, Enum):
    """File comparison strategy used by :class:`~JarCDS.collation.entries.FileEntry`."""

    ROUGH = "rough"  # name + size
    PRECISE = "precise"  # byte-for-byte


class ListConversion(str, Enum):
    """Whether class-list sources are class-loading logs needing conversion."""

    ON = "on"
    OFF = "off"
    AUTO = "auto"


class LogLevel(str, Enum):
    """Supported logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogFormat(str, Enum):
    """Supported log output formats."""

    CONSOLE = "console"
    JSON = "json"


# ============================================================================
# Run configuration (RunCfg)
# ============================================================================


class RunCfg(BaseSettings):
    """Configuration of a single pipeline run."""

    model_config = SettingsConfigDict(
        env_prefix="JARCDS_",
        case_sensitive=False,
        extra="ignore",
    )

    work_dir: Path = Field(default_factory=Path.cwd, description="Root directory of the applications")
    out_dir: Path = Field(
        Path(DEFAULT_OUT_DIR), description="Shared output directory (relative to work_dir)"
    )
    class_lists: Annotated[list[str], NoDecode] = Field(
        default_factory=list, description="Class list files, directories or glob patterns"
    )
    fat_jars: Annotated[list[str], NoDecode] = Field(
        default_factory=list, description="Self-contained packages (paths or glob patterns)"
    )
    exclusions: Annotated[list[str], NoDecode] = Field(default_factory=list, description="Glob patterns to skip")
    compare_mode: CompareMode = Field(CompareMode.ROUGH, description="rough (name+size) or precise")
    convert_lists: ListConversion = Field(
        ListConversion.AUTO, description="Convert class-loading logs into class lists"
    )
    java_home: Path | None = Field(None, description="JDK used for the archive dump")
    log_level: LogLevel = Field(LogLevel.INFO, description="Root logging level")
    log_format: LogFormat = Field(LogFormat.CONSOLE, description="Console text or JSON lines")
    log_file: Path | None = Field(None, description="Optional JSON-lines log file")

    @field_validator("work_dir", "java_home", "log_file", mode="before")
    @classmethod
    def expand_paths(cls, v: Any) -> Any:
        """Expand the user home marker without resolving relative paths."""
        if v is None:
            return None
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        return v

    @field_validator("exclusions", "class_lists", "fat_jars", mode="before")
    @classmethod
    def split_patterns(cls, value: Any) -> Any:
        """Accept comma-separated strings as well as sequences."""
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return list(value)

    @property
    def resolved_out_dir(self) -> Path:
        """Return ``out_dir`` resolved against ``work_dir`` when relative."""

        if self.out_dir.is_absolute():
            return self.out_dir
        return self.work_dir / self.out_dir

    @property
    def shared_archive_path(self) -> Path:
        """Return the absolute path of the archive produced by the dump."""

        return self.resolved_out_dir / SHARED_ARCHIVE_PATH


def build_settings(**overrides: Any) -> RunCfg:
    """Build :class:`RunCfg` where explicit, non-``None`` overrides beat the environment."""

    explicit = {key: value for key, value in overrides.items() if value is not None}
    return RunCfg(**explicit)


__all__ = [
    "CompareMode",
    "ListConversion",
    "LogFormat",
    "LogLevel",
    "RunCfg",
    "build_settings",
]
