"""
Structured logging utilities for JarCDS stages.

Every stage module obtains a :class:`StructuredLogger` through :func:`get_logger`
and emits records with :func:`log_event`, so warnings about skipped inputs carry
a stable ``error_code`` and the stage that produced them. Handlers are attached
only to the package logger by :func:`setup_logging`; module loggers propagate
to it.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

PACKAGE_LOGGER_NAME = "JarCDS"
CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string including structured fields."""

        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            payload.update(record.extra_fields)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Logger adapter that enriches structured logs with shared context."""

    def __init__(
        self, logger: logging.Logger, base_fields: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(logger, {})
        self.base_fields: Dict[str, Any] = dict(base_fields or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple[str, Dict[str, Any]]:
        """Merge adapter context into ``extra`` metadata for structured output."""

        extra = kwargs.setdefault("extra", {})
        fields = dict(self.base_fields)
        extra_fields = extra.get("extra_fields")
        if isinstance(extra_fields, dict):
            fields.update(extra_fields)
        extra["extra_fields"] = fields
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **fields: object) -> "StructuredLogger":
        """Attach additional persistent fields to the adapter and return ``self``."""

        self.base_fields.update({k: v for k, v in fields.items() if v is not None})
        return self


def get_logger(name: str, *, base_fields: Optional[Dict[str, Any]] = None) -> StructuredLogger:
    """Return the structured adapter for ``name``, creating it on first use."""

    logger = logging.getLogger(name)
    adapter = getattr(logger, "_jarcds_adapter", None)
    if not isinstance(adapter, StructuredLogger):
        adapter = StructuredLogger(logger, base_fields)
        setattr(logger, "_jarcds_adapter", adapter)
    elif base_fields:
        adapter.bind(**base_fields)
    return adapter


def log_event(logger: logging.LoggerAdapter | logging.Logger, level: str, message: str, **fields: object) -> None:
    """Emit a structured log record using the ``extra_fields`` convention."""

    normalised_level = str(level).lower()
    base_stage = getattr(logger, "base_fields", {}).get("stage")
    if normalised_level in {"warning", "error"}:
        fields.setdefault("stage", base_stage or "unknown")
        error_code = fields.get("error_code")
        fields["error_code"] = str(error_code).upper() if error_code else "UNKNOWN"
    elif "stage" not in fields and base_stage is not None:
        fields["stage"] = base_stage

    emitter = getattr(logger, normalised_level, None)
    if not callable(emitter):
        raise AttributeError(f"Logger has no level '{level}'")
    emitter(message, extra={"extra_fields": fields})


def setup_logging(
    *,
    level: str = "INFO",
    fmt: str = "console",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure the ``JarCDS`` package logger with console and optional JSON file output."""

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_jarcds_managed", False):
            logger.removeHandler(handler)
            if isinstance(handler, logging.FileHandler):
                handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    if str(fmt).lower() == "json":
        stream_handler.setFormatter(JSONFormatter())
    else:
        stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    stream_handler._jarcds_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler._jarcds_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


__all__ = [
    "CONSOLE_FORMAT",
    "JSONFormatter",
    "PACKAGE_LOGGER_NAME",
    "StructuredLogger",
    "get_logger",
    "log_event",
    "setup_logging",
]
