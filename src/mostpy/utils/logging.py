"""Structured JSON logging for mostpy.

Each record is printed to stdout as one JSON object. Keyword arguments of the
log call become top-level fields next to ``timestamp``, ``level``, ``name``
and ``message``, so OMC diagnostics stay attached to the model they belong to:

    logger = get_logger(__name__)
    logger.warning("Simulation result differs from reference", model="Example")

    model_log = logger.bind(model="Example")
    model_log.info("Simulation finished")      # carries model="Example"

The level of new loggers comes from ``MOSTPY_LOG_LEVEL`` (``INFO`` if unset).
"""

from __future__ import annotations

import copy
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

LOG_LEVEL_ENV = "MOSTPY_LOG_LEVEL"

# attributes of a bare LogRecord; everything else on a record was passed as extra
_RECORD_FIELDS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class _JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RECORD_FIELDS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def default_level() -> int:
    """Level named by ``MOSTPY_LOG_LEVEL``; INFO if unset or unknown."""
    level = logging.getLevelName(os.environ.get(LOG_LEVEL_ENV, "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _stdlib_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    return logger


class StructuredLogger:
    """Logger whose calls take structured fields as keyword arguments.

    ``bind`` returns a logger for the same channel that adds fixed fields
    to every record, e.g. the model a test run is working on.
    """

    def __init__(self, name: str, level: int | None = None) -> None:
        self._logger = _stdlib_logger(name)
        self._logger.setLevel(default_level() if level is None else level)
        self._context: dict[str, Any] = {}

    def bind(self, **context: Any) -> "StructuredLogger":
        bound = copy.copy(self)
        bound._context = {**self._context, **context}
        return bound

    def log(self, level: int, msg: str, exc_info: Any = None, **fields: Any) -> None:
        merged = {**self._context, **fields}
        self._logger.log(level, msg, exc_info=exc_info, extra=merged or None)

    def debug(self, msg: str, **fields: Any) -> None:
        self.log(logging.DEBUG, msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self.log(logging.INFO, msg, **fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self.log(logging.WARNING, msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        self.log(logging.ERROR, msg, **fields)

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def level(self) -> int:
        return self._logger.level

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)


_loggers: dict[str, StructuredLogger] = {}


def get_logger(name: str, level: int | None = None) -> StructuredLogger:
    """Return the cached StructuredLogger for ``name``, creating it on first use.

    Args:
        name: Logger name, normally the module's ``__name__``.
        level: Explicit level; ``None`` uses ``MOSTPY_LOG_LEVEL``.
    """
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name, level=level)
    return _loggers[name]
