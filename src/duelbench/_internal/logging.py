"""Logging for duelbench: one stderr handler on the ``duelbench`` logger.

The report owns stdout, so every log record goes to stderr. Records logged
by the runner carry ``server`` and ``phase`` attributes (passed through
``extra``), which the JSON formatter emits as fields and the text formatter
shows as a ``[server/phase]`` prefix.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

_ROOT_LOGGER = "duelbench"
_HANDLER_NAME = "duelbench-stderr"
_CONTEXT_FIELDS = ("server", "phase")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s %(context)s%(message)s"
DATE_FORMAT = "%H:%M:%S"


def run_context(server: str, phase: str) -> dict[str, Any]:
    """Build the ``extra`` mapping that tags a record with its run.

    Args:
        server: Server label.
        phase: Phase name, ``"warmup"`` or ``"measured"``.

    Returns:
        A dict to pass as ``extra=`` to a logging call.
    """
    return {"server": server, "phase": phase}


class _TextFormatter(logging.Formatter):
    """Human-readable lines, prefixed with the run context when present."""

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        server = getattr(record, "server", None)
        phase = getattr(record, "phase", None)
        if server is None:
            record.context = ""
        elif phase is None:
            record.context = f"[{server}] "
        else:
            record.context = f"[{server}/{phase}] "
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: timestamp, level, logger, message, then ``server`` and ``phase``
    when the record carries them and ``exception`` when one is attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _find_handler(logger: logging.Logger) -> logging.StreamHandler[Any] | None:
    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME and isinstance(handler, logging.StreamHandler):
            return handler
    return None


def setup_logging(
    level: int = logging.WARNING,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the ``duelbench`` logger.

    Every call leaves exactly one duelbench handler attached. A repeated
    call replaces it, so the level and format follow the latest arguments
    and output goes to the current ``sys.stderr``, which may have been
    swapped since the previous call (for example by a test runner).

    Args:
        level: Logging level. Defaults to WARNING.
        json_format: Emit JSON lines instead of text.

    Returns:
        The configured ``duelbench`` logger.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    stale = _find_handler(logger)
    if stale is not None:
        logger.removeHandler(stale)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    logger.addHandler(handler)

    handler.setLevel(level)
    handler.setFormatter(_JsonFormatter() if json_format else _TextFormatter())
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``duelbench`` namespace.

    Args:
        name: Suffix appended to ``duelbench.``, e.g. ``"engine.driver"``.
    """
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")
