"""Logging setup for flowtool.

Modules log through ``get_logger(__name__)`` and attach structured fields with
``extra={...}``. The CLI calls ``configure_logging()`` once at startup; calling
it again swaps the flowtool handler rather than stacking a second one.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, is_dataclass
from typing import IO, Any, Optional

HANDLER_NAME = "flowtool"

# Attributes every LogRecord carries; anything else came in through `extra=`.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line: time, level, logger, message, then extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, _jsonable(value))
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(
    *, level: str = "INFO", json_logs: bool = False, stream: Optional[IO[str]] = None
) -> logging.Handler:
    """Install the flowtool handler on the root logger and return it.

    Args:
        level: Root log level (e.g. 'INFO', 'DEBUG').
        json_logs: Emit JSON lines instead of plain text.
        stream: Target stream; stderr when omitted.
    """
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
            existing.close()

    handler = logging.StreamHandler(stream)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        JsonLogFormatter() if json_logs else logging.Formatter("%(levelname)s %(name)s: %(message)s")
    )
    root.addHandler(handler)
    root.setLevel(level.upper())
    return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
