"""JSON-lines logging for the ``chessconf`` logger tree.

Library modules only call ``logging.getLogger(__name__)``; the embedding
application decides whether to install this formatter via
``setup_logging``. Records passed with ``extra=`` land under ``fields``.
"""

from __future__ import annotations

import json
import logging
import math
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import IO, Final

from chessconf.constants import LOG_LEVEL_ENV

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

DEFAULT_LOGGER_NAME: Final[str] = "chessconf"

_STANDARD_LOG_RECORD_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
    }
)


class JsonLineFormatter(logging.Formatter):
    """Formatter that renders one canonical JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _iso8601z_from_epoch(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = _extract_extra_fields(record)
        if extras:
            event["fields"] = extras
        if record.exc_info is not None:
            event["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            event["stack"] = str(record.stack_info)

        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class LoggingHandle:
    """Handlers installed by ``setup_logging``; pass back to ``shutdown_logging``."""

    logger: logging.Logger
    handlers: tuple[logging.Handler, ...]
    log_path: Path | None


def setup_logging(
    level: int | str | None = None,
    *,
    log_path: Path | str | None = None,
    stream: IO[str] | None = None,
    log_to_stream: bool = True,
    logger_name: str = DEFAULT_LOGGER_NAME,
    environ: Mapping[str, str] | None = None,
) -> LoggingHandle:
    """Install JSON-lines handlers on ``logger_name`` and return a handle.

    ``level`` falls back to ``CHESSCONF_LOG_LEVEL`` and then ``INFO``.
    Handlers previously installed on the logger are replaced.
    """

    env = os.environ if environ is None else environ
    resolved_level = _parse_log_level(level if level is not None else env.get(LOG_LEVEL_ENV, "INFO"))
    formatter = JsonLineFormatter()

    handlers: list[logging.Handler] = []
    resolved_path: Path | None = None
    if log_path is not None:
        resolved_path = Path(log_path)
        resolved_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(resolved_path, encoding="utf-8"))
    if log_to_stream:
        handlers.append(logging.StreamHandler(stream if stream is not None else sys.stderr))

    logger = logging.getLogger(logger_name)
    logger.setLevel(resolved_level)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    for handler in handlers:
        handler.setLevel(resolved_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return LoggingHandle(logger=logger, handlers=tuple(handlers), log_path=resolved_path)


def shutdown_logging(handle: LoggingHandle) -> None:
    """Flush, detach and close the handlers owned by ``handle``."""

    for handler in handle.handlers:
        handler.flush()
        handle.logger.removeHandler(handler)
        handler.close()
    handle.logger.propagate = True


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    normalized = value.strip().upper()
    parsed = logging.getLevelName(normalized)
    if isinstance(parsed, int):
        return parsed
    raise ValueError(f"unsupported logging level {value!r}")


def _iso8601z_from_epoch(epoch_seconds: float) -> str:
    timestamp = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, JSONValue]:
    fields: dict[str, JSONValue] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_LOG_RECORD_FIELDS or key.startswith("_"):
            continue
        fields[key] = _normalize_json_value(value)
    return fields


def _normalize_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): _normalize_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_json_value(item) for item in value]
    return repr(value)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "JSONScalar",
    "JSONValue",
    "JsonLineFormatter",
    "LoggingHandle",
    "setup_logging",
    "shutdown_logging",
]
