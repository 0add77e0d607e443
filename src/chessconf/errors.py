"""Error types and failure records for the settings store.

``UnknownGroupError``, ``NamespaceConflictError`` and update-time
``ConfigSerializeError`` reach application code: they mark contract
violations. Everything else is raised by a leaf component and converted
into a ``ConfigFailure`` by the store or registry.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ConfigError(Exception):
    """Base class for settings store errors."""


class ConfigParseError(ConfigError, ValueError):
    """Raised when persisted text is not well-formed INI."""

    def __init__(self, message: str, *, line_number: int, line: str) -> None:
        self.line_number = line_number
        self.line = line
        super().__init__(f"line {line_number}: {message}: {line!r}")


class ConfigSerializeError(ConfigError, TypeError):
    """Raised when a tree holds a value with no flat text form."""


class PersistenceError(ConfigError, OSError):
    """Raised by a backend when reading, writing or erasing fails."""


class UnknownGroupError(ConfigError, KeyError):
    """Raised when a caller addresses a fixed group that does not exist."""

    def __init__(self, group: str, known: tuple[str, ...]) -> None:
        self.group = group
        self.known = known
        super().__init__(f"unknown settings group {group!r}; expected one of: {', '.join(known)}")

    def __str__(self) -> str:
        return str(self.args[0])


class NamespaceConflictError(ConfigError, ValueError):
    """Raised when a dynamic namespace key names a top-level scalar field."""


class EngineDecodeError(ConfigError, ValueError):
    """Raised when the persisted engine list cannot be decoded."""


class FailureKind(enum.Enum):
    READ = "read"
    PARSE = "parse"
    WRITE = "write"
    ERASE = "erase"
    DECODE = "decode"


@dataclass(frozen=True, slots=True)
class ConfigFailure:
    """Failure captured and absorbed without interrupting the caller."""

    kind: FailureKind
    target: str
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, kind: FailureKind, target: str, exc: BaseException) -> ConfigFailure:
        return cls(kind=kind, target=target, error_type=type(exc).__name__, message=str(exc))


__all__ = [
    "ConfigError",
    "ConfigFailure",
    "ConfigParseError",
    "ConfigSerializeError",
    "EngineDecodeError",
    "FailureKind",
    "NamespaceConflictError",
    "PersistenceError",
    "UnknownGroupError",
]
