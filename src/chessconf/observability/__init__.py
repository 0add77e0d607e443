"""Public observability primitives: JSON-lines logging and counters."""

from chessconf.observability.logging import (
    JsonLineFormatter,
    LoggingHandle,
    setup_logging,
    shutdown_logging,
)
from chessconf.observability.metrics import MetricsRegistry

__all__ = [
    "JsonLineFormatter",
    "LoggingHandle",
    "MetricsRegistry",
    "setup_logging",
    "shutdown_logging",
]
