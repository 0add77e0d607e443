"""
chessconf - layered settings store for a chess engine front end.

File: src/chessconf/__init__.py

Purpose
- Package root. Exposes the version and the handful of entry points
  embedders construct directly.

Functional requirements
- No side effects at import time (no config loading, no logging init).
- The optional Textual surface is never imported from here.
"""

from chessconf.binding import BindingState, ChangeBinding, evaluation_chart_binding
from chessconf.config.loader import open_store, resolve_config_path
from chessconf.config.store import ConfigStore
from chessconf.engines.registry import EngineDescriptor, EngineRegistry
from chessconf.persistence.backends import FileConfigBackend, MemoryConfigBackend

__version__ = "0.1.0"

__all__ = [
    "BindingState",
    "ChangeBinding",
    "ConfigStore",
    "EngineDescriptor",
    "EngineRegistry",
    "FileConfigBackend",
    "MemoryConfigBackend",
    "__version__",
    "evaluation_chart_binding",
    "open_store",
    "resolve_config_path",
]
