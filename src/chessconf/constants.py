"""Stable constants shared across the settings store and its consumers."""

from __future__ import annotations

from typing import Final

# Persisted file location.
DEFAULT_CONFIG_FILE: Final[str] = "config.ini"
ENV_PREFIX: Final[str] = "CHESSCONF_"
CONFIG_PATH_ENV: Final[str] = f"{ENV_PREFIX}CONFIG_PATH"
LOG_LEVEL_ENV: Final[str] = f"{ENV_PREFIX}LOG_LEVEL"

# Top-level scalar fields.
LOCALE_FIELD: Final[str] = "locale"

# Sections owned by the engine registry.
ENGINES_SECTION: Final[str] = "Engines"
ENGINES_LIST_FIELD: Final[str] = "list"
SELECTION_SECTION: Final[str] = "Settings"
SELECTED_ENGINE_FIELD: Final[str] = "lastSelectedEngineId"

# Dynamic per-engine UCI option namespaces: ``[UciOptions_<engine id>]``.
UCI_OPTIONS_PREFIX: Final[str] = "UciOptions_"

# Size of the in-memory failure buffer kept by the store.
FAILURE_BUFFER_SIZE: Final[int] = 256

__all__ = [
    "CONFIG_PATH_ENV",
    "DEFAULT_CONFIG_FILE",
    "ENGINES_LIST_FIELD",
    "ENGINES_SECTION",
    "ENV_PREFIX",
    "FAILURE_BUFFER_SIZE",
    "LOCALE_FIELD",
    "LOG_LEVEL_ENV",
    "SELECTED_ENGINE_FIELD",
    "SELECTION_SECTION",
    "UCI_OPTIONS_PREFIX",
]
