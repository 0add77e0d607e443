"""Settings tree: codec, defaults, the live store and its loader."""

from chessconf.config.codec import parse, serialize
from chessconf.config.loader import open_store, resolve_config_path
from chessconf.config.schema import (
    DEFAULT_CONFIG,
    FIXED_GROUPS,
    default_config,
    merge_with_defaults,
)
from chessconf.config.store import ConfigStore

__all__ = [
    "ConfigStore",
    "DEFAULT_CONFIG",
    "FIXED_GROUPS",
    "default_config",
    "merge_with_defaults",
    "open_store",
    "parse",
    "resolve_config_path",
    "serialize",
]
