"""
chessconf - settings file location and store construction.

File: src/chessconf/config/loader.py

Purpose
- Resolve where the settings file lives.
- Build a file-backed ``ConfigStore`` and run its initial load.

Functional requirements
- Precedence: explicit path > ``CHESSCONF_CONFIG_PATH`` > ``cwd/config.ini``.
- ``~`` and ``$VAR`` references in either source are expanded.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from chessconf.config.store import ConfigStore
from chessconf.constants import CONFIG_PATH_ENV, DEFAULT_CONFIG_FILE
from chessconf.observability.metrics import MetricsRegistry
from chessconf.persistence.backends import FileConfigBackend


def resolve_config_path(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> Path:
    env = os.environ if environ is None else environ
    base_dir = cwd if cwd is not None else Path.cwd()

    raw: str | None = None
    if path is not None:
        raw = str(path)
    else:
        env_value = env.get(CONFIG_PATH_ENV, "").strip()
        if env_value:
            raw = env_value

    if raw is None:
        return Path(os.path.normpath(str(base_dir / DEFAULT_CONFIG_FILE)))
    return _normalize_one_path(raw, base_dir)


async def open_store(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    metrics: MetricsRegistry | None = None,
) -> ConfigStore:
    """Create a file-backed store at the resolved location and load it."""

    backend = FileConfigBackend(resolve_config_path(path, environ=environ))
    store = ConfigStore(backend, metrics=metrics)
    await store.load()
    return store


def _normalize_one_path(raw: str, base_dir: Path) -> Path:
    expanded = os.path.expandvars(raw)
    candidate = Path(expanded).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(str(candidate)))


__all__ = ["open_store", "resolve_config_path"]
