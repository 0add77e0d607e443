"""
chessconf - managed engine list, selection pointer and per-engine options.

File: src/chessconf/engines/registry.py

Purpose
- Own the JSON-encoded descriptor list stored in ``[Engines] list``.
- Own the selection pointer ``[Settings] lastSelectedEngineId``.
- Map engine ids to their ``[UciOptions_<id>]`` namespaces.

Functional requirements
- Saving an empty list clears the selection pointer in the same write.
- A descriptor list that cannot be decoded reads as empty and is reported
  as a DECODE failure.
- ``clear_selected`` only mutates memory; callers persist it themselves.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Final

from chessconf.config.store import ConfigStore
from chessconf.constants import (
    ENGINES_LIST_FIELD,
    ENGINES_SECTION,
    SELECTED_ENGINE_FIELD,
    SELECTION_SECTION,
    UCI_OPTIONS_PREFIX,
)
from chessconf.errors import EngineDecodeError, FailureKind

logger = logging.getLogger(__name__)

_DESCRIPTOR_FIELDS: Final[tuple[str, ...]] = ("id", "name", "path", "args")


@dataclass(frozen=True, slots=True)
class EngineDescriptor:
    """One externally managed UCI engine."""

    id: str
    name: str = ""
    path: str = ""
    args: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "path": self.path, "args": self.args}

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> EngineDescriptor:
        raw_id = payload.get("id")
        if raw_id is None or raw_id == "":
            raise EngineDecodeError("engine entry is missing an id")
        values = {
            name: "" if payload.get(name) is None else str(payload.get(name))
            for name in _DESCRIPTOR_FIELDS
        }
        return cls(**values)


def uci_options_key(engine_id: str) -> str:
    """Return the namespace key holding UCI options for ``engine_id``."""

    if not engine_id:
        raise ValueError("engine_id must be a non-empty string")
    return f"{UCI_OPTIONS_PREFIX}{engine_id}"


def encode_engine_list(engines: Iterable[EngineDescriptor]) -> str:
    return json.dumps(
        [engine.to_dict() for engine in engines], separators=(",", ":"), ensure_ascii=False
    )


def decode_engine_list(text: str) -> list[EngineDescriptor]:
    """Decode the persisted descriptor list, raising ``EngineDecodeError``."""

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise EngineDecodeError(f"engine list is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, list):
        raise EngineDecodeError(f"engine list must be a JSON array, got {type(payload).__name__}")

    engines: list[EngineDescriptor] = []
    for index, item in enumerate(payload):
        if not isinstance(item, Mapping):
            raise EngineDecodeError(f"engine entry {index} must be an object")
        engines.append(EngineDescriptor.from_dict(item))
    return engines


class EngineRegistry:
    """Engine bookkeeping layered on a ``ConfigStore``."""

    def __init__(self, store: ConfigStore) -> None:
        self._store = store

    @property
    def store(self) -> ConfigStore:
        return self._store

    # ------------------------------------------------------------------
    # Descriptor list
    # ------------------------------------------------------------------

    def list_engines(self) -> list[EngineDescriptor]:
        raw = self._store.get_dynamic(ENGINES_SECTION).get(ENGINES_LIST_FIELD)
        if raw is None or raw == "":
            return []
        try:
            if not isinstance(raw, str):
                raise EngineDecodeError(f"engine list must be text, got {type(raw).__name__}")
            return decode_engine_list(raw)
        except EngineDecodeError as exc:
            self._store.report_failure(FailureKind.DECODE, f"{ENGINES_SECTION}.{ENGINES_LIST_FIELD}", exc)
            return []

    async def save_engines(self, engines: Iterable[EngineDescriptor]) -> None:
        """Replace the descriptor list.

        An empty list also drops the selection pointer; both changes go out
        in a single save.
        """

        items = list(engines)
        if not items and self.clear_selected():
            logger.debug("engine list emptied; selection pointer cleared")
        await self._store.update_dynamic(
            ENGINES_SECTION, {ENGINES_LIST_FIELD: encode_engine_list(items)}
        )

    def get_engine(self, engine_id: str) -> EngineDescriptor | None:
        for engine in self.list_engines():
            if engine.id == engine_id:
                return engine
        return None

    async def remove_engine(self, engine_id: str) -> bool:
        """Forget ``engine_id``: descriptor, options and selection.

        Returns ``False`` when no descriptor had that id.
        """

        engines = self.list_engines()
        remaining = [engine for engine in engines if engine.id != engine_id]
        if len(remaining) == len(engines):
            return False
        await self.clear_options_for(engine_id)
        if self.get_selected() == engine_id:
            self.clear_selected()
        await self.save_engines(remaining)
        return True

    # ------------------------------------------------------------------
    # Selection pointer
    # ------------------------------------------------------------------

    def get_selected(self) -> str | None:
        value = self._store.get_dynamic(SELECTION_SECTION).get(SELECTED_ENGINE_FIELD)
        if value is None or value == "":
            return None
        return str(value)

    async def set_selected(self, engine_id: str) -> None:
        if not engine_id:
            raise ValueError("engine_id must be a non-empty string")
        await self._store.update_dynamic(SELECTION_SECTION, {SELECTED_ENGINE_FIELD: engine_id})

    def clear_selected(self) -> bool:
        """Drop the selection pointer from memory without saving.

        Callers that need the change on disk must save afterwards.
        """

        return self._store.discard_dynamic_field(SELECTION_SECTION, SELECTED_ENGINE_FIELD)

    # ------------------------------------------------------------------
    # Per-engine options
    # ------------------------------------------------------------------

    def get_options_for(self, engine_id: str) -> dict[str, Any]:
        return self._store.get_dynamic(uci_options_key(engine_id))

    async def update_options_for(self, engine_id: str, options: Mapping[str, object]) -> None:
        await self._store.update_dynamic(uci_options_key(engine_id), options)

    async def clear_options_for(self, engine_id: str) -> bool:
        return await self._store.clear_dynamic(uci_options_key(engine_id))

    def engines_with_options(self) -> tuple[str, ...]:
        """Ids that currently own an options namespace."""

        prefix_len = len(UCI_OPTIONS_PREFIX)
        return tuple(name[prefix_len:] for name in self._store.dynamic_namespaces(UCI_OPTIONS_PREFIX))


__all__ = [
    "EngineDescriptor",
    "EngineRegistry",
    "decode_engine_list",
    "encode_engine_list",
    "uci_options_key",
]
