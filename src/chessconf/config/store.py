"""
chessconf - the live settings tree and its persistence driver.

File: src/chessconf/config/store.py

Purpose
- Own the single writable in-memory settings tree.
- Expose group-scoped and namespace-scoped reads and updates.
- Persist the full tree after every mutation through a ``ConfigBackend``.

Functional requirements
- ``load`` is fail-soft: read and parse failures fall back to defaults.
- Read, parse, write and erase failures are reported (log + counter +
  failure buffer) and never raised to the caller.
- Addressing a fixed group that does not exist raises ``UnknownGroupError``.

Non-functional requirements
- No internal locking: callers serialize access to one store instance.
- Saves are not coalesced; each mutation issues its own full rewrite.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, cast

from chessconf.config.codec import parse, serialize
from chessconf.config.schema import (
    DEFAULT_CONFIG,
    FIXED_GROUPS,
    AnalysisSettings,
    ConfigTree,
    EvaluationChartSettings,
    GameSettings,
    InterfaceSettings,
    coerce_group_update,
    copy_tree,
    default_config,
    is_fixed_group,
    merge_with_defaults,
)
from chessconf.constants import FAILURE_BUFFER_SIZE, LOCALE_FIELD
from chessconf.errors import (
    ConfigFailure,
    ConfigParseError,
    ConfigSerializeError,
    FailureKind,
    NamespaceConflictError,
    UnknownGroupError,
)
from chessconf.observability.metrics import MetricsRegistry

if TYPE_CHECKING:
    from chessconf.persistence.backends import ConfigBackend

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool)


class ConfigStore:
    """Layered settings store: compiled defaults overlaid by persisted text.

    Getters hand out copies, so callers only ever see a consistent snapshot
    of the live tree taken after a completed load or update.
    """

    def __init__(
        self,
        backend: ConfigBackend,
        *,
        metrics: MetricsRegistry | None = None,
        failure_buffer_size: int = FAILURE_BUFFER_SIZE,
    ) -> None:
        if failure_buffer_size <= 0:
            raise ValueError("failure_buffer_size must be > 0")
        self._backend = backend
        self._metrics = metrics if metrics is not None else MetricsRegistry()
        self._failures: deque[ConfigFailure] = deque(maxlen=failure_buffer_size)
        self._tree: ConfigTree = default_config()
        self._loaded = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def backend(self) -> ConfigBackend:
        return self._backend

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    @property
    def loaded(self) -> bool:
        """Whether ``load`` has completed at least once."""
        return self._loaded

    @property
    def failures(self) -> tuple[ConfigFailure, ...]:
        return tuple(self._failures)

    def snapshot(self) -> ConfigTree:
        return copy_tree(self._tree)

    def report_failure(self, kind: FailureKind, target: str, exc: BaseException) -> ConfigFailure:
        """Record an absorbed failure in the buffer, the log and the counters."""

        failure = ConfigFailure.from_exception(kind, target, exc)
        self._failures.append(failure)
        self._metrics.inc("config_failures_total", labels={"kind": kind.value})
        logger.warning(
            "settings %s failure (%s): %s",
            kind.value,
            target,
            failure.message,
            extra={"failure_kind": kind.value, "target": target, "error_type": failure.error_type},
        )
        return failure

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self) -> bool:
        """Replace the live tree from persisted text.

        Returns ``True`` when persisted text was applied and ``False`` when
        the tree was seeded from defaults (nothing stored, or a failure).
        """

        self._metrics.inc("config_loads_total")
        try:
            text = await self._backend.read()
        except Exception as exc:
            self.report_failure(FailureKind.READ, "load", exc)
            self._reset_tree()
            return False

        if text is None or not text.strip():
            logger.info("no persisted settings found; using defaults")
            self._reset_tree()
            return False

        try:
            parsed = parse(text)
        except ConfigParseError as exc:
            self.report_failure(FailureKind.PARSE, "load", exc)
            self._reset_tree()
            return False

        self._tree = merge_with_defaults(DEFAULT_CONFIG, parsed)
        self._loaded = True
        logger.debug("loaded settings with %d top-level entries", len(self._tree))
        return True

    async def save(self) -> bool:
        """Serialize the complete live tree and hand it to the backend.

        Returns ``False`` when the write failed; the live tree stays
        authoritative either way.
        """

        try:
            text = serialize(self._tree)
        except ConfigSerializeError as exc:
            self.report_failure(FailureKind.WRITE, "serialize", exc)
            return False
        try:
            await self._backend.write(text)
        except Exception as exc:
            self.report_failure(FailureKind.WRITE, "save", exc)
            return False
        self._metrics.inc("config_saves_total")
        return True

    async def reset_to_defaults(self) -> None:
        """Drop every override and dynamic namespace, then save."""

        self._reset_tree()
        await self.save()

    async def clear_all(self) -> None:
        """Erase persisted state and reset the live tree to defaults.

        The in-memory reset happens even when the erase fails.
        """

        try:
            await self._backend.erase()
        except Exception as exc:
            self.report_failure(FailureKind.ERASE, "clear_all", exc)
        self._reset_tree()

    def _reset_tree(self) -> None:
        self._tree = default_config()
        self._loaded = True

    # ------------------------------------------------------------------
    # Fixed groups
    # ------------------------------------------------------------------

    def get_group(self, name: str) -> dict[str, Any]:
        group = self._group(name)
        return copy_tree(group)

    async def update_group(self, name: str, fields: Mapping[str, object]) -> None:
        """Shallow-merge ``fields`` into fixed group ``name`` and save.

        Known fields are coerced towards their default type; unknown fields
        are stored as given. A ``None`` value restores the default for a
        known field and removes an unknown one.
        """

        group = self._group(name)
        _ensure_scalars(name, fields)
        defaults = cast("Mapping[str, object]", DEFAULT_CONFIG[name])  # type: ignore[literal-required]
        for field_name, value in coerce_group_update(name, fields).items():
            if value is not None:
                group[field_name] = value
            elif field_name in defaults:
                group[field_name] = defaults[field_name]
            else:
                group.pop(field_name, None)
        await self.save()

    def _group(self, name: str) -> dict[str, Any]:
        if not is_fixed_group(name):
            raise UnknownGroupError(name, FIXED_GROUPS)
        group = self._tree.get(name)
        if not isinstance(group, dict):
            group = copy_tree(DEFAULT_CONFIG[name])  # type: ignore[literal-required]
            self._tree[name] = group
        return group

    def get_interface_settings(self) -> InterfaceSettings:
        return cast("InterfaceSettings", self.get_group("interfaceSettings"))

    async def update_interface_settings(self, **fields: object) -> None:
        await self.update_group("interfaceSettings", fields)

    def get_evaluation_chart_settings(self) -> EvaluationChartSettings:
        return cast("EvaluationChartSettings", self.get_group("evaluationChartSettings"))

    async def update_evaluation_chart_settings(self, **fields: object) -> None:
        await self.update_group("evaluationChartSettings", fields)

    def get_analysis_settings(self) -> AnalysisSettings:
        return cast("AnalysisSettings", self.get_group("analysisSettings"))

    async def update_analysis_settings(self, **fields: object) -> None:
        await self.update_group("analysisSettings", fields)

    def get_game_settings(self) -> GameSettings:
        return cast("GameSettings", self.get_group("gameSettings"))

    async def update_game_settings(self, **fields: object) -> None:
        await self.update_group("gameSettings", fields)

    # ------------------------------------------------------------------
    # Top-level scalars
    # ------------------------------------------------------------------

    def get_locale(self) -> str:
        value = self._tree.get(LOCALE_FIELD)
        if isinstance(value, str):
            return value
        return DEFAULT_CONFIG["locale"]

    async def update_locale(self, locale: str) -> None:
        if not isinstance(locale, str) or not locale.strip():
            raise ValueError("locale must be a non-empty string")
        self._tree[LOCALE_FIELD] = locale.strip()
        await self.save()

    # ------------------------------------------------------------------
    # Dynamic namespaces
    # ------------------------------------------------------------------

    def get_dynamic(self, namespace: str) -> dict[str, Any]:
        """Return a copy of ``namespace``; absent namespaces read as empty."""

        section = self._tree.get(namespace)
        if not isinstance(section, Mapping):
            return {}
        return copy_tree(section)

    async def update_dynamic(self, namespace: str, fields: Mapping[str, object]) -> None:
        """Shallow-merge ``fields`` into ``namespace`` (created on demand) and save.

        A ``None`` value removes that key from the namespace. Invalid updates
        are rejected before the tree is touched.
        """

        _check_namespace(namespace)
        _ensure_scalars(namespace, fields)
        section = self._dynamic_section(namespace)
        for key, value in fields.items():
            if value is None:
                section.pop(key, None)
            else:
                section[key] = value
        await self.save()

    async def clear_dynamic(self, namespace: str) -> bool:
        """Remove ``namespace``; saves and returns ``True`` only if it existed."""

        _check_namespace(namespace)
        if not isinstance(self._tree.get(namespace), Mapping):
            return False
        del self._tree[namespace]
        await self.save()
        return True

    def discard_dynamic_field(self, namespace: str, key: str) -> bool:
        """Remove one key from ``namespace`` in memory only.

        Nothing is persisted; the caller batches this with a later save.
        """

        _check_namespace(namespace)
        section = self._tree.get(namespace)
        if not isinstance(section, dict) or key not in section:
            return False
        del section[key]
        return True

    def dynamic_namespaces(self, prefix: str = "") -> tuple[str, ...]:
        """Return section names starting with ``prefix``, in tree order."""

        return tuple(
            name
            for name, value in self._tree.items()
            if isinstance(value, Mapping) and name.startswith(prefix) and name not in DEFAULT_CONFIG
        )

    def _dynamic_section(self, namespace: str) -> dict[str, Any]:
        section = self._tree.get(namespace)
        if section is None:
            section = {}
            self._tree[namespace] = section
        if not isinstance(section, dict):
            raise NamespaceConflictError(f"{namespace!r} is a top-level field, not a namespace")
        return section


def _check_namespace(namespace: str) -> None:
    if not isinstance(namespace, str) or not namespace:
        raise ValueError("namespace must be a non-empty string")
    if namespace in DEFAULT_CONFIG:
        raise NamespaceConflictError(f"{namespace!r} belongs to the default schema, not a namespace")


def _ensure_scalars(path: str, fields: Mapping[str, object]) -> None:
    if not isinstance(fields, Mapping):
        raise ConfigSerializeError(f"{path}: updates must be a mapping, got {type(fields).__name__}")
    for key, value in fields.items():
        if not isinstance(key, str):
            raise ConfigSerializeError(f"{path}: keys must be strings, got {type(key).__name__}")
        if value is not None and not isinstance(value, _SCALAR_TYPES):
            raise ConfigSerializeError(
                f"{path}.{key}: settings values must be scalars, got {type(value).__name__}"
            )


__all__ = ["ConfigStore"]
