"""Two-state coupling between observed values and one settings group.

A binding starts ``UNINITIALIZED``: local changes are kept but never saved,
so a default-seeded first render cannot overwrite persisted values that
have not been read yet. ``load`` pulls the group and flips the binding to
``READY``; from then on every change pushes the full bound snapshot
through ``ConfigStore.update_group`` (one save per change). There is no
way back to ``UNINITIALIZED``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from enum import Enum, auto
from typing import Any

from chessconf.config.schema import DEFAULT_CONFIG, FIXED_GROUPS, is_fixed_group
from chessconf.config.store import ConfigStore
from chessconf.errors import UnknownGroupError

logger = logging.getLogger(__name__)

Normalizer = Callable[[Mapping[str, Any]], Mapping[str, Any]]

EVALUATION_CHART_GROUP = "evaluationChartSettings"


class BindingState(Enum):
    UNINITIALIZED = auto()
    READY = auto()


class ChangeBinding:
    def __init__(
        self,
        store: ConfigStore,
        group: str,
        initial: Mapping[str, object],
        *,
        normalize: Normalizer | None = None,
    ) -> None:
        if not is_fixed_group(group):
            raise UnknownGroupError(group, FIXED_GROUPS)
        if not initial:
            raise ValueError("a binding needs at least one field")
        self._store = store
        self._group = group
        self._values: dict[str, object] = dict(initial)
        self._normalize = normalize
        self._state = BindingState.UNINITIALIZED

    @property
    def state(self) -> BindingState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is BindingState.READY

    @property
    def group(self) -> str:
        return self._group

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self._values)

    @property
    def values(self) -> dict[str, object]:
        return dict(self._values)

    def get(self, field: str) -> object:
        self._check_field(field)
        return self._values[field]

    async def load(self) -> None:
        """Load the store, pull the group into the bound values, become ready."""

        await self._store.load()
        self.pull()
        if self._state is BindingState.UNINITIALIZED:
            self._state = BindingState.READY
            logger.debug("binding for %s is ready", self._group)

    def pull(self) -> None:
        """Copy the group's current values into the bound set without saving."""

        current: Mapping[str, Any] = self._store.get_group(self._group)
        if self._normalize is not None:
            current = self._normalize(current)
        for field in self._values:
            if field in current:
                self._values[field] = current[field]

    async def set(self, field: str, value: object) -> bool:
        """Change one bound field; returns whether the value changed."""

        return await self.update(**{field: value})

    async def update(self, **changes: object) -> bool:
        """Apply several changes as one observed change.

        Values equal to the current ones are not changes. When at least one
        field changed and the binding is ready, exactly one group update
        (and therefore one save) is issued.
        """

        for field in changes:
            self._check_field(field)
        changed = False
        for field, value in changes.items():
            if self._values[field] != value or type(self._values[field]) is not type(value):
                self._values[field] = value
                changed = True
        if not changed:
            return False
        if self._state is BindingState.READY:
            await self._store.update_group(self._group, dict(self._values))
        else:
            logger.debug("ignoring %s change before load", self._group)
        return True

    def _check_field(self, field: str) -> None:
        if field not in self._values:
            raise KeyError(f"{field!r} is not bound in {self._group}")


def _normalize_chart_settings(settings: Mapping[str, Any]) -> dict[str, bool]:
    # Labels stay on unless explicitly switched off; every other flag is opt-in.
    return {
        "showMoveLabels": settings.get("showMoveLabels") is not False,
        "useLinearYAxis": bool(settings.get("useLinearYAxis")),
        "showOnlyLines": bool(settings.get("showOnlyLines")),
        "blackPerspective": bool(settings.get("blackPerspective")),
        "clampToThousand": bool(settings.get("clampToThousand")),
    }


def evaluation_chart_binding(store: ConfigStore) -> ChangeBinding:
    """Bind the five evaluation chart flags, seeded from the defaults."""

    return ChangeBinding(
        store,
        EVALUATION_CHART_GROUP,
        DEFAULT_CONFIG["evaluationChartSettings"],
        normalize=_normalize_chart_settings,
    )


__all__ = [
    "BindingState",
    "ChangeBinding",
    "EVALUATION_CHART_GROUP",
    "Normalizer",
    "evaluation_chart_binding",
]
