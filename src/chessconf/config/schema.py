"""
chessconf - settings schema, defaults and the defaults merger.

File: src/chessconf/config/schema.py

Purpose
- Define the compiled-in default tree and the fixed settings groups.
- Merge a freshly parsed tree over the defaults without dropping unknown data.
- Best-effort coercion of group updates towards the default field types.

Functional requirements
- Every default field is present in a merged tree.
- Fields and sections unknown to the defaults survive the merge verbatim
  and keep their relative order.

Non-functional requirements
- Deterministic and total: merging two well-formed trees never fails.
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Mapping
from typing import Any, Final, Literal, TypedDict

Scalar = str | int | float | bool
ConfigTree = dict[str, Any]

logger = logging.getLogger(__name__)

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


class InterfaceSettings(TypedDict):
    showCoordinates: bool
    parseUciInfo: bool
    showAnimations: bool
    showPositionChart: bool
    darkMode: bool
    autosave: bool
    useNewFenFormat: bool
    engineLogLineLimit: int


class EvaluationChartSettings(TypedDict):
    showMoveLabels: bool
    useLinearYAxis: bool
    showOnlyLines: bool
    blackPerspective: bool
    clampToThousand: bool


class AnalysisSettings(TypedDict):
    movetime: int
    maxThinkTime: int
    maxDepth: int
    maxNodes: int
    analysisMode: str


class GameSettings(TypedDict):
    flipMode: Literal["random", "free"]
    enablePonder: bool


class SettingsConfig(TypedDict):
    interfaceSettings: InterfaceSettings
    evaluationChartSettings: EvaluationChartSettings
    analysisSettings: AnalysisSettings
    gameSettings: GameSettings
    uciOptions: dict[str, Scalar]
    locale: str


DEFAULT_CONFIG: Final[SettingsConfig] = {
    "interfaceSettings": {
        "showCoordinates": False,
        "parseUciInfo": True,
        "showAnimations": True,
        "showPositionChart": False,
        "darkMode": False,
        "autosave": True,
        "useNewFenFormat": True,
        "engineLogLineLimit": 256,
    },
    "evaluationChartSettings": {
        "showMoveLabels": True,
        "useLinearYAxis": False,
        "showOnlyLines": False,
        "blackPerspective": False,
        "clampToThousand": False,
    },
    "analysisSettings": {
        "movetime": 1000,
        "maxThinkTime": 5000,
        "maxDepth": 20,
        "maxNodes": 1000000,
        "analysisMode": "movetime",
    },
    "gameSettings": {
        "flipMode": "random",
        "enablePonder": False,
    },
    "uciOptions": {},
    "locale": "zh_cn",
}

# Record groups addressable through ``ConfigStore.update_group``.
FIXED_GROUPS: Final[tuple[str, ...]] = (
    "interfaceSettings",
    "evaluationChartSettings",
    "analysisSettings",
    "gameSettings",
)


def default_config() -> ConfigTree:
    """Return a deep copy of the built-in defaults."""

    return _deep_copy_mapping(DEFAULT_CONFIG)


def copy_tree(tree: Mapping[str, object]) -> ConfigTree:
    """Deep-copy a tree, keeping key order."""

    return _deep_copy_mapping(tree)


def is_fixed_group(name: str) -> bool:
    return name in FIXED_GROUPS


def merge_with_defaults(defaults: Mapping[str, object], parsed: Mapping[str, object]) -> ConfigTree:
    """Overlay ``parsed`` onto ``defaults`` group by group.

    Default groups are overridden field by field; fields and groups only
    present in ``parsed`` are appended unchanged. When ``parsed`` disagrees
    with the defaults about whether a name is a group or a scalar, the
    default shape is kept so the tree never loses a default group.
    """

    merged = _deep_copy_mapping(defaults)
    for key, value in parsed.items():
        if key not in merged:
            merged[key] = _deep_copy_value(value)
            continue

        existing = merged[key]
        if isinstance(existing, dict):
            if not isinstance(value, Mapping):
                logger.warning("ignoring scalar %r that shadows settings group", key)
                continue
            for field_name, field_value in value.items():
                existing[field_name] = _deep_copy_value(field_value)
        elif isinstance(value, Mapping):
            logger.warning("ignoring section %r that shadows top-level field", key)
        else:
            merged[key] = _deep_copy_value(value)
    return merged


def coerce_group_update(group: str, fields: Mapping[str, object]) -> dict[str, Any]:
    """Coerce partial ``fields`` towards the default types of ``group``.

    Unknown fields and values that cannot be coerced are passed through
    unchanged; this is defaulting help, not validation.
    """

    template = DEFAULT_CONFIG.get(group)
    known: Mapping[str, object] = template if isinstance(template, Mapping) else {}
    out: dict[str, Any] = {}
    for name, value in fields.items():
        if name in known:
            out[name] = coerce_value(known[name], value)
        else:
            out[name] = _deep_copy_value(value)
    return out


def coerce_value(template: object, value: object) -> object:
    """Best-effort conversion of ``value`` to the type of ``template``."""

    if isinstance(template, bool):
        return _coerce_bool(value)
    if isinstance(template, int):
        return _coerce_int(value)
    if isinstance(template, float):
        return _coerce_float(value)
    return value


def _coerce_bool(value: object) -> object:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _BOOLEAN_TRUE:
            return True
        if lowered in _BOOLEAN_FALSE:
            return False
    return value


def _coerce_int(value: object) -> object:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    return value


def _coerce_float(value: object) -> object:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return value
    return value


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, item in value.items():
        out[key] = _deep_copy_value(item)
    return out


def _deep_copy_value(value: object) -> Any:
    if isinstance(value, Mapping):
        return _deep_copy_mapping(value)
    if isinstance(value, list):
        return [_deep_copy_value(item) for item in value]
    return copy.deepcopy(value)


__all__ = [
    "AnalysisSettings",
    "ConfigTree",
    "DEFAULT_CONFIG",
    "EvaluationChartSettings",
    "FIXED_GROUPS",
    "GameSettings",
    "InterfaceSettings",
    "Scalar",
    "SettingsConfig",
    "coerce_group_update",
    "coerce_value",
    "copy_tree",
    "default_config",
    "is_fixed_group",
    "merge_with_defaults",
]
