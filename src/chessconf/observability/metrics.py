"""Thread-safe counters for store activity with a deterministic snapshot."""

from __future__ import annotations

import json
import math
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

_Labels = tuple[tuple[str, str], ...]

_METRIC_NAME_MAX_LEN: Final[int] = 128


@dataclass(frozen=True, order=True, slots=True)
class _CounterKey:
    name: str
    labels: _Labels


class MetricsRegistry:
    """In-memory counter store shared by the settings store and its consumers."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._counters: dict[_CounterKey, float] = {}

    def inc(
        self,
        name: str,
        amount: float = 1.0,
        *,
        labels: Mapping[str, str] | None = None,
    ) -> None:
        """Increment a counter by ``amount`` (>= 0)."""

        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise ValueError(f"amount must be numeric, got {type(amount).__name__}")
        delta = float(amount)
        if not math.isfinite(delta) or delta < 0:
            raise ValueError("counter increment amount must be finite and >= 0")

        key = _counter_key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0.0) + delta

    def get_counter(self, name: str, *, labels: Mapping[str, str] | None = None) -> float:
        key = _counter_key(name, labels)
        with self._lock:
            return self._counters.get(key, 0.0)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()

    def snapshot(self) -> dict[str, float]:
        """Return counters keyed ``name{label=value,...}`` in sorted order."""

        with self._lock:
            items = sorted(self._counters.items())
        return {_identifier(key): value for key, value in items}

    def to_json(self) -> str:
        return json.dumps(self.snapshot(), sort_keys=True, separators=(",", ":"))


def _counter_key(name: str, labels: Mapping[str, str] | None) -> _CounterKey:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("metric name must be a non-empty string")
    normalized = name.strip()
    if len(normalized) > _METRIC_NAME_MAX_LEN:
        raise ValueError(f"metric name must be <= {_METRIC_NAME_MAX_LEN} characters")

    pairs: list[tuple[str, str]] = []
    for key, value in (labels or {}).items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValueError(f"label {key!r} must map a string to a string")
        if not key.strip() or not value.strip():
            raise ValueError(f"label {key!r} must not be empty")
        pairs.append((key.strip(), value.strip()))
    pairs.sort()
    return _CounterKey(name=normalized, labels=tuple(pairs))


def _identifier(key: _CounterKey) -> str:
    if not key.labels:
        return key.name
    rendered = ",".join(f"{k}={v}" for k, v in key.labels)
    return f"{key.name}{{{rendered}}}"


__all__ = ["MetricsRegistry"]
