"""Optional terminal UI surface (install the ``tui`` extra)."""

from __future__ import annotations

from importlib.util import find_spec


def tui_available() -> bool:
    """Return whether optional TUI dependencies are available in this environment."""
    return find_spec("textual") is not None


__all__ = ["tui_available"]
