"""Evaluation chart settings panel.

File: src/chessconf/ui/chart_settings.py

One ``Switch`` per chart flag, wired through ``ChangeBinding``. The panel
loads the store when mounted; toggles made before that finishes stay local
and are replaced by the persisted values.
"""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Label, Switch

from chessconf.binding import ChangeBinding, evaluation_chart_binding
from chessconf.config.store import ConfigStore

_LABELS: dict[str, str] = {
    "showMoveLabels": "Show move labels",
    "useLinearYAxis": "Linear Y axis",
    "showOnlyLines": "Show only lines",
    "blackPerspective": "Black perspective",
    "clampToThousand": "Clamp to ±1000",
}


class ChartSettingsPanel(Widget):
    """Switches for the evaluation chart flags."""

    DEFAULT_CSS = """
    ChartSettingsPanel {
        height: auto;
        padding: 0 1;
    }
    ChartSettingsPanel > Horizontal {
        height: auto;
    }
    ChartSettingsPanel Label {
        width: 1fr;
        padding: 1 0;
    }
    """

    class Loaded(Message):
        """Posted once the persisted values have been pulled into the switches."""

        def __init__(self, values: dict[str, object]) -> None:
            super().__init__()
            self.values = values

    def __init__(
        self,
        store: ConfigStore,
        *,
        binding: ChangeBinding | None = None,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self._binding = binding if binding is not None else evaluation_chart_binding(store)

    @property
    def binding(self) -> ChangeBinding:
        return self._binding

    def compose(self) -> ComposeResult:
        for field, value in self._binding.values.items():
            with Horizontal():
                yield Label(_LABELS.get(field, field))
                yield Switch(value=bool(value), id=field)

    async def on_mount(self) -> None:
        await self._binding.load()
        self.sync_switches()
        self.post_message(self.Loaded(self._binding.values))

    def sync_switches(self) -> None:
        for field, value in self._binding.values.items():
            self.query_one(f"#{field}", Switch).value = bool(value)

    async def on_switch_changed(self, event: Switch.Changed) -> None:
        field = event.switch.id
        if field is None or field not in self._binding.fields:
            return
        event.stop()
        await self._binding.set(field, event.value)


__all__ = ["ChartSettingsPanel"]
