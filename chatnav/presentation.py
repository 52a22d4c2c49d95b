from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .pairing import Unit

SelectionHandler = Callable[[int], Any]


class Presenter(Protocol):
    """Commands the session sends to whatever draws the navigation list."""

    def render_list(self, units: Sequence[Unit], active_index: int) -> None: ...

    def update_active_item(self, active_index: int) -> None: ...

    def set_visible(self, visible: bool) -> None: ...

    def update_position(self, side: str) -> None: ...

    def update_theme(self, is_dark: bool) -> None: ...

    def set_show_preview(self, show_preview: bool) -> None: ...

    def bind_selection(self, handler: SelectionHandler | None) -> None: ...

    def focus_item(self, index: int) -> None: ...


class RecordingPresenter:
    """Keeps every command it receives; used for headless sessions and tests."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.units: list[Unit] = []
        self.active_index = -1
        self.visible = True
        self.side = "right"
        self.is_dark = False
        self.show_preview = True
        self.focused = -1
        self.handler: SelectionHandler | None = None

    def render_list(self, units: Sequence[Unit], active_index: int) -> None:
        self.units = list(units)
        self.active_index = active_index
        self.calls.append(("render_list", len(self.units)))

    def update_active_item(self, active_index: int) -> None:
        self.active_index = active_index
        self.calls.append(("update_active_item", active_index))

    def set_visible(self, visible: bool) -> None:
        self.visible = visible
        self.calls.append(("set_visible", visible))

    def update_position(self, side: str) -> None:
        self.side = side
        self.calls.append(("update_position", side))

    def update_theme(self, is_dark: bool) -> None:
        self.is_dark = is_dark
        self.calls.append(("update_theme", is_dark))

    def set_show_preview(self, show_preview: bool) -> None:
        self.show_preview = show_preview
        self.calls.append(("set_show_preview", show_preview))

    def bind_selection(self, handler: SelectionHandler | None) -> None:
        self.handler = handler
        self.calls.append(("bind_selection", handler is not None))

    def focus_item(self, index: int) -> None:
        self.focused = index
        self.calls.append(("focus_item", index))

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    def select(self, index: int) -> Any:
        if self.handler is None:
            return None
        return self.handler(index)


class ConsolePresenter:
    """Draws the navigation list as a rich table."""

    def __init__(self, console: Console | None = None, *, show_preview: bool = True) -> None:
        self.console = console or Console()
        self.show_preview = show_preview
        self.visible = True
        self.side = "right"
        self.is_dark = False
        self._units: list[Unit] = []
        self._active_index = -1
        self._handler: SelectionHandler | None = None

    def build_table(self) -> Table:
        table = Table(title=f"Conversation ({len(self._units)})", title_justify="left")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Prompt", style="bold")
        if self.show_preview:
            table.add_column("Reply", style="italic")
        for idx, unit in enumerate(self._units):
            marker = ">" if idx == self._active_index else " "
            row = [f"{marker}{idx + 1}", escape(unit.title)]
            if self.show_preview:
                row.append(escape(unit.preview))
            table.add_row(*row)
        return table

    def render_list(self, units: Sequence[Unit], active_index: int) -> None:
        self._units = list(units)
        self._active_index = active_index
        if self.visible:
            self.console.print(self.build_table())

    def update_active_item(self, active_index: int) -> None:
        self._active_index = active_index
        if self.visible and 0 <= active_index < len(self._units):
            title = escape(self._units[active_index].title)
            self.console.print(f"[dim]active:[/dim] {active_index + 1}. {title}")

    def set_visible(self, visible: bool) -> None:
        self.visible = visible

    def update_position(self, side: str) -> None:
        self.side = side

    def update_theme(self, is_dark: bool) -> None:
        self.is_dark = is_dark

    def set_show_preview(self, show_preview: bool) -> None:
        self.show_preview = show_preview

    def bind_selection(self, handler: SelectionHandler | None) -> None:
        self._handler = handler

    def focus_item(self, index: int) -> None:
        if 0 <= index < len(self._units):
            self.console.print(f"[dim]focus:[/dim] {index + 1}. {escape(self._units[index].title)}")
