"""Textual dashboard app: flicker-free reactive terminal UI."""

from __future__ import annotations

import asyncio
import re

from textual.app import App, ComposeResult
from textual.containers import Grid
from textual.reactive import reactive
from textual.widgets import Footer, Header, Static

from collectors.base import ServerOverview
from dashboard.views import DashboardView
from ui.widgets.server_card import ServerCard


def card_id(token_key: str) -> str:
    return "card-" + re.sub(r"[^a-z0-9_-]", "", token_key.lower())


THEMES = {"dark": "textual-dark", "light": "textual-light"}


def theme_for(color_mode: str) -> str | None:
    """Textual theme for a colorMode setting; None means the app default."""
    return THEMES.get(color_mode)


def summarize(overviews: list[ServerOverview]) -> tuple[str, str]:
    """Aggregate health as (status, detail) for the status bar."""
    if not overviews:
        return "waiting", ""
    down = [o.hostname for o in overviews if not o.is_online]
    if down:
        label = f"{len(down)} Server{'s' if len(down) > 1 else ''} Down"
        return "error", f"{label}: {', '.join(down)}"
    return "ok", f"{len(overviews)}/{len(overviews)} servers healthy"


class StatusBar(Static):
    """Colored status bar showing aggregate server health."""

    status: reactive[str] = reactive("waiting")
    detail: reactive[str] = reactive("")

    def render(self) -> str:
        if self.status == "ok":
            return f"[bold white on green] All Systems OK [/]  [green]{self.detail}[/]"
        elif self.status == "error":
            return f"[bold white on red] {self.detail} [/]"
        return "[dim]Waiting for server data...[/]"

    def watch_status(self, new_val: str) -> None:
        self.refresh()

    def watch_detail(self, new_val: str) -> None:
        self.refresh()


class DashboardApp(App):
    """EasyPanel overview dashboard with differential rendering."""

    CSS = """
    Screen {
        background: $surface;
    }
    #status-bar {
        height: 1;
        width: 1fr;
        padding: 0 2;
    }
    #dashboard-grid {
        grid-size: 2;
        grid-gutter: 1 2;
        padding: 1 2;
        width: 1fr;
        height: 1fr;
    }
    ServerCard {
        padding: 1 2;
        background: $panel;
        border: round $primary;
        width: 1fr;
        height: auto;
    }
    ServerCard.error-state {
        border: heavy red;
    }
    .hidden {
        display: none;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh Now"),
        ("m", "toggle_mini", "Mini Player"),
    ]

    def __init__(self, view: DashboardView, watch_interval: float = 2.0) -> None:
        super().__init__()
        self.view = view
        self.watch_interval = watch_interval
        self._cards: dict[str, ServerCard] = {}
        self._status_bar: StatusBar | None = None
        self._mini_mode: bool = False
        self._tasks: set[asyncio.Task] = set()
        self._default_theme = self.theme

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        self._status_bar = StatusBar(id="status-bar")
        yield self._status_bar
        with Grid(id="dashboard-grid"):
            for record in self.view.registry.list():
                card = ServerCard(record.address, id=card_id(record.id))
                self._cards[record.id] = card
                yield card
        yield Footer()

    async def on_mount(self) -> None:
        self.apply_color_mode(self.view.settings.colorMode)
        self.view.on_settings(lambda settings: self.apply_color_mode(settings.colorMode))
        self.view.subscribe(lambda view: self._show(view.overviews))
        self._spawn(self.view.open())
        self._spawn(self.view.settings_store.store.watch(self.watch_interval))

    def apply_color_mode(self, color_mode: str) -> None:
        theme = theme_for(color_mode) or self._default_theme
        if theme != self.theme:
            self.theme = theme

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _show(self, overviews: list[ServerOverview]) -> None:
        grid = self.query_one("#dashboard-grid", Grid)
        for overview in overviews:
            card = self._cards.get(overview.token_key)
            if card is None:
                # registered from another process since startup
                card = ServerCard(overview.hostname, id=card_id(overview.token_key))
                self._cards[overview.token_key] = card
                grid.mount(card)
            card.overview = overview
        present = {o.token_key for o in overviews}
        for token_key in list(self._cards):
            if token_key not in present:
                self._cards.pop(token_key).remove()
        self._update_status_bar(overviews)

    def _update_status_bar(self, overviews: list[ServerOverview]) -> None:
        """Recompute aggregate status from the latest overviews."""
        if self._status_bar is None:
            return
        status, detail = summarize(overviews)
        self._status_bar.status = status
        self._status_bar.detail = detail

    def action_toggle_mini(self) -> None:
        """Toggle between mini (status bar only) and full dashboard."""
        self._mini_mode = not self._mini_mode
        grid = self.query_one("#dashboard-grid")
        header = self.query_one("Header")
        grid.set_class(self._mini_mode, "hidden")
        header.set_class(self._mini_mode, "hidden")

    def action_refresh(self) -> None:
        self._spawn(self.view.refresh_now())

    def on_app_focus(self) -> None:
        self.view.on_focus()

    def on_unmount(self) -> None:
        self.view.close()
        for task in list(self._tasks):
            task.cancel()
