"""Auto-refreshing views: the server overview and one server's containers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from collectors.base import ContainerStats, ServerOverview, ServerRecord

from .aggregator import Aggregator, ContainerAggregator, OverviewBoard
from .poller import Poller, Sleep
from .registry import ServerRegistry
from .settings import AppSettings, SettingsStore, SettingsWatcher

logger = logging.getLogger(__name__)


class PollingView:
    """Common lifecycle: open -> (apply_settings | refresh_now)* -> close."""

    name = "view"

    def __init__(self, settings: SettingsStore, sleep: Sleep = asyncio.sleep) -> None:
        self.settings_store = settings
        self.settings: AppSettings = settings.load()
        self.board = OverviewBoard()
        self.poller = Poller(self.name, sleep=sleep)
        self.watcher = SettingsWatcher(settings, self.apply_settings)
        self._listeners: list[Callable[[PollingView], None]] = []
        self._settings_listeners: list[Callable[[AppSettings], None]] = []
        self._opened = False
        self._schedule: tuple | None = None

    # -- subclass hooks -----------------------------------------------------

    def interval(self, settings: AppSettings):
        raise NotImplementedError

    def dependencies(self) -> tuple:
        return ()

    async def fetch(self) -> tuple[list, str | None]:
        raise NotImplementedError

    # -- lifecycle ----------------------------------------------------------

    async def open(self) -> None:
        self._opened = True
        self.watcher.start()
        self.apply_settings(self.settings_store.load())
        await self.refresh_now()

    def close(self) -> None:
        self._opened = False
        self._schedule = None
        self.poller.stop()
        self.watcher.stop()

    def apply_settings(self, settings: AppSettings) -> None:
        """Adopt *settings*; rebuild the schedule only if its inputs changed."""
        self.settings = settings
        for listener in list(self._settings_listeners):
            listener(settings)
        if not self._opened:
            return
        interval = self.interval(settings)
        deps = (interval, *self.dependencies())
        if deps == self._schedule:
            return
        self._schedule = deps
        self.poller.start(self.refresh_now, interval, deps)

    def on_focus(self) -> None:
        self.watcher.on_focus()

    def subscribe(self, listener: Callable[[PollingView], None]) -> None:
        self._listeners.append(listener)

    def on_settings(self, listener: Callable[[AppSettings], None]) -> None:
        """Call *listener* with every settings value the view adopts."""
        self._settings_listeners.append(listener)

    async def refresh_now(self) -> list:
        cycle = self.board.begin()
        try:
            items, error = await self.fetch()
        except Exception as e:
            logger.exception("%s: refresh failed", self.name)
            items, error = self.board.items, str(e)
        if self.board.publish(cycle, items, error):
            for listener in list(self._listeners):
                listener(self)
        return self.board.items

    @property
    def refreshing(self) -> bool:
        return self.board.refreshing > 0


class DashboardView(PollingView):
    name = "dashboard"

    def __init__(
        self,
        registry: ServerRegistry,
        aggregator: Aggregator,
        settings: SettingsStore,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        super().__init__(settings, sleep)
        self.registry = registry
        self.aggregator = aggregator

    def interval(self, settings: AppSettings):
        return settings.homePageRefreshInterval

    async def fetch(self) -> tuple[list[ServerOverview], None]:
        return await self.aggregator.collect(), None

    @property
    def overviews(self) -> list[ServerOverview]:
        return self.board.items

    def forget(self, server_id: str) -> None:
        """Drop a removed server from the current snapshot without a refetch."""
        self.board.items = [o for o in self.board.items if o.token_key != server_id]


class ServiceView(PollingView):
    """Containers of one server. The record is part of the schedule's inputs,
    so replacing its credential rebuilds the timer."""

    name = "service"

    def __init__(
        self,
        server_id: str,
        registry: ServerRegistry,
        aggregator: ContainerAggregator,
        settings: SettingsStore,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.server_id = server_id
        self.name = f"service:{server_id}"
        super().__init__(settings, sleep)
        self.registry = registry
        self.aggregator = aggregator
        self.record: ServerRecord | None = registry.get(server_id)

    def interval(self, settings: AppSettings):
        return settings.serviceRefreshInterval

    def dependencies(self) -> tuple:
        return (self.record,)

    async def fetch(self) -> tuple[list[ContainerStats], str | None]:
        record = self.registry.get(self.server_id)
        if record != self.record:
            self.record = record
            self.apply_settings(self.settings)
        if record is None:
            return [], "Server not found"
        result = await self.aggregator.collect(record)
        if result.ok:
            return result.value, None
        # keep showing the last good table alongside the error
        return self.board.items, result.reason

    @property
    def containers(self) -> list[ContainerStats]:
        return self.board.items

    @property
    def error(self) -> str | None:
        return self.board.error

    def snapshot(self) -> dict[str, Any]:
        return {
            "server": None if self.record is None else {
                "id": self.record.id, "hostname": self.record.address,
            },
            "refreshInterval": self.settings.serviceRefreshInterval,
            "error": self.error,
            "containers": [c.to_dict() for c in self.containers],
        }
