"""Fixed-cadence scheduling of a refresh callable."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable

from .settings import RefreshInterval, refresh_interval_seconds

logger = logging.getLogger(__name__)

RefreshFn = Callable[[], Any]
Sleep = Callable[[float], Awaitable[None]]


class Poller:
    """Invoke a refresh callable every *interval* until stopped.

    ``start`` always tears down the current schedule and installs a new one,
    even when nothing changed; ``stop`` is safe to call at any time. Ticks do
    not wait for earlier invocations to finish.
    """

    def __init__(self, name: str = "poller", sleep: Sleep = asyncio.sleep) -> None:
        self.name = name
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[Any]] = set()
        self.interval: RefreshInterval | None = None
        self.dependencies: tuple = ()

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(
        self,
        refresh: RefreshFn,
        interval: RefreshInterval,
        dependencies: Iterable[Any] = (),
    ) -> None:
        self.stop()
        self.interval = interval
        self.dependencies = tuple(dependencies)
        seconds = refresh_interval_seconds(interval)
        if seconds is None:
            logger.debug("%s: auto-refresh off", self.name)
            return
        logger.debug("%s: refreshing every %gs", self.name, seconds)
        self._task = asyncio.get_running_loop().create_task(self._run_loop(refresh, seconds))

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run_loop(self, refresh: RefreshFn, seconds: float) -> None:
        while True:
            await self._sleep(seconds)
            self._tick(refresh)

    def _tick(self, refresh: RefreshFn) -> None:
        try:
            outcome = refresh()
        except Exception:
            logger.exception("%s: refresh failed", self.name)
            return
        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            self._inflight.add(task)
            task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._inflight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("%s: refresh failed", self.name, exc_info=task.exception())
