"""Fan a refresh cycle out to every registered server and reduce the results."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Callable, Iterable, Sequence

from collectors.base import (
    BaseCollector,
    ContainerStats,
    Err,
    Result,
    ServerOverview,
    ServerRecord,
)

logger = logging.getLogger(__name__)


class Aggregator:
    """One ServerOverview per registered server, in registry order.

    A failing server yields an ``error`` entry and never affects the others;
    ``collect`` itself does not raise.
    """

    def __init__(
        self,
        servers: Callable[[], Sequence[ServerRecord]],
        collector: BaseCollector,
        timeout: float | None = None,
    ) -> None:
        self.servers = servers
        self.collector = collector
        self.timeout = timeout if timeout is not None else collector.timeout

    async def collect(self) -> list[ServerOverview]:
        snapshot = tuple(self.servers())
        if not snapshot:
            return []
        # gather keeps input order regardless of completion order
        return list(await asyncio.gather(*(self._overview(r) for r in snapshot)))

    async def _overview(self, record: ServerRecord) -> ServerOverview:
        try:
            result = await asyncio.wait_for(
                self.collector.system_stats(record.address, record.credential),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            result = Err(f"Timed out after {self.timeout:g}s")
        except Exception as e:
            logger.exception("Collector raised for %s", record.address)
            result = Err(str(e) or e.__class__.__name__)

        if result.ok:
            return ServerOverview.online(record, result.value)
        logger.info("Failed to fetch stats for %s: %s", record.address, result.reason)
        return ServerOverview.error(record, result.reason)


class ContainerAggregator:
    """Per-container stats for a single server."""

    def __init__(self, collector: BaseCollector, timeout: float | None = None) -> None:
        self.collector = collector
        self.timeout = timeout if timeout is not None else collector.timeout

    async def collect(self, record: ServerRecord) -> Result[list[ContainerStats]]:
        try:
            return await asyncio.wait_for(
                self.collector.containers(record.address, record.credential),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return Err(f"Timed out after {self.timeout:g}s")
        except Exception as e:
            logger.exception("Collector raised for %s", record.address)
            return Err(str(e) or e.__class__.__name__)


class OverviewBoard:
    """Latest published result, guarded by a monotonic cycle number.

    Overlapping cycles may settle out of order; a result whose cycle is older
    than the one already published is dropped.
    """

    def __init__(self) -> None:
        self._cycles = itertools.count(1)
        self._published = 0
        self.items: list = []
        self.error: str | None = None
        self.refreshing = 0

    def begin(self) -> int:
        self.refreshing += 1
        return next(self._cycles)

    def publish(self, cycle: int, items: list, error: str | None = None) -> bool:
        self.refreshing = max(self.refreshing - 1, 0)
        if cycle <= self._published:
            logger.debug("Discarding stale cycle %d (latest %d)", cycle, self._published)
            return False
        self._published = cycle
        self.items = list(items)
        self.error = error
        return True

    @property
    def cycle(self) -> int:
        return self._published


# ---------------------------------------------------------------------------
# Search and sort for the table views
# ---------------------------------------------------------------------------

OVERVIEW_SORT_FIELDS = {
    "hostname": lambda o: o.hostname.lower(),
    "uptime": lambda o: o.uptime_days,
    "ram": lambda o: o.ram_percent,
    "disk": lambda o: o.disk_percent,
    "cpu": lambda o: o.cpu_percent,
    "status": lambda o: o.status,
}

CONTAINER_SORT_FIELDS = {
    "projectName": lambda c: c.project_name.lower(),
    "serviceName": lambda c: c.service_name.lower(),
    "cpuPercent": lambda c: c.cpu_percent,
    "memoryPercent": lambda c: c.memory_percent,
    "memoryUsage": lambda c: c.memory_usage_bytes,
    "networkIn": lambda c: c.network_in_bytes,
    "networkOut": lambda c: c.network_out_bytes,
}


def _sorted(items: Iterable, key, descending: bool) -> list:
    # unknown (None) values always sink to the bottom
    known = [i for i in items if key(i) is not None]
    unknown = [i for i in items if key(i) is None]
    return sorted(known, key=key, reverse=descending) + unknown


def filter_and_sort_overviews(
    overviews: Iterable[ServerOverview],
    search: str = "",
    sort: str = "hostname",
    direction: str = "asc",
) -> list[ServerOverview]:
    if sort not in OVERVIEW_SORT_FIELDS:
        raise ValueError(f"unknown sort field {sort!r}")
    term = search.strip().lower()
    items = [o for o in overviews if term in o.hostname.lower()]
    return _sorted(items, OVERVIEW_SORT_FIELDS[sort], direction == "desc")


def filter_and_sort_containers(
    containers: Iterable[ContainerStats],
    search: str = "",
    sort: str = "projectName",
    direction: str = "asc",
) -> list[ContainerStats]:
    if sort not in CONTAINER_SORT_FIELDS:
        raise ValueError(f"unknown sort field {sort!r}")
    term = search.strip().lower()
    items = [
        c for c in containers
        if term in c.project_name.lower() or term in c.service_name.lower()
    ]
    return _sorted(items, CONTAINER_SORT_FIELDS[sort], direction == "desc")
