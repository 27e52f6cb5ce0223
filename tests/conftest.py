import asyncio

import pytest

from collectors.base import BaseCollector, ContainerStats, Err, Ok, SystemStats
from dashboard.registry import ServerRegistry
from dashboard.settings import SettingsStore
from dashboard.store import KeyValueStore


def make_stats(uptime=864000, mem_percent=50.0, disk_percent=42.5, cpu=12.3):
    return SystemStats(
        uptime_seconds=uptime,
        mem_used_mb=4096,
        mem_total_mb=8192,
        mem_used_percent=mem_percent,
        disk_used_gb=40.0,
        disk_total_gb=100.0,
        disk_used_percent=disk_percent,
        cpu_used_percent=cpu,
    )


def make_container(project, service, cpu=1.0, mem=1.0):
    return ContainerStats(
        id=f"{project}-{service}",
        project_name=project,
        service_name=service,
        container_name=f"{project}_{service}.1.abc",
        cpu_percent=cpu,
        memory_usage_bytes=mem * 1024 * 1024,
        memory_percent=mem,
        network_in_bytes=1000,
        network_out_bytes=2000,
    )


class FakeCollector(BaseCollector):
    """Scripted provider keyed by server address.

    ``stats[address]`` may be SystemStats, an Err, or an exception to raise.
    Unknown addresses answer like an unreachable host.
    """

    def __init__(self, stats=None, containers=None, delays=None, timeout=1.0):
        super().__init__("fake", timeout)
        self.stats = stats or {}
        self.container_rows = containers or {}
        self.delays = delays or {}
        self.calls = []

    async def _answer(self, table, address, credential):
        self.calls.append((address, credential))
        delay = self.delays.get(address)
        if delay == "hang":
            await asyncio.Event().wait()
        elif delay:
            await asyncio.sleep(delay)
        outcome = table.get(address, Err("Connection refused"))
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, Err):
            return outcome
        return Ok(outcome)

    async def system_stats(self, address, credential):
        return await self._answer(self.stats, address, credential)

    async def containers(self, address, credential):
        return await self._answer(self.container_rows, address, credential)

    async def login(self, address, email, password):
        if password == "pw":
            return Ok("issued-token")
        return Err("Invalid credentials", status=401)


class FakeClock:
    """Stand-in for asyncio.sleep that advances virtual time instantly.

    After ``budget`` sleeps it parks forever, so a poll loop stops ticking
    until the test raises the budget again.
    """

    def __init__(self, budget=0):
        self.now = 0.0
        self.budget = budget
        self.requested = []

    async def sleep(self, seconds):
        self.requested.append(seconds)
        while self.budget <= 0:
            await asyncio.sleep(0)
        self.budget -= 1
        self.now += seconds


async def drain(rounds=100):
    """Let scheduled tasks run for a while."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def store(tmp_path):
    return KeyValueStore(tmp_path / "store.yaml")


@pytest.fixture
def registry(store):
    return ServerRegistry(store)


@pytest.fixture
def settings_store(store):
    return SettingsStore(store)
