import asyncio

from conftest import FakeClock, drain

from dashboard.poller import Poller
from dashboard.settings import refresh_interval_seconds


def test_interval_mapping():
    assert refresh_interval_seconds(1) == 60
    assert refresh_interval_seconds(5) == 300
    assert refresh_interval_seconds(60) == 3600
    assert refresh_interval_seconds("off") is None


def test_ticks_every_five_minutes():
    async def run():
        clock = FakeClock(budget=3)
        ticks = []
        poller = Poller(sleep=clock.sleep)
        poller.start(lambda: ticks.append(clock.now), 5)
        await drain()
        poller.stop()
        return ticks

    assert asyncio.run(run()) == [300, 600, 900]


def test_off_never_schedules():
    async def run():
        clock = FakeClock(budget=100)
        ticks = []
        poller = Poller(sleep=clock.sleep)
        poller.start(lambda: ticks.append(clock.now), "off")
        await drain()
        return poller, clock, ticks

    poller, clock, ticks = asyncio.run(run())
    assert ticks == []
    assert clock.requested == []
    assert not poller.active


def test_restart_replaces_previous_schedule():
    async def run():
        clock = FakeClock(budget=0)
        ticks = []
        poller = Poller(sleep=clock.sleep)
        poller.start(lambda: ticks.append(("five", clock.now)), 5)
        await drain()
        poller.start(lambda: ticks.append(("one", clock.now)), 1)
        clock.budget = 3
        await drain()
        poller.stop()
        return ticks

    assert asyncio.run(run()) == [("one", 60), ("one", 120), ("one", 180)]


def test_restart_with_same_interval_still_recreates_timer():
    async def run():
        clock = FakeClock(budget=0)
        poller = Poller(sleep=clock.sleep)
        poller.start(lambda: None, 5, ["token-a"])
        first = poller._task
        poller.start(lambda: None, 5, ["token-b"])
        await drain(5)
        second = poller._task
        poller.stop()
        return first, second, poller.dependencies

    first, second, deps = asyncio.run(run())
    assert first is not second
    assert first.cancelled()
    assert deps == ("token-b",)


def test_switching_to_off_cancels_pending_tick():
    async def run():
        clock = FakeClock(budget=0)
        ticks = []
        poller = Poller(sleep=clock.sleep)
        poller.start(lambda: ticks.append(clock.now), 1)
        await drain(5)
        poller.start(lambda: ticks.append(clock.now), "off")
        clock.budget = 10
        await drain()
        return ticks, poller

    ticks, poller = asyncio.run(run())
    assert ticks == []
    assert not poller.active


def test_stop_prevents_future_ticks():
    async def run():
        clock = FakeClock(budget=0)
        ticks = []
        poller = Poller(sleep=clock.sleep)
        poller.start(lambda: ticks.append(clock.now), 1)
        await drain(5)
        poller.stop()
        poller.stop()  # idempotent
        clock.budget = 10
        await drain()
        return ticks

    assert asyncio.run(run()) == []


def test_stop_without_start_is_safe():
    Poller().stop()


def test_invocations_may_overlap():
    async def run():
        clock = FakeClock(budget=3)
        release = asyncio.Event()
        running = []
        finished = []

        async def slow_refresh():
            running.append(clock.now)
            await release.wait()
            finished.append(clock.now)

        poller = Poller(sleep=clock.sleep)
        poller.start(slow_refresh, 1)
        await drain()
        overlapping = len(running) - len(finished)
        release.set()
        await drain()
        poller.stop()
        return overlapping, finished

    overlapping, finished = asyncio.run(run())
    assert overlapping == 3
    assert len(finished) == 3


def test_refresh_failure_does_not_stop_schedule():
    async def run():
        clock = FakeClock(budget=3)
        calls = []

        async def failing():
            calls.append(clock.now)
            raise RuntimeError("boom")

        poller = Poller(sleep=clock.sleep)
        poller.start(failing, 1)
        await drain()
        poller.stop()
        return calls

    assert asyncio.run(run()) == [60, 120, 180]
