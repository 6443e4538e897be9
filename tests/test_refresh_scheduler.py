"""
Tests for the dashboard refresh state machine.

Ticks are driven by calling tick() directly; only the ticker test uses the
background task, with a very short tick period.
"""

import asyncio

import pytest

from nebula.services.refresh_scheduler import RefreshMode, RefreshScheduler


class CountingFetch:
    """Fetch function that returns an increasing version number."""

    def __init__(self):
        self.calls = 0
        self.release = None

    async def __call__(self):
        self.calls += 1
        if self.release is not None:
            await self.release.wait()
        return {"version": self.calls}


@pytest.mark.asyncio
async def test_auto_countdown_fetches_at_zero_and_resets():
    fetch = CountingFetch()
    scheduler = RefreshScheduler(fetch, interval=3)

    await scheduler.tick()
    await scheduler.tick()
    assert scheduler.countdown == 1
    assert fetch.calls == 0

    await scheduler.tick()

    assert fetch.calls == 1
    assert scheduler.latest == {"version": 1}
    assert scheduler.countdown == 3
    assert scheduler.state()["state"] == "auto"


@pytest.mark.asyncio
async def test_manual_mode_ignores_ticks():
    fetch = CountingFetch()
    scheduler = RefreshScheduler(fetch, interval=2, mode=RefreshMode.MANUAL)

    for _ in range(5):
        await scheduler.tick()

    assert fetch.calls == 0
    assert scheduler.state() == {
        "state": "manual",
        "mode": "manual",
        "countdown": None,
        "fetching": False,
    }


@pytest.mark.asyncio
async def test_toggle_only_switches_mode():
    fetch = CountingFetch()
    scheduler = RefreshScheduler(fetch, interval=30)
    await scheduler.tick()

    assert await scheduler.toggle() is RefreshMode.MANUAL
    assert await scheduler.toggle() is RefreshMode.AUTO

    assert fetch.calls == 0
    assert scheduler.countdown == 30


@pytest.mark.asyncio
async def test_manual_refresh_returns_to_previous_mode():
    fetch = CountingFetch()
    manual = RefreshScheduler(fetch, interval=30, mode=RefreshMode.MANUAL)
    auto = RefreshScheduler(fetch, interval=30)
    await auto.tick()
    await auto.tick()

    assert await manual.refresh() == {"version": 1}
    assert manual.mode is RefreshMode.MANUAL

    await auto.refresh()
    assert auto.mode is RefreshMode.AUTO
    assert auto.countdown == 30


@pytest.mark.asyncio
async def test_tick_while_fetching_is_ignored():
    fetch = CountingFetch()
    fetch.release = asyncio.Event()
    scheduler = RefreshScheduler(fetch, interval=30)

    pending = asyncio.create_task(scheduler.refresh())
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert scheduler.state()["state"] == "fetching"

    countdown = scheduler.countdown
    await scheduler.tick()
    assert scheduler.countdown == countdown

    # A second refresh joins the in-flight fetch
    joined = asyncio.create_task(scheduler.refresh())
    await asyncio.sleep(0)
    fetch.release.set()
    await asyncio.gather(pending, joined)

    assert fetch.calls == 1
    assert scheduler.fetching is False


@pytest.mark.asyncio
async def test_failed_fetch_keeps_last_view():
    results = [{"version": 1}, RuntimeError("database unavailable")]

    async def flaky_fetch():
        result = results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    scheduler = RefreshScheduler(flaky_fetch, interval=30)

    await scheduler.refresh()
    await scheduler.refresh()

    assert scheduler.latest == {"version": 1}
    assert isinstance(scheduler.last_error, RuntimeError)
    assert scheduler.mode is RefreshMode.AUTO


@pytest.mark.asyncio
async def test_listeners_see_transitions_and_views():
    states, views = [], []
    scheduler = RefreshScheduler(
        CountingFetch(),
        interval=30,
        on_update=views.append,
        on_state=states.append,
    )

    await scheduler.refresh()

    assert views == [{"version": 1}]
    assert [state["state"] for state in states] == ["fetching", "auto"]


@pytest.mark.asyncio
async def test_background_ticker_refreshes_and_stops():
    fetch = CountingFetch()
    scheduler = RefreshScheduler(fetch, interval=2, tick_seconds=0.01)

    scheduler.start()
    assert scheduler.running
    for _ in range(200):
        if fetch.calls >= 2:
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert fetch.calls >= 2
    assert not scheduler.running
