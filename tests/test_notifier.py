"""Tests for the realtime counter notifier."""

import pytest

from nebula.core.exceptions import SubscriptionFailure
from nebula.services.notifier import RealtimeNotifier


@pytest.mark.asyncio
async def test_every_subscriber_receives_each_change():
    notifier = RealtimeNotifier()
    first, second = [], []
    notifier.subscribe(first.append)
    notifier.subscribe(second.append)

    await notifier.publish(1)
    await notifier.publish(2)

    assert first == [1, 2]
    assert second == [1, 2]


@pytest.mark.asyncio
async def test_async_callbacks_are_awaited():
    notifier = RealtimeNotifier()
    received = []

    async def on_count(count):
        received.append(count)

    notifier.subscribe(on_count)
    await notifier.publish(7)

    assert received == [7]


@pytest.mark.asyncio
async def test_unchanged_or_stale_values_are_not_pushed():
    notifier = RealtimeNotifier()
    received = []
    notifier.subscribe(received.append)

    await notifier.publish(5)
    await notifier.publish(5)
    await notifier.publish(4)  # an increment that committed earlier but finished later
    await notifier.publish(6)

    assert received == [5, 6]
    assert notifier.last_value == 6


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery():
    notifier = RealtimeNotifier()
    received = []

    with notifier.subscribe(received.append):
        await notifier.publish(1)
    await notifier.publish(2)

    assert received == [1]
    assert notifier.subscriber_count == 0


@pytest.mark.asyncio
async def test_failing_subscriber_is_dropped_and_told():
    notifier = RealtimeNotifier()
    failures, healthy = [], []

    def broken(count):
        raise ConnectionError("socket closed")

    subscription = notifier.subscribe(broken, on_error=failures.append)
    notifier.subscribe(healthy.append)

    await notifier.publish(1)
    await notifier.publish(2)

    assert healthy == [1, 2]
    assert subscription.active is False
    assert len(failures) == 1
    assert isinstance(failures[0], SubscriptionFailure)
    assert notifier.subscriber_count == 1


@pytest.mark.asyncio
async def test_broken_error_handler_does_not_fail_publish():
    notifier = RealtimeNotifier()
    healthy = []

    def broken(count):
        raise ConnectionError("socket closed")

    def broken_handler(failure):
        raise RuntimeError("handler crashed too")

    subscription = notifier.subscribe(broken, on_error=broken_handler)
    notifier.subscribe(healthy.append)

    await notifier.publish(1)

    assert healthy == [1]
    assert subscription.active is False
    assert notifier.last_value == 1


@pytest.mark.asyncio
async def test_async_error_handlers_are_awaited():
    notifier = RealtimeNotifier()
    failures = []

    def broken(count):
        raise ConnectionError("socket closed")

    async def on_error(failure):
        failures.append(failure)

    notifier.subscribe(broken, on_error=on_error)
    await notifier.publish(1)

    assert len(failures) == 1
