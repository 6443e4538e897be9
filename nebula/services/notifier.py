"""
Realtime Notifier

Pushes the current visitor count to every live subscriber whenever it
changes.

Design Decisions:
- Push semantics: subscribers register a callback and are notified; they
  never poll
- Callbacks may be plain functions or coroutines
- A subscriber whose callback raises is dropped and, if it registered an
  error handler, told about it with a SubscriptionFailure; other subscribers
  are unaffected
- Only changes are published: re-publishing the last value is a no-op
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from nebula.core.exceptions import SubscriptionFailure

logger = logging.getLogger(__name__)

CountCallback = Callable[[int], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[SubscriptionFailure], Any]


class Subscription:
    """Handle returned by subscribe(); call unsubscribe() when detaching."""

    def __init__(
        self,
        notifier: "RealtimeNotifier",
        callback: CountCallback,
        on_error: Optional[ErrorCallback] = None,
    ):
        self._notifier = notifier
        self.callback = callback
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._notifier._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class RealtimeNotifier:
    """Fan-out of counter values to subscribers."""

    def __init__(self):
        self._subscriptions: list[Subscription] = []
        self._last_value: Optional[int] = None

    @property
    def last_value(self) -> Optional[int]:
        return self._last_value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        callback: CountCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Register a callback for every future counter change.

        Args:
            callback: Called with the new count
            on_error: Called once if the subscription is dropped after the
                callback failed

        Returns:
            Subscription handle
        """
        subscription = Subscription(self, callback, on_error)
        self._subscriptions.append(subscription)
        logger.debug(f"Counter subscriber added ({len(self._subscriptions)} live)")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.debug(f"Counter subscriber removed ({len(self._subscriptions)} live)")

    async def publish(self, value: int) -> None:
        """
        Deliver a new counter value to all live subscribers.

        Values that do not change the last published value are skipped, as
        are stale values lower than it (concurrent increments may finish out
        of order; the count never decreases).
        """
        if self._last_value is not None and value <= self._last_value:
            return
        self._last_value = value

        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                result = subscription.callback(value)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Dropping counter subscriber after delivery error: {e}")
                subscription.unsubscribe()
                await self._report_failure(subscription, e)

    async def _report_failure(self, subscription: Subscription, error: Exception) -> None:
        if subscription.on_error is None:
            return
        try:
            result = subscription.on_error(SubscriptionFailure("delivery to subscriber failed", error))
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # The value is already stored; a broken handler must not fail the publisher
            logger.error(f"Counter subscriber error handler failed: {e}", exc_info=True)
