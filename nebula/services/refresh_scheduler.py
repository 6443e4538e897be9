"""
Refresh Scheduler

Auto/manual refresh state machine for one dashboard consumer.

States:
- auto: a 1-second tick counts down from the refresh interval; at zero the
  scheduler fetches and starts the countdown again
- manual: no ticking; only explicit refresh() fetches
- fetching: a fetch is in flight; afterwards the scheduler is back in the
  mode it was in (auto restarts its countdown)

Ticks that arrive while fetching are ignored, and a refresh() during an
in-flight fetch waits for that fetch instead of starting a second one.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

FetchCallable = Callable[[], Awaitable[Any]]
Listener = Callable[..., Any]


class RefreshMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class RefreshScheduler:
    """
    Drives periodic or manual re-fetching of an analytics view.

    Args:
        fetch: Coroutine function producing a fresh view
        interval: Countdown length in ticks (seconds)
        tick_seconds: Delay between ticks of the background ticker
        on_update: Called with each freshly fetched view
        on_state: Called with state() after every tick or transition
        mode: Initial mode
    """

    def __init__(
        self,
        fetch: FetchCallable,
        interval: int = 30,
        tick_seconds: float = 1.0,
        on_update: Optional[Listener] = None,
        on_state: Optional[Listener] = None,
        mode: RefreshMode = RefreshMode.AUTO,
    ):
        self.fetch = fetch
        self.interval = interval
        self.tick_seconds = tick_seconds
        self.on_update = on_update
        self.on_state = on_state
        self.mode = mode
        self.countdown = interval
        self.latest: Any = None
        self.last_error: Optional[Exception] = None
        self._inflight: Optional[asyncio.Task] = None
        self._ticker: Optional[asyncio.Task] = None

    @property
    def fetching(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def state(self) -> dict:
        return {
            "state": "fetching" if self.fetching else self.mode.value,
            "mode": self.mode.value,
            "countdown": self.countdown if self.mode is RefreshMode.AUTO else None,
            "fetching": self.fetching,
        }

    async def tick(self) -> None:
        """Advance the countdown by one step; fetch when it reaches zero."""
        if self.mode is not RefreshMode.AUTO or self.fetching:
            return
        self.countdown = max(self.countdown - 1, 0)
        if self.countdown == 0:
            await self.refresh()
        else:
            await self._emit(self.on_state, self.state())

    async def refresh(self) -> Any:
        """
        Fetch now, from any state.

        Returns:
            The latest view (unchanged if the fetch failed)
        """
        if not self.fetching:
            self._inflight = asyncio.create_task(self._run_fetch())
            await self._emit(self.on_state, self.state())
        await asyncio.shield(self._inflight)
        return self.latest

    async def _run_fetch(self) -> None:
        try:
            view = await self.fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.last_error = e
            logger.error(f"Analytics refresh failed: {e}", exc_info=True)
        else:
            self.latest = view
            self.last_error = None
            await self._emit(self.on_update, view)
        finally:
            if self.mode is RefreshMode.AUTO:
                self.countdown = self.interval

        await self._emit(self.on_state, self._settled_state())

    def _settled_state(self) -> dict:
        # called from inside the fetch task, which still counts as in flight
        state = self.state()
        state.update(state=self.mode.value, fetching=False)
        return state

    async def toggle(self) -> RefreshMode:
        """Switch between auto and manual; only starts or stops the ticking."""
        if self.mode is RefreshMode.AUTO:
            await self.set_mode(RefreshMode.MANUAL)
        else:
            await self.set_mode(RefreshMode.AUTO)
        return self.mode

    async def set_mode(self, mode: RefreshMode) -> None:
        if mode is self.mode:
            return
        self.mode = mode
        if mode is RefreshMode.AUTO:
            self.countdown = self.interval
        await self._emit(self.on_state, self.state())

    def start(self) -> None:
        """Start the background ticker (ticks are no-ops in manual mode)."""
        if not self.running:
            self._ticker = asyncio.create_task(self._tick_loop())

    async def stop(self) -> None:
        """Stop ticking and cancel any in-flight fetch."""
        for task in (self._ticker, self._inflight):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._ticker = None
        self._inflight = None

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_seconds)
            if self.fetching:
                continue
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Refresh tick failed: {e}", exc_info=True)

    async def _emit(self, listener: Optional[Listener], payload: Any) -> None:
        if listener is None:
            return
        result = listener(payload)
        if inspect.isawaitable(result):
            await result
