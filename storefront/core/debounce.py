import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

logger = logging.getLogger(__name__)

_EMPTY = object()


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopClock:
    """Clock backed by the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class Debouncer:
    """Collapse bursts of scheduled values into one delayed call.

    The pending slot holds only the latest value; every ``schedule`` replaces
    it and restarts the timer. When the timer fires the value is handed to
    ``action`` as a background task. Fired tasks are never cancelled.
    """

    def __init__(
        self,
        delay: float,
        action: Callable[[Any], Awaitable[None]],
        clock: Clock | None = None,
    ):
        self.delay = delay
        self._action = action
        self._clock = clock or LoopClock()
        self._pending: Any = _EMPTY
        self._timer: TimerHandle | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def has_pending(self) -> bool:
        return self._pending is not _EMPTY

    @property
    def pending(self) -> Any:
        """The value waiting to be written, or None."""
        return None if self._pending is _EMPTY else self._pending

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def schedule(self, value: Any):
        self._pending = value
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._clock.call_later(self.delay, self._fire)

    def cancel(self):
        """Drop the pending value. Writes already started keep running."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = _EMPTY

    async def flush(self):
        """Fire the pending value now and wait for every write to finish."""
        if self.has_pending:
            if self._timer is not None:
                self._timer.cancel()
            self._fire()
        await self.drain()

    async def drain(self):
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def _fire(self):
        self._timer = None
        if not self.has_pending:
            return
        value, self._pending = self._pending, _EMPTY
        task = asyncio.ensure_future(self._action(value))
        self._inflight.add(task)
        task.add_done_callback(self._done)

    def _done(self, task: asyncio.Task):
        self._inflight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Debounced write failed", exc_info=task.exception())
