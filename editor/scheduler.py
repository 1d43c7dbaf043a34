"""Timer abstraction for debounce and periodic editor tasks.

The editor never calls ``time.sleep`` or creates threads. All delayed work
goes through a ``Scheduler`` so tests (and the CLI) can drive time with a
``VirtualClock`` while an asyncio host uses ``AsyncioScheduler``.
"""

import asyncio
import heapq
import itertools
import logging
from typing import Callable, Hashable, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ScheduledTask(Protocol):
    """Handle for a callback scheduled to run later."""

    def cancel(self) -> None:
        ...

    @property
    def cancelled(self) -> bool:
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Source of time and delayed callbacks."""

    def now(self) -> float:
        """Current time in seconds (monotonic)."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run ``callback`` once after ``delay`` seconds."""
        ...


def _run_guarded(callback: Callable[[], None]) -> None:
    """Run a timer callback; a failing callback never breaks the timer loop."""
    try:
        callback()
    except Exception:
        logger.exception("Scheduled callback %r failed", callback)


# ---------------------------------------------------------------------------
# Virtual clock
# ---------------------------------------------------------------------------

class _VirtualTask:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self._cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class VirtualClock:
    """Deterministic scheduler: time only moves when ``advance`` is called."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[tuple[float, int, _VirtualTask]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _VirtualTask:
        task = _VirtualTask(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (task.due, next(self._seq), task))
        return task

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due callbacks in order.

        Callbacks scheduled while advancing run in the same call if they fall
        due before the target time.
        """
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self._now = due
            task.fired = True
            _run_guarded(task.callback)
        self._now = target

    def run_all(self, max_seconds: float = 3600.0) -> None:
        """Fire everything pending, up to ``max_seconds`` of virtual time."""
        limit = self._now + max_seconds
        while self._queue and self._queue[0][0] <= limit:
            self.advance(max(0.0, self._queue[0][0] - self._now))


# ---------------------------------------------------------------------------
# asyncio
# ---------------------------------------------------------------------------

class _AsyncioTask:
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop's ``call_later``."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> _AsyncioTask:
        handle = self.loop.call_later(delay, _run_guarded, callback)
        return _AsyncioTask(handle)


# ---------------------------------------------------------------------------
# Debounce and periodic helpers
# ---------------------------------------------------------------------------

class Debouncer:
    """Keyed debounce timers with cancel/reschedule/flush semantics.

    ``schedule(key, cb)`` restarts the timer for ``key``; only the callback
    from the most recent call runs, ``delay`` seconds after that call.
    """

    def __init__(self, scheduler: Scheduler, delay: float):
        self.scheduler = scheduler
        self.delay = delay
        self._tasks: dict[Hashable, tuple[ScheduledTask, Callable[[], None]]] = {}

    def schedule(self, key: Hashable, callback: Callable[[], None]) -> None:
        self.cancel(key)

        def fire():
            self._tasks.pop(key, None)
            callback()

        self._tasks[key] = (self.scheduler.call_later(self.delay, fire), callback)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._tasks

    def cancel(self, key: Hashable) -> bool:
        entry = self._tasks.pop(key, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def flush(self, key: Hashable) -> bool:
        """Run the pending callback for ``key`` now. Returns False if none."""
        entry = self._tasks.pop(key, None)
        if entry is None:
            return False
        task, callback = entry
        task.cancel()
        callback()
        return True

    def cancel_all(self) -> None:
        for task, _ in self._tasks.values():
            task.cancel()
        self._tasks.clear()


class RecurringTask:
    """Run a callback every ``interval`` seconds until stopped."""

    def __init__(self, scheduler: Scheduler, interval: float, callback: Callable[[], None]):
        self.scheduler = scheduler
        self.interval = interval
        self.callback = callback
        self._task: Optional[ScheduledTask] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._arm()

    def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _arm(self) -> None:
        self._task = self.scheduler.call_later(self.interval, self._tick)

    def _tick(self) -> None:
        if not self._running:
            return
        # Re-arm first so a failing callback does not stop the ticker
        self._arm()
        self.callback()
