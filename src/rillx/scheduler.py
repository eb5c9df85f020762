"""Scheduling primitives — where deferred work actually runs.

Streams never deliver synchronously from inside each(). Sources hand their
work to a Scheduler ("run this later, in FIFO order") and timing operators
arm one-shot timers on it. Two implementations ship here:

- ThreadScheduler: a single daemon worker drains a FIFO queue. Timers fire
  on their own daemon threads but only enqueue their callback, so all
  delivery happens on the worker, one task at a time.
- VirtualScheduler: deterministic virtual time. Nothing runs until you
  flush(), advance() or run() it. Used by the tests.

Call set_scheduler() once to change the process-wide default; pass
scheduler= to Stream.each() to override it for one subscription.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import queue
import threading
import time
from collections import deque
from typing import Any, Callable, Protocol

logger = logging.getLogger("rillx.scheduler")

Task = Callable[[], Any]


class Scheduler(Protocol):
    """What the stream core needs from an event loop."""

    def schedule(self, task: Task) -> None: ...

    def set_timer(self, callback: Task, delay: float) -> Any: ...

    def clear_timer(self, handle: Any) -> None: ...

    def now(self) -> float: ...


# ─── Thread-backed ───────────────────────────────────────────────────────────


class _ThreadTimer:
    """Timer handle. Cancelling also stops a callback already queued."""

    __slots__ = ("_timer", "cancelled")

    def __init__(self) -> None:
        self._timer: threading.Timer | None = None
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()


class ThreadScheduler:
    """Runs tasks on one daemon worker thread, in the order they were scheduled."""

    def __init__(self, name: str = "rillx-scheduler") -> None:
        self._name = name
        self._queue: queue.SimpleQueue[Task] = queue.SimpleQueue()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def thread(self) -> threading.Thread | None:
        """The worker thread, once the first task has been scheduled."""
        return self._thread

    def schedule(self, task: Task) -> None:
        self._ensure_started()
        self._queue.put(task)

    def set_timer(self, callback: Task, delay: float) -> _ThreadTimer:
        handle = _ThreadTimer()

        def _fire() -> None:
            if not handle.cancelled:
                callback()

        t = threading.Timer(max(delay, 0.0), self.schedule, args=[_fire])
        t.daemon = True
        handle._timer = t
        t.start()
        return handle

    def clear_timer(self, handle: _ThreadTimer) -> None:
        handle.cancel()

    def now(self) -> float:
        return time.monotonic()

    def _ensure_started(self) -> None:
        with self._lock:
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._work, name=self._name, daemon=True
                )
                self._thread.start()
                logger.debug("Started scheduler thread %s", self._name)

    def _work(self) -> None:
        while True:
            task = self._queue.get()
            try:
                task()
            except Exception:
                # Keep the worker alive — one bad consumer must not stall every stream.
                logger.exception("Unhandled error in scheduled task %r", task)


# ─── Virtual time ────────────────────────────────────────────────────────────


class _VirtualTimer:
    __slots__ = ("callback", "cancelled")

    def __init__(self, callback: Task) -> None:
        self.callback = callback
        self.cancelled = False


class VirtualScheduler:
    """Deterministic scheduler with a manually driven clock.

    Usage:
        scheduler = VirtualScheduler()
        received = []
        of(1).delay(5).each(received.append, scheduler=scheduler)

        scheduler.flush()      # runs queued tasks, clock stays at 0
        scheduler.advance(5)   # clock -> 5, the delayed value fires
        # received == [1]
    """

    def __init__(self, start: float = 0.0) -> None:
        self._clock = start
        self._tasks: deque[Task] = deque()
        self._timers: list[tuple[float, int, _VirtualTimer]] = []
        self._seq = itertools.count()

    def schedule(self, task: Task) -> None:
        self._tasks.append(task)

    def set_timer(self, callback: Task, delay: float) -> _VirtualTimer:
        handle = _VirtualTimer(callback)
        heapq.heappush(self._timers, (self._clock + max(delay, 0.0), next(self._seq), handle))
        return handle

    def clear_timer(self, handle: _VirtualTimer) -> None:
        handle.cancelled = True

    def now(self) -> float:
        return self._clock

    @property
    def pending(self) -> int:
        """Queued tasks plus armed (uncancelled) timers."""
        return len(self._tasks) + sum(1 for _, _, h in self._timers if not h.cancelled)

    def flush(self) -> int:
        """Run queued tasks, including ones scheduled while flushing. Returns how many ran."""
        ran = 0
        while self._tasks:
            self._tasks.popleft()()
            ran += 1
        return ran

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in due order."""
        target = self._clock + seconds
        self.flush()
        while self._timers and self._timers[0][0] <= target:
            due, _, handle = heapq.heappop(self._timers)
            self._clock = due
            if not handle.cancelled:
                handle.callback()
            self.flush()
        self._clock = target

    def run(self) -> None:
        """Flush and fire timers until nothing is left."""
        self.flush()
        while self._timers:
            self.advance(max(self._timers[0][0] - self._clock, 0.0))


# ─── Process-wide default ────────────────────────────────────────────────────
_scheduler: Scheduler | None = None
_default_lock = threading.Lock()


def set_scheduler(scheduler: Scheduler | None) -> None:
    """Set the default scheduler used by subscriptions that don't pass one.

    Passing None restores the lazily created ThreadScheduler.
    """
    global _scheduler
    with _default_lock:
        _scheduler = scheduler


def get_scheduler() -> Scheduler:
    """The default scheduler. Created on first use."""
    global _scheduler
    with _default_lock:
        if _scheduler is None:
            _scheduler = ThreadScheduler()
        return _scheduler
