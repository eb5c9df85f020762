"""Time-based operators: delay, debounce, throttle.

All timing state (armed timers, watermarks, the latest throttled value)
is created inside run(), so it belongs to exactly one subscription.
Disposing the subscription clears every timer it armed.
"""

from __future__ import annotations

import threading
from typing import Any, TypeVar

from rillx.scheduler import Scheduler
from rillx.stream import CompositeDisposer, Disposer, Sink, Stream

T = TypeVar("T")


class _DelayState:
    """Timers armed by one delay() subscription.

    Timers fire on the scheduler thread; dispose() may come from another.
    The timer set is guarded by timer_lock.
    """

    __slots__ = ("sink", "scheduler", "seconds", "timers", "source_done", "disposed", "timer_lock")

    def __init__(self, sink: Sink[Any], scheduler: Scheduler, seconds: float) -> None:
        self.sink = sink
        self.scheduler = scheduler
        self.seconds = seconds
        self.timers: set[Any] = set()
        self.source_done = False
        self.disposed = False
        self.timer_lock = threading.Lock()

    def on_next(self, value: Any) -> None:
        handle_ref: list[Any] = []

        def _fire() -> None:
            with self.timer_lock:
                self.timers.discard(handle_ref[0])
            self.sink.next(value)
            self._end_if_idle()

        with self.timer_lock:
            if self.disposed:
                return
            handle_ref.append(self.scheduler.set_timer(_fire, self.seconds))
            self.timers.add(handle_ref[0])

    def on_end(self, error: Any) -> None:
        if error is not None:
            self.sink.end(error)
            return
        self.source_done = True
        self._end_if_idle()

    def _end_if_idle(self) -> None:
        # Success waits for values still in flight.
        with self.timer_lock:
            idle = self.source_done and not self.timers
        if idle:
            self.sink.end()

    def dispose(self) -> None:
        with self.timer_lock:
            self.disposed = True
            timers, self.timers = self.timers, set()
        for handle in timers:
            self.scheduler.clear_timer(handle)


class Delay(Stream[T]):
    """Shift every value later by seconds. Each value gets its own timer."""

    __slots__ = ("seconds", "source")

    def __init__(self, seconds: float, source: Stream[T]) -> None:
        self.seconds = seconds
        self.source = source

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        state = _DelayState(sink, scheduler, self.seconds)
        upstream = self.source.each(state.on_next, state.on_end, scheduler=scheduler)
        return CompositeDisposer(upstream, state.dispose)


class Debounce(Stream[T]):
    """Rate limit: pass a value only if interval has elapsed since the last one passed.

    Values arriving too early are dropped, never delivered later. The first
    value always passes. Drops do not move the watermark.
    """

    __slots__ = ("interval", "source")

    def __init__(self, interval: float, source: Stream[T]) -> None:
        self.interval = interval
        self.source = source

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        interval = self.interval
        next_event_time: list[float | None] = [None]

        def _on_next(value: T) -> None:
            now = scheduler.now()
            if next_event_time[0] is None or now >= next_event_time[0]:
                next_event_time[0] = now + interval
                sink.next(value)

        return self.source.each(_on_next, sink.end, scheduler=scheduler)


class _ThrottleState:
    """One throttle() subscription: the latest value and the open window's timer.

    timer and latest are shared between the scheduler thread and dispose(),
    so both are guarded by timer_lock.
    """

    __slots__ = (
        "sink", "scheduler", "interval", "latest", "timer", "source_done", "disposed", "timer_lock",
    )

    def __init__(self, sink: Sink[Any], scheduler: Scheduler, interval: float) -> None:
        self.sink = sink
        self.scheduler = scheduler
        self.interval = interval
        self.latest: Any = None
        self.timer: Any = None
        self.source_done = False
        self.disposed = False
        self.timer_lock = threading.Lock()

    def on_next(self, value: Any) -> None:
        with self.timer_lock:
            if self.disposed:
                return
            self.latest = value
            if self.timer is None:
                self.timer = self.scheduler.set_timer(self._fire, self.interval)

    def _fire(self) -> None:
        with self.timer_lock:
            self.timer = None
            value, self.latest = self.latest, None
        if self.sink.next(value) and self.source_done:
            self.sink.end()

    def on_end(self, error: Any) -> None:
        if error is not None:
            self.sink.end(error)
            return
        with self.timer_lock:
            self.source_done = True
            window_open = self.timer is not None
        if not window_open:
            self.sink.end()

    def dispose(self) -> None:
        with self.timer_lock:
            self.disposed = True
            timer, self.timer = self.timer, None
        if timer is not None:
            self.scheduler.clear_timer(timer)


class Throttle(Stream[T]):
    """At most one value per interval: the latest one seen when the window closes.

    The first value of a quiet period opens a window of interval seconds;
    values arriving inside it replace each other, and the window's last
    value is emitted when it closes.
    """

    __slots__ = ("interval", "source")

    def __init__(self, interval: float, source: Stream[T]) -> None:
        self.interval = interval
        self.source = source

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        state = _ThrottleState(sink, scheduler, self.interval)
        upstream = self.source.each(state.on_next, state.on_end, scheduler=scheduler)
        return CompositeDisposer(upstream, state.dispose)


def delay(seconds: float, stream: Stream[T]) -> Stream[T]:
    return Delay(seconds, stream)


def debounce(interval: float, stream: Stream[T]) -> Stream[T]:
    return Debounce(interval, stream)


def throttle(interval: float, stream: Stream[T]) -> Stream[T]:
    return Throttle(interval, stream)
