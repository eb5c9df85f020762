"""Lazy, cold, push-based event streams.

A Stream is a recipe, not a running process. Constructing one does no
work. Calling each() starts a fresh execution of the whole chain and
returns a disposer; subscribing again starts another, independent one.

Every execution delivers zero or more values followed by exactly one end
signal: on_end(None) for success, on_end(error) for failure. Delivery is
always asynchronous — nothing reaches the consumer from inside each().

Operators return new streams wrapping the old one (immutable chain).
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, TypeVar

from rillx.scheduler import Scheduler, get_scheduler

T = TypeVar("T")
U = TypeVar("U")
A = TypeVar("A")

Disposer = Callable[[], None]

logger = logging.getLogger("rillx.stream")


def noop() -> None:
    """Disposer for subscriptions that hold nothing."""


class Sink(Generic[T]):
    """One subscription's delivery endpoint.

    Wraps the consumer callbacks and enforces the terminal contract: values
    only before the end, and the end at most once. An exception raised by
    on_next is turned into the failure termination instead of propagating.

    end() may run on the scheduler thread while dispose() runs on the
    subscriber's thread, so the closed/upstream transition is locked.
    Callbacks and disposers are always invoked outside the lock.
    """

    __slots__ = ("_on_next", "_on_end", "_upstream", "_closed", "_lock")

    def __init__(
        self,
        on_next: Callable[[T], Any],
        on_end: Callable[[Any], Any] | None = None,
    ) -> None:
        self._on_next = on_next
        self._on_end = on_end
        self._upstream: Disposer | None = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, disposer: Disposer) -> None:
        """Hold the disposer of the work feeding this sink. Released on end/dispose."""
        with self._lock:
            if not self._closed:
                self._upstream = disposer
                return
        disposer()

    def next(self, value: T) -> bool:
        """Deliver a value. Returns False if the sink has terminated."""
        if self._closed:
            return False
        try:
            self._on_next(value)
        except Exception as error:
            self.end(error)
            return False
        return not self._closed

    def end(self, error: Any = None) -> None:
        """Terminate: None for success, anything else is the failure."""
        if not self._close():
            return
        if self._on_end is not None:
            self._on_end(error)
        elif error is not None:
            logger.warning("Unhandled stream error: %r", error)

    def dispose(self) -> None:
        """Cancel: no further values or end. Idempotent."""
        self._close()

    def _close(self) -> bool:
        """Close and release upstream. False if already closed."""
        with self._lock:
            first = not self._closed
            self._closed = True
            upstream, self._upstream = self._upstream, None
        if upstream is not None:
            upstream()
        return first


class CompositeDisposer:
    """Disposes a group of subscriptions/timers together. Idempotent.

    Disposers added after disposal run immediately. Safe to add from the
    scheduler thread while another thread disposes.
    """

    __slots__ = ("_disposers", "_disposed", "_lock")

    def __init__(self, *disposers: Disposer) -> None:
        self._disposers: list[Disposer] = list(disposers)
        self._disposed = False
        self._lock = threading.Lock()

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __len__(self) -> int:
        """Disposers still held."""
        return len(self._disposers)

    def add(self, disposer: Disposer) -> None:
        with self._lock:
            if not self._disposed:
                self._disposers.append(disposer)
                return
        disposer()

    def remove(self, disposer: Disposer) -> None:
        with self._lock:
            try:
                self._disposers.remove(disposer)
            except ValueError:
                pass  # already released

    def __call__(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            disposers, self._disposers = self._disposers, []
        for dispose in disposers:
            dispose()


class Stream(Generic[T]):
    """A cold stream of values. Subclasses implement run()."""

    __slots__ = ()

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        """Start one execution feeding sink. Must not deliver synchronously."""
        raise NotImplementedError

    def each(
        self,
        on_next: Callable[[T], Any],
        on_end: Callable[[Any], Any] | None = None,
        *,
        scheduler: Scheduler | None = None,
    ) -> Disposer:
        """Subscribe. Returns a disposer that cancels this execution."""
        if scheduler is None:
            scheduler = get_scheduler()
        sink: Sink[T] = Sink(on_next, on_end)
        sink.attach(self.run(sink, scheduler))
        return sink.dispose

    # --- Constructors ---

    @staticmethod
    def of(value: U) -> Stream[U]:
        return sources.of(value)

    @staticmethod
    def empty() -> Stream[Any]:
        return sources.empty()

    # --- Transform ---

    def map(self, fn: Callable[[T], U]) -> Stream[U]:
        """Transform each value through fn."""
        return transform.Map(fn, self)

    def filter(self, predicate: Callable[[T], bool]) -> Stream[T]:
        """Only pass values where predicate returns True."""
        return transform.Filter(predicate, self)

    def tap(self, fn: Callable[[T], Any]) -> Stream[T]:
        """Call fn for its side effect, pass the value through unchanged."""
        return transform.Tap(fn, self)

    def scan(self, fn: Callable[[A, T], A], initial: A) -> Stream[A]:
        """Emit the running fold of the values."""
        return transform.Scan(fn, initial, self)

    # --- Chain ---

    def flat_map(self, fn: Callable[[T], Stream[U]]) -> Stream[U]:
        return chain.FlatMap(fn, self)

    def ap(self, values: Stream[Any]) -> Stream[Any]:
        return chain.ap(self, values)

    def flatten(self) -> Stream[Any]:
        return chain.flatten(self)

    # --- Combine ---

    def merge(self, *others: Stream[T]) -> Stream[T]:
        return combine.Merge(self, *others)

    def concat(self, other: Stream[T]) -> Stream[T]:
        return combine.Concat(self, other)

    # --- Timing ---

    def delay(self, seconds: float) -> Stream[T]:
        return timing.Delay(seconds, self)

    def debounce(self, interval: float) -> Stream[T]:
        return timing.Debounce(interval, self)

    def throttle(self, interval: float) -> Stream[T]:
        return timing.Throttle(interval, self)

    # --- Errors & aggregation ---

    def catch(self, fn: Callable[[Any], T]) -> Stream[T]:
        """Recover from a failure by emitting fn(error) and completing."""
        return recover.Catch(fn, self)

    def reduce(self, fn: Callable[[A, T], A], initial: A) -> Stream[A]:
        """Emit only the final fold, once the stream completes."""
        return aggregate.Reduce(fn, initial, self)


def subscribe(
    stream: Stream[T],
    on_next: Callable[[T], Any],
    on_end: Callable[[Any], Any] | None = None,
    *,
    scheduler: Scheduler | None = None,
) -> Disposer:
    """Function form of Stream.each()."""
    return stream.each(on_next, on_end, scheduler=scheduler)


# Operator modules import Stream from here, so they load after it is defined.
from rillx import aggregate, chain, combine, recover, sources, timing, transform  # noqa: E402
