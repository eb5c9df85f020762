"""Primitive streams. Each one does its work in a scheduled turn, never inside each()."""

from __future__ import annotations

from typing import Any, Iterable, TypeVar

from rillx.scheduler import Scheduler
from rillx.stream import Disposer, Sink, Stream, noop

T = TypeVar("T")


class Of(Stream[T]):
    """A single value, then success."""

    __slots__ = ("value",)

    def __init__(self, value: T) -> None:
        self.value = value

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        value = self.value

        def _emit() -> None:
            # A disposed sink is closed: the pending emission is suppressed.
            if sink.next(value):
                sink.end()

        scheduler.schedule(_emit)
        return noop


class Empty(Stream[Any]):
    """Success with no values."""

    __slots__ = ()

    def run(self, sink: Sink[Any], scheduler: Scheduler) -> Disposer:
        scheduler.schedule(sink.end)
        return noop


class Never(Stream[Any]):
    """No values, no end."""

    __slots__ = ()

    def run(self, sink: Sink[Any], scheduler: Scheduler) -> Disposer:
        return noop


class ThrowError(Stream[Any]):
    """Fails with error, no values."""

    __slots__ = ("error",)

    def __init__(self, error: Any) -> None:
        self.error = error

    def run(self, sink: Sink[Any], scheduler: Scheduler) -> Disposer:
        error = self.error
        scheduler.schedule(lambda: sink.end(error))
        return noop


class FromIterable(Stream[T]):
    """Every item of an iterable, in one turn. Iterated afresh per subscription."""

    __slots__ = ("items",)

    def __init__(self, items: Iterable[T]) -> None:
        self.items = items

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        items = self.items

        def _emit() -> None:
            try:
                for item in items:
                    if not sink.next(item):
                        return
            except Exception as error:
                sink.end(error)
                return
            sink.end()

        scheduler.schedule(_emit)
        return noop


def of(value: T) -> Stream[T]:
    return Of(value)


def empty() -> Stream[Any]:
    return Empty()


def never() -> Stream[Any]:
    return Never()


def throw_error(error: Any) -> Stream[Any]:
    """A stream that fails with error. error must not be None."""
    if error is None:
        raise ValueError("error must not be None — None signals success")
    return ThrowError(error)


def from_iterable(items: Iterable[T] | Stream[T]) -> Stream[T]:
    """Stream the items of an iterable. A Stream is returned as is."""
    if isinstance(items, Stream):
        return items
    return FromIterable(items)
