"""Per-value operators: map, filter, tap, scan.

Each wraps its source and rewrites the value callback only. End signals
pass through untouched, and none of them adds timing. A transform function
that raises fails the stream with that exception.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from rillx.scheduler import Scheduler
from rillx.stream import Disposer, Sink, Stream

T = TypeVar("T")
U = TypeVar("U")
A = TypeVar("A")


class Map(Stream[U]):
    __slots__ = ("fn", "source")

    def __init__(self, fn: Callable[[T], U], source: Stream[T]) -> None:
        self.fn = fn
        self.source = source

    def run(self, sink: Sink[U], scheduler: Scheduler) -> Disposer:
        fn = self.fn
        return self.source.each(lambda v: sink.next(fn(v)), sink.end, scheduler=scheduler)


class Filter(Stream[T]):
    __slots__ = ("predicate", "source")

    def __init__(self, predicate: Callable[[T], bool], source: Stream[T]) -> None:
        self.predicate = predicate
        self.source = source

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        predicate = self.predicate
        return self.source.each(
            lambda v: sink.next(v) if predicate(v) else None, sink.end, scheduler=scheduler
        )


class Tap(Stream[T]):
    __slots__ = ("fn", "source")

    def __init__(self, fn: Callable[[T], Any], source: Stream[T]) -> None:
        self.fn = fn
        self.source = source

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        fn = self.fn

        def _on_next(value: T) -> None:
            fn(value)
            sink.next(value)

        return self.source.each(_on_next, sink.end, scheduler=scheduler)


class Scan(Stream[A]):
    """Running fold. The accumulator is reseeded for every subscription."""

    __slots__ = ("fn", "initial", "source")

    def __init__(self, fn: Callable[[A, T], A], initial: A, source: Stream[T]) -> None:
        self.fn = fn
        self.initial = initial
        self.source = source

    def run(self, sink: Sink[A], scheduler: Scheduler) -> Disposer:
        fn = self.fn
        acc: list[A] = [self.initial]

        def _on_next(value: T) -> None:
            acc[0] = fn(acc[0], value)
            sink.next(acc[0])

        return self.source.each(_on_next, sink.end, scheduler=scheduler)


def map(fn: Callable[[T], U], stream: Stream[T]) -> Stream[U]:
    return Map(fn, stream)


def filter(predicate: Callable[[T], bool], stream: Stream[T]) -> Stream[T]:
    return Filter(predicate, stream)


def tap(fn: Callable[[T], Any], stream: Stream[T]) -> Stream[T]:
    return Tap(fn, stream)


def scan(fn: Callable[[A, T], A], initial: A, stream: Stream[T]) -> Stream[A]:
    return Scan(fn, initial, stream)
