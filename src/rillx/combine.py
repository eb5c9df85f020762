"""Combining several streams: merge (concurrent) and concat (sequential)."""

from __future__ import annotations

from typing import Any, TypeVar

from rillx.scheduler import Scheduler
from rillx.sources import empty
from rillx.stream import CompositeDisposer, Disposer, Sink, Stream

T = TypeVar("T")


class Merge(Stream[T]):
    """All streams at once, values interleaved in arrival order.

    The first end signal from any stream, success or failure, ends the
    merged stream and disposes the others.
    """

    __slots__ = ("streams",)

    def __init__(self, *streams: Stream[T]) -> None:
        self.streams = streams

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        return CompositeDisposer(
            *[s.each(sink.next, sink.end, scheduler=scheduler) for s in self.streams]
        )


class Concat(Stream[T]):
    """first, then second. second is only subscribed once first succeeds."""

    __slots__ = ("first", "second")

    def __init__(self, first: Stream[T], second: Stream[T]) -> None:
        self.first = first
        self.second = second

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        second = self.second
        disposers = CompositeDisposer()

        def _on_first_end(error: Any) -> None:
            if error is not None:
                sink.end(error)
            else:
                # Disposed meanwhile: add() releases the second subscription at once.
                disposers.add(second.each(sink.next, sink.end, scheduler=scheduler))

        disposers.add(self.first.each(sink.next, _on_first_end, scheduler=scheduler))
        return disposers


def merge(*streams: Stream[T]) -> Stream[T]:
    if not streams:
        return empty()
    if len(streams) == 1:
        return streams[0]
    return Merge(*streams)


def concat(*streams: Stream[T]) -> Stream[T]:
    """Each stream in turn. A failure stops the chain."""
    if not streams:
        return empty()
    result = streams[0]
    for s in streams[1:]:
        result = Concat(result, s)
    return result
