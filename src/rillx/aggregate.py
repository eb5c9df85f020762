"""reduce — fold the whole stream into a single value."""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from rillx.scheduler import Scheduler
from rillx.stream import Disposer, Sink, Stream

T = TypeVar("T")
A = TypeVar("A")


class Reduce(Stream[A]):
    """Emit the final accumulator once the source succeeds, then complete.

    Nothing is emitted for intermediate values. On failure the error is
    forwarded and no value is emitted.
    """

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

        def _on_end(error: Any) -> None:
            if error is not None:
                sink.end(error)
            elif sink.next(acc[0]):
                sink.end()

        return self.source.each(_on_next, _on_end, scheduler=scheduler)


def reduce(fn: Callable[[A, T], A], initial: A, stream: Stream[T]) -> Stream[A]:
    return Reduce(fn, initial, stream)
