"""flat_map and the operators built on it (ap, flatten).

Every value from the outer stream is mapped to an inner stream, which is
subscribed to straight away. Inner streams run concurrently; their values
reach the consumer in arrival order with no queueing or limit.

Termination: the first end signal from the outer stream or any inner
stream, success or failure, ends the stream and disposes everything still
running.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from rillx.scheduler import Scheduler
from rillx.stream import CompositeDisposer, Disposer, Sink, Stream

T = TypeVar("T")
U = TypeVar("U")


class FlatMap(Stream[U]):
    __slots__ = ("fn", "source")

    def __init__(self, fn: Callable[[T], Stream[U]], source: Stream[T]) -> None:
        self.fn = fn
        self.source = source

    def run(self, sink: Sink[U], scheduler: Scheduler) -> Disposer:
        fn = self.fn
        disposers = CompositeDisposer()

        def _on_next(value: T) -> None:
            inner = fn(value)
            inner_ref: list[Disposer] = []

            def _on_inner_end(error: Any) -> None:
                if inner_ref:
                    disposers.remove(inner_ref[0])
                sink.end(error)

            inner_ref.append(inner.each(sink.next, _on_inner_end, scheduler=scheduler))
            disposers.add(inner_ref[0])

        disposers.add(self.source.each(_on_next, sink.end, scheduler=scheduler))
        return disposers


def flat_map(fn: Callable[[T], Stream[U]], stream: Stream[T]) -> Stream[U]:
    return FlatMap(fn, stream)


def ap(functions: Stream[Callable[[T], U]], values: Stream[T]) -> Stream[U]:
    """Apply every function from functions to every value from values."""
    return FlatMap(lambda f: values.map(f), functions)


def _identity(x: Any) -> Any:
    return x


def flatten(streams: Stream[Stream[T]]) -> Stream[T]:
    """Flatten a stream of streams."""
    return FlatMap(_identity, streams)
