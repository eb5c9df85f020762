"""catch — turn a failure into one last value."""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from rillx.scheduler import Scheduler
from rillx.stream import Disposer, Sink, Stream

T = TypeVar("T")


class Catch(Stream[T]):
    """On failure, emit fn(error) and complete successfully.

    If fn raises, that exception becomes the failure. Values and successful
    completion pass through unchanged.
    """

    __slots__ = ("fn", "source")

    def __init__(self, fn: Callable[[Any], T], source: Stream[T]) -> None:
        self.fn = fn
        self.source = source

    def run(self, sink: Sink[T], scheduler: Scheduler) -> Disposer:
        fn = self.fn

        def _on_end(error: Any) -> None:
            if error is None:
                sink.end()
                return
            try:
                recovered = fn(error)
            except Exception as recovery_error:
                sink.end(recovery_error)
                return
            if sink.next(recovered):
                sink.end()

        return self.source.each(sink.next, _on_end, scheduler=scheduler)


def catch_error(fn: Callable[[Any], T], stream: Stream[T]) -> Stream[T]:
    return Catch(fn, stream)
