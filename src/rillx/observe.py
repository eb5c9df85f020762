"""Consuming a stream to completion as a Future."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable, TypeVar

from rillx.scheduler import Scheduler
from rillx.stream import Stream

T = TypeVar("T")


class StreamError(Exception):
    """A stream failed with a value that is not an exception."""

    def __init__(self, error: Any) -> None:
        super().__init__(error)
        self.error = error


def _as_exception(error: Any) -> BaseException:
    if isinstance(error, BaseException):
        return error
    return StreamError(error)


def observe(
    fn: Callable[[T], Any],
    stream: Stream[T],
    *,
    scheduler: Scheduler | None = None,
) -> Future[None]:
    """Call fn for every value. The future resolves when the stream ends.

    Success resolves it with None; failure sets the error as its exception.
    Cancelling the future disposes the subscription.

    Usage:
        done = observe(print, from_iterable([1, 2, 3]))
        done.result(timeout=1)
    """
    future: Future[None] = Future()

    def _on_end(error: Any) -> None:
        if future.done():
            return
        if error is None:
            future.set_result(None)
        else:
            future.set_exception(_as_exception(error))

    dispose = stream.each(fn, _on_end, scheduler=scheduler)
    future.add_done_callback(lambda f: dispose() if f.cancelled() else None)
    return future


def drain(stream: Stream[Any], *, scheduler: Scheduler | None = None) -> Future[None]:
    """Run the stream for its side effects, ignoring values."""
    return observe(lambda _: None, stream, scheduler=scheduler)
