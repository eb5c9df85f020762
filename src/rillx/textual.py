"""Textual integration for rillx. Opt-in — requires textual.

Streams subscribed through each() run on the app's own event loop:
scheduled turns go through app.call_later, timers through app.set_timer.

// [LAW:single-enforcer] Guard + NoMatches + thread-marshal enforced here, not at callsites.
// [LAW:locality-or-seam] Textual coupling isolated in this module — core rillx stays agnostic.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Any, Callable

from textual.css.query import NoMatches

from rillx.stream import Disposer, Stream

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded deliveries during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


class TextualScheduler:
    """Scheduler backed by a Textual app's message loop.

    Work scheduled from any thread other than the app's own loop thread is
    marshaled through call_from_thread. The loop thread is read from the app
    at each call, so the scheduler may be created on any thread.
    """

    def __init__(self, app) -> None:
        self._app = app

    def _off_app_thread(self) -> bool:
        # _thread_id is 0 until the app's loop is running.
        app_thread = getattr(self._app, "_thread_id", 0)
        return bool(app_thread) and threading.get_ident() != app_thread

    def schedule(self, task: Callable[[], Any]) -> None:
        if self._off_app_thread():
            self._app.call_from_thread(self._app.call_later, task)
        else:
            self._app.call_later(task)

    def set_timer(self, callback: Callable[[], Any], delay: float):
        if self._off_app_thread():
            return self._app.call_from_thread(self._app.set_timer, delay, callback)
        return self._app.set_timer(delay, callback)

    def clear_timer(self, handle) -> None:
        if self._off_app_thread():
            self._app.call_from_thread(handle.stop)
        else:
            handle.stop()

    def now(self) -> float:
        return time.monotonic()


def each(
    app,
    stream: Stream[Any],
    on_next: Callable[[Any], Any],
    on_end: Callable[[Any], Any] | None = None,
) -> Disposer:
    """Subscribe on the app's loop, delivering values to widgets safely.

    Values are skipped while the app is paused or not running. NoMatches
    from widget queries is swallowed; any other exception fails the stream.
    """

    def _guarded(value):
        if not is_safe(app):
            return
        try:
            on_next(value)
        except NoMatches:
            pass

    return stream.each(_guarded, on_end, scheduler=TextualScheduler(app))
