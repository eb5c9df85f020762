"""rillx: lazy, cold, push-based event streams for Python."""

from importlib.metadata import version as _version

__version__ = _version("rillx")

from rillx.scheduler import (
    Scheduler,
    ThreadScheduler,
    VirtualScheduler,
    get_scheduler,
    set_scheduler,
)
from rillx.stream import CompositeDisposer, Disposer, Sink, Stream, subscribe
from rillx.sources import empty, from_iterable, never, of, throw_error
from rillx.combine import concat, merge
from rillx.observe import StreamError, drain, observe
# textual NOT auto-imported — opt-in only

__all__ = [
    "Stream",
    "Sink",
    "Disposer",
    "CompositeDisposer",
    "subscribe",
    "of",
    "empty",
    "never",
    "throw_error",
    "from_iterable",
    "merge",
    "concat",
    "observe",
    "drain",
    "StreamError",
    "Scheduler",
    "ThreadScheduler",
    "VirtualScheduler",
    "set_scheduler",
    "get_scheduler",
]
