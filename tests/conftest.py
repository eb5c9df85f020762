import pytest

from rillx import VirtualScheduler


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def record(scheduler):
    """Subscribe on the virtual scheduler; returns the list events are appended to."""

    def _record(stream):
        events = []
        stream.each(
            lambda v: events.append(("next", v)),
            lambda e: events.append(("end", e)),
            scheduler=scheduler,
        )
        return events

    return _record
