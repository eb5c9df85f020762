"""Tests for flat_map, ap and flatten."""

from rillx import Sink, from_iterable, never, of, throw_error
from rillx import chain


def _open(*values):
    """Emits values, then stays open: only inner streams can end the chain."""
    return from_iterable(values).concat(never())


class TestFlatMap:
    def test_inner_values_forwarded(self, scheduler, record):
        events = record(_open(1).flat_map(lambda v: of(v + 1)))
        scheduler.run()
        assert events == [("next", 2), ("end", None)]

    def test_outer_end_ends_stream(self, scheduler, record):
        # the outer completes in the same turn it emits; the inner has not delivered yet
        events = record(of(1).flat_map(lambda v: of(v + 1)))
        scheduler.run()
        assert events == [("end", None)]

    def test_first_inner_end_ends_stream(self, scheduler, record):
        events = record(_open(1, 2).flat_map(lambda v: from_iterable([v, v * 10])))
        scheduler.run()
        assert events == [("next", 1), ("next", 10), ("end", None)]

    def test_inners_interleave_by_arrival(self, scheduler, record):
        # 3 is delayed 3s and 1 is delayed 1s, so the second inner arrives first
        events = record(_open(3, 1).flat_map(lambda v: _open(v).delay(v)))
        scheduler.run()
        assert events == [("next", 1), ("next", 3)]

    def test_inner_failure_ends_stream(self, scheduler, record):
        events = record(_open(1, 2).flat_map(lambda v: throw_error("bad") if v == 1 else of(v)))
        scheduler.run()
        assert events == [("end", "bad")]

    def test_mapper_error_fails_stream(self, scheduler, record):
        def _boom(v):
            raise ValueError("mapper")

        events = record(of(1).flat_map(_boom))
        scheduler.run()
        assert len(events) == 1
        assert isinstance(events[0][1], ValueError)

    def test_open_outer_and_inners_stay_open(self, scheduler, record):
        events = record(_open(1).flat_map(lambda v: never()))
        scheduler.run()
        assert events == []

    def test_dispose_reaches_inner(self, scheduler):
        received = []
        dispose = _open(1).flat_map(lambda v: of(v).delay(5)).each(received.append, scheduler=scheduler)
        scheduler.flush()
        assert scheduler.pending == 1  # the inner delay timer
        dispose()
        assert scheduler.pending == 0
        scheduler.run()
        assert received == []

    def test_ended_inner_released(self, scheduler):
        ends = []
        sink = Sink(lambda v: None, ends.append)
        # sink is not attached, so ending it leaves every inner to finish on its own
        disposers = chain.FlatMap(of, _open(*range(1000))).run(sink, scheduler)
        scheduler.run()
        assert ends == [None]
        assert len(disposers) == 1  # only the outer subscription


class TestAp:
    def test_applies_functions_to_values(self, scheduler, record):
        functions = _open(lambda v: v + 1, lambda v: v * 10)
        events = record(functions.ap(_open(1, 2)))
        scheduler.run()
        assert events == [("next", 2), ("next", 3), ("next", 10), ("next", 20)]


class TestFlatten:
    def test_stream_of_streams(self, scheduler, record):
        events = record(_open(_open("a"), _open("b")).flatten())
        scheduler.run()
        assert events == [("next", "a"), ("next", "b")]

    def test_function_form(self, scheduler, record):
        events = record(chain.flatten(_open(of(1))))
        scheduler.run()
        assert events == [("next", 1), ("end", None)]
