"""Tests for catch."""

from rillx import from_iterable, of, throw_error
from rillx.recover import catch_error


class TestCatch:
    def test_recovers_with_value(self, scheduler, record):
        events = record(throw_error("boom").catch(len))
        scheduler.run()
        assert events == [("next", 4), ("end", None)]

    def test_receives_the_error(self, scheduler, record):
        events = record(
            of(0).map(lambda v: 1 // v).catch(lambda e: type(e).__name__)
        )
        scheduler.run()
        assert events == [("next", "ZeroDivisionError"), ("end", None)]

    def test_success_passes_through(self, scheduler, record):
        calls = []
        events = record(from_iterable([1, 2]).catch(calls.append))
        scheduler.run()
        assert events == [("next", 1), ("next", 2), ("end", None)]
        assert calls == []

    def test_values_before_failure_kept(self, scheduler, record):
        events = record(of(1).concat(throw_error("late")).catch(lambda e: -1))
        scheduler.run()
        assert events == [("next", 1), ("next", -1), ("end", None)]

    def test_handler_error_fails_stream(self, scheduler, record):
        def _rethrow(e):
            raise RuntimeError(f"wrapped {e}")

        events = record(throw_error("boom").catch(_rethrow))
        scheduler.run()
        assert len(events) == 1
        assert events[0][0] == "end"
        assert str(events[0][1]) == "wrapped boom"

    def test_function_form(self, scheduler, record):
        events = record(catch_error(lambda e: 0, throw_error("x")))
        scheduler.run()
        assert events == [("next", 0), ("end", None)]
