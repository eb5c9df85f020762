"""Tests for merge and concat."""

from rillx import concat, empty, from_iterable, merge, never, of, throw_error


def _open(stream):
    """stream, then stays open instead of ending."""
    return stream.concat(never())


class TestMerge:
    def test_first_end_wins(self, scheduler, record):
        events = record(of(1).merge(of(2)))
        scheduler.run()
        assert events == [("next", 1), ("end", None)]

    def test_ends_without_waiting_for_open_branch(self, scheduler, record):
        events = record(merge(of(1), never()))
        scheduler.run()
        assert events == [("next", 1), ("end", None)]

    def test_end_disposes_other_branch(self, scheduler, record):
        events = record(merge(of(1), of(2).delay(5)))
        scheduler.run()
        assert events == [("next", 1), ("end", None)]
        assert scheduler.pending == 0

    def test_interleaves_by_arrival(self, scheduler, record):
        events = record(_open(of("slow").delay(2)).merge(_open(of("fast").delay(1))))
        scheduler.run()
        assert events == [("next", "fast"), ("next", "slow")]

    def test_first_failure_wins(self, scheduler, record):
        events = record(merge(throw_error("a"), throw_error("b")))
        scheduler.run()
        assert events == [("end", "a")]

    def test_failure_disposes_other_branch(self, scheduler, record):
        events = record(merge(of(1).delay(5), throw_error("stop")))
        scheduler.run()
        assert events == [("end", "stop")]
        assert scheduler.pending == 0

    def test_merge_nothing_is_empty(self, scheduler, record):
        events = record(merge())
        scheduler.run()
        assert events == [("end", None)]

    def test_merge_one_is_identity(self):
        s = of(1)
        assert merge(s) is s


class TestConcat:
    def test_sequential(self, scheduler, record):
        events = record(concat(of(1), of(2)))
        scheduler.run()
        assert events == [("next", 1), ("next", 2), ("end", None)]

    def test_never_interleaves(self, scheduler, record):
        # the first stream is slower, the second still waits for it
        events = record(of("first").delay(5).concat(from_iterable(["second", "third"])))
        scheduler.run()
        assert events == [
            ("next", "first"),
            ("next", "second"),
            ("next", "third"),
            ("end", None),
        ]

    def test_second_not_started_before_first_ends(self, scheduler):
        started = []
        second = of(2).tap(started.append)
        of(1).delay(5).concat(second).each(lambda v: None, scheduler=scheduler)
        scheduler.advance(4)
        assert started == []
        scheduler.run()
        assert started == [2]

    def test_failure_skips_second(self, scheduler, record):
        started = []
        events = record(throw_error("boom").concat(of(2).tap(started.append)))
        scheduler.run()
        assert events == [("end", "boom")]
        assert started == []

    def test_many(self, scheduler, record):
        events = record(concat(of(1), empty(), of(2), of(3)))
        scheduler.run()
        assert events == [("next", 1), ("next", 2), ("next", 3), ("end", None)]

    def test_dispose_during_second(self, scheduler):
        received = []
        dispose = concat(of(1), of(2).delay(5)).each(received.append, scheduler=scheduler)
        scheduler.flush()
        assert received == [1]
        dispose()
        scheduler.run()
        assert received == [1]
