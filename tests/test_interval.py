"""
Tests for scheduling/interval.py

Half-open overlap, buffer expansion and window merging.
"""
from datetime import datetime, timedelta, timezone

import pytest

from slotbook.scheduling.interval import Interval, ensure_utc, expand, overlaps, span

UTC = timezone.utc


def at(hour, minute=0, day=20):
    return datetime(2025, 1, day, hour, minute, tzinfo=UTC)


class TestInterval:

    def test_naive_values_are_treated_as_utc(self):
        interval = Interval(datetime(2025, 1, 20, 9), datetime(2025, 1, 20, 10))
        assert interval.start == at(9)
        assert interval.start.tzinfo is not None

    def test_offsets_are_normalised_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        interval = Interval(datetime(2025, 1, 20, 11, tzinfo=plus_two), datetime(2025, 1, 20, 12, tzinfo=plus_two))
        assert interval.start == at(9)
        assert interval.end == at(10)

    def test_end_before_start_is_rejected(self):
        with pytest.raises(ValueError):
            Interval(at(10), at(9))

    def test_empty_interval_is_allowed(self):
        assert Interval(at(9), at(9)).duration == timedelta(0)

    def test_ensure_utc_converts_aware_values(self):
        minus_five = timezone(timedelta(hours=-5))
        assert ensure_utc(datetime(2025, 1, 20, 4, tzinfo=minus_five)) == at(9)


class TestOverlap:

    def test_touching_intervals_do_not_overlap(self):
        """[09:00, 10:00) and [10:00, 11:00) share no instant"""
        assert not overlaps(Interval(at(9), at(10)), Interval(at(10), at(11)))
        assert not overlaps(Interval(at(10), at(11)), Interval(at(9), at(10)))

    def test_partial_overlap(self):
        assert overlaps(Interval(at(9), at(10)), Interval(at(9, 59), at(11)))

    def test_containment_overlaps(self):
        outer = Interval(at(9), at(12))
        inner = Interval(at(10), at(11))
        assert overlaps(outer, inner)
        assert overlaps(inner, outer)
        assert outer.contains(inner)
        assert not inner.contains(outer)

    def test_overlap_is_symmetric(self):
        pairs = [
            (Interval(at(9), at(10)), Interval(at(9, 30), at(10, 30))),
            (Interval(at(9), at(10)), Interval(at(11), at(12))),
            (Interval(at(9), at(12)), Interval(at(10), at(11))),
        ]
        for a, b in pairs:
            assert a.overlaps(b) == b.overlaps(a)


class TestExpand:

    def test_expand_pads_both_sides(self):
        padded = expand(Interval(at(10), at(11)), before_minutes=15, after_minutes=30)
        assert padded == Interval(at(9, 45), at(11, 30))

    def test_expand_with_zero_buffers_is_identity(self):
        interval = Interval(at(10), at(11))
        assert interval.expand() == interval

    def test_padding_turns_adjacent_into_overlapping(self):
        booking = Interval(at(10), at(11))
        candidate = Interval(at(11), at(11, 30))
        assert not overlaps(candidate, booking)
        assert overlaps(candidate, booking.expand(after_minutes=15))


class TestSpan:

    def test_span(self):
        assert span([Interval(at(13), at(14)), Interval(at(9), at(10))]) == Interval(at(9), at(14))
        assert span([]) is None
