"""
Interval Model

Half-open ``[start, end)`` ranges of absolute UTC instants. ``overlaps`` is the
only overlap predicate in the code base; the store queries in
``slotbook.services.repository`` express the same condition in SQL.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional


def ensure_utc(value: datetime) -> datetime:
    """
    Normalise a datetime to an aware UTC instant.

    Naive values are taken to already be UTC, which is how timestamps come
    back from stores that drop the offset.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self):
        start = ensure_utc(self.start)
        end = ensure_utc(self.end)
        if end < start:
            raise ValueError(f"Interval ends before it starts: {start} > {end}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)

    def expand(self, before_minutes: int = 0, after_minutes: int = 0) -> "Interval":
        return expand(self, before_minutes, after_minutes)

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def overlaps(a: Interval, b: Interval) -> bool:
    """True iff the two half-open ranges share at least one instant."""
    return a.start < b.end and a.end > b.start


def expand(interval: Interval, before_minutes: int = 0, after_minutes: int = 0) -> Interval:
    """Pad an interval with buffer minutes on each side."""
    return Interval(
        start=interval.start - timedelta(minutes=before_minutes),
        end=interval.end + timedelta(minutes=after_minutes),
    )


def span(intervals: Iterable[Interval]) -> Optional[Interval]:
    """Smallest interval covering all of ``intervals``, or None when empty."""
    intervals = list(intervals)
    if not intervals:
        return None
    return Interval(
        start=min(i.start for i in intervals),
        end=max(i.end for i in intervals),
    )
