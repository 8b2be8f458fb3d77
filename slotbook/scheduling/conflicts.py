"""
Conflict evaluation

Store-agnostic half of the Conflict Aggregator. Both the slot listing and the
booking commit path build their conflict set and test candidates with these
functions, so the two can never disagree about what is free.

Buffer semantics:
- bookings are padded with the provider's *current* buffers;
- a candidate is padded with the same buffers before being compared to
  bookings;
- busy blocks are hard obstructions compared raw, against the raw candidate.
"""
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Iterable, List, Optional

from slotbook.scheduling.interval import Interval, expand, overlaps, span


class ConflictSource(str, Enum):
    BOOKING = "booking"
    BUSY_BLOCK = "busy_block"


@dataclass(frozen=True)
class SchedulingPolicy:
    """Per-provider buffer and notice settings with their documented defaults."""

    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    min_notice_minutes: int = 120

    def pad(self, interval: Interval) -> Interval:
        return expand(interval, self.buffer_before_minutes, self.buffer_after_minutes)


@dataclass(frozen=True)
class Conflict:
    """An obstruction with the extent used for comparisons."""

    source: ConflictSource
    interval: Interval
    effective: Interval
    reference: Optional[str] = field(default=None, compare=False)

    @property
    def buffered(self) -> bool:
        return self.source == ConflictSource.BOOKING


def booking_conflict(interval: Interval, policy: SchedulingPolicy, reference: Optional[str] = None) -> Conflict:
    return Conflict(
        source=ConflictSource.BOOKING,
        interval=interval,
        effective=policy.pad(interval),
        reference=reference,
    )


def busy_block_conflict(interval: Interval, reference: Optional[str] = None) -> Conflict:
    return Conflict(
        source=ConflictSource.BUSY_BLOCK,
        interval=interval,
        effective=interval,
        reference=reference,
    )


def search_range(
    windows: Iterable[Interval],
    policy: SchedulingPolicy,
    margin: timedelta = timedelta(hours=14),
) -> Optional[Interval]:
    """
    Range to fetch obstructions for: the windows' span, widened by the
    buffers and a fixed safety margin.
    """
    covered = span(windows)
    if covered is None:
        return None
    padded = policy.pad(covered)
    return Interval(padded.start - margin, padded.end + margin)


def blocking_conflicts(
    candidate: Interval,
    conflicts: Iterable[Conflict],
    policy: SchedulingPolicy,
) -> List[Conflict]:
    """Every conflict that rules ``candidate`` out."""
    padded = policy.pad(candidate)
    return [
        conflict for conflict in conflicts
        if overlaps(padded if conflict.buffered else candidate, conflict.effective)
    ]


def is_blocked(candidate: Interval, conflicts: Iterable[Conflict], policy: SchedulingPolicy) -> bool:
    return bool(blocking_conflicts(candidate, conflicts, policy))
