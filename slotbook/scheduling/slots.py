"""
Slot Generator

Walks each availability window on a fixed step and yields the candidate
slots that respect minimum notice and do not hit a conflict.
"""
import heapq
from datetime import datetime, timedelta
from typing import Iterable, Iterator, List

from slotbook.scheduling.conflicts import Conflict, SchedulingPolicy, is_blocked
from slotbook.scheduling.interval import Interval, ensure_utc

SLOT_STEP_MINUTES = 15


def earliest_start(now: datetime, policy: SchedulingPolicy) -> datetime:
    return ensure_utc(now) + timedelta(minutes=policy.min_notice_minutes)


def candidate_starts(window: Interval, duration: timedelta, step: timedelta) -> Iterator[datetime]:
    cursor = window.start
    while cursor + duration <= window.end:
        yield cursor
        cursor += step


def _window_slots(
    window: Interval,
    conflicts: List[Conflict],
    duration: timedelta,
    step: timedelta,
    not_before: datetime,
    policy: SchedulingPolicy,
) -> Iterator[Interval]:
    for start in candidate_starts(window, duration, step):
        if start < not_before:
            continue
        slot = Interval(start, start + duration)
        if is_blocked(slot, conflicts, policy):
            continue
        yield slot


def generate_slots(
    windows: Iterable[Interval],
    conflicts: Iterable[Conflict],
    duration_minutes: int,
    policy: SchedulingPolicy,
    now: datetime,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> Iterator[Interval]:
    """
    Yield bookable slots in ascending order.

    Every window is walked on its own grid anchored at the window start,
    and a slot never spans two windows even when they touch. The per-window
    walks are combined by start time; a start reached from more than one
    window is yielded once. The generator keeps no state between calls.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)
    not_before = earliest_start(now, policy)
    conflicts = list(conflicts)

    walks = [
        _window_slots(window, conflicts, duration, step, not_before, policy)
        for window in windows
    ]

    last_start = None
    for slot in heapq.merge(*walks, key=lambda s: (s.start, s.end)):
        if slot.start == last_start:
            continue
        last_start = slot.start
        yield slot


def fits_in_windows(candidate: Interval, windows: Iterable[Interval]) -> bool:
    """True when the candidate lies entirely inside a single window."""
    return any(window.contains(candidate) for window in windows)
