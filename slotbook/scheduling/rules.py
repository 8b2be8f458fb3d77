"""
Availability Rule Resolver

Turns a provider's recurring weekly rules into concrete UTC windows for one
calendar date, using the provider's IANA timezone for that specific date so
daylight-saving transitions are honoured.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Union

import pytz

from slotbook.scheduling.interval import Interval

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"


@dataclass(frozen=True)
class WeeklyRule:
    """One recurring availability rule. ``day_of_week`` is 0=Sunday..6=Saturday."""

    day_of_week: int
    start_time_local: time
    end_time_local: time


def parse_local_time(value: Union[time, timedelta, str]) -> time:
    """
    Convert the different wall-clock representations to ``datetime.time``.

    Accepts ``time``, ``timedelta`` since midnight (some drivers return
    TIME columns that way) and ``HH:MM`` / ``HH:MM:SS`` strings.
    """
    if isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        return (datetime.min + value).time()
    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid time of day: {value!r}")
        hour, minute = int(parts[0]), int(parts[1])
        second = int(parts[2]) if len(parts) == 3 else 0
        return time(hour, minute, second)
    raise ValueError(f"Cannot convert {type(value)} to time")


def get_timezone(tz_name: str):
    """Resolve an IANA name, falling back to UTC for unset or unknown zones."""
    if not tz_name:
        return pytz.timezone(DEFAULT_TIMEZONE)
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Invalid timezone '{tz_name}', using {DEFAULT_TIMEZONE}")
        return pytz.timezone(DEFAULT_TIMEZONE)


def day_of_week(target_date: date) -> int:
    """Day index with Sunday as 0."""
    return (target_date.weekday() + 1) % 7


def localize(target_date: date, wall_clock: time, tz) -> datetime:
    """
    Attach the provider's offset in effect on ``target_date`` to a wall-clock
    time and return it as UTC.

    Wall-clock times skipped by a spring-forward jump move forward by the
    size of the gap; repeated times in a fall-back hour resolve to the
    second (standard time) occurrence.
    """
    naive = datetime.combine(target_date, wall_clock)
    local = tz.normalize(tz.localize(naive, is_dst=False))
    return local.astimezone(pytz.utc)


def resolve_windows(
    rules: Iterable[WeeklyRule],
    target_date: date,
    tz_name: str = DEFAULT_TIMEZONE,
) -> List[Interval]:
    """
    Build the availability windows for ``target_date``.

    Emits one window per matching rule, sorted by start. Windows from
    different rules are independent and may be disjoint. No matching rule
    gives an empty list.
    """
    tz = get_timezone(tz_name)
    # target_date is already a calendar date in the provider's zone
    weekday = day_of_week(target_date)

    windows = []
    for rule in rules:
        if rule.day_of_week != weekday:
            continue

        start = localize(target_date, parse_local_time(rule.start_time_local), tz)
        end = localize(target_date, parse_local_time(rule.end_time_local), tz)
        if end <= start:
            logger.warning(
                f"Skipping availability rule with empty window on {target_date}: "
                f"{rule.start_time_local}-{rule.end_time_local} ({tz.zone})"
            )
            continue

        windows.append(Interval(start, end))

    windows.sort(key=lambda w: (w.start, w.end))
    return windows


def local_date_of(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> date:
    """Calendar date of a UTC instant as seen in the provider's timezone."""
    tz = get_timezone(tz_name)
    return instant.astimezone(tz).date()
