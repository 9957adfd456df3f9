from datetime import datetime, time, timedelta
from typing import Optional, Tuple

FULL_DAY = timedelta(days=1)


def opening_period(
    open_time: Optional[time], close_time: Optional[time], at: datetime
) -> Optional[Tuple[datetime, datetime]]:
    """
    Return the (opens, closes) interval of the opening period containing `at`,
    or None when the room is closed at that instant.

    Times are naive local time-of-day values. A close_time earlier than the
    open_time wraps past midnight (e.g. 22:00 → 06:00). Missing or equal
    times mean the room never closes, reported as a 24h period starting at `at`.
    """
    if open_time is None or close_time is None or open_time == close_time:
        return at, at + FULL_DAY

    length = datetime.combine(at.date(), close_time) - datetime.combine(at.date(), open_time)
    if length < timedelta(0):
        length += FULL_DAY

    # A wrapping period that covers `at` may have opened the previous day
    for day in (at.date() - timedelta(days=1), at.date()):
        opens = datetime.combine(day, open_time)
        closes = opens + length
        if opens <= at < closes:
            return opens, closes
    return None


def window_within_opening_hours(
    open_time: Optional[time], close_time: Optional[time], start: datetime, end: datetime
) -> bool:
    """True if [start, end) lies entirely inside a single opening period."""
    if open_time is None or close_time is None or open_time == close_time:
        return True
    period = opening_period(open_time, close_time, start)
    if period is None:
        return False
    return end <= period[1]
