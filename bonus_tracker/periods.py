"""
Calendar helpers: report windows, fetch range, and working-day counts.

All functions take an explicit `now`/`today` so callers (and tests) control
the clock. Weeks run Monday through Sunday.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Tuple
from zoneinfo import ZoneInfo

from bonus_tracker.models import Windows


def local_now(tz_name: str) -> datetime:
    return datetime.now(ZoneInfo(tz_name))


def week_start(today: date) -> date:
    """Most recent Monday (today itself when today is a Monday)."""
    return today - timedelta(days=today.weekday())


def report_windows(today: date) -> Windows:
    this_monday = week_start(today)
    last_monday = this_monday - timedelta(days=7)
    return Windows(
        month_start=today.replace(day=1),
        this_week_start=this_monday,
        last_week_start=last_monday,
        last_week_end=last_monday + timedelta(days=6),
        today=today,
    )


def default_fetch_window(today: date, min_days: int = 45) -> Tuple[date, date]:
    """
    Inclusive range covering this week, last week and month to date.

    Always at least `min_days` back and one day ahead, so month/week
    boundaries and the source's timezone skew never drop entries.
    """
    windows = report_windows(today)
    start = min(
        today - timedelta(days=min_days),
        windows.month_start,
        windows.last_week_start,
    )
    return start, today + timedelta(days=1)


def format_compact(d: date) -> str:
    return d.strftime("%Y%m%d")


def working_days(start: date, end: date) -> int:
    """Count Monday-Friday days in [start, end]. No holiday calendar."""
    if end < start:
        return 0
    count = 0
    cur = start
    while cur <= end:
        if cur.weekday() < 5:
            count += 1
        cur += timedelta(days=1)
    return count


def month_bounds(today: date) -> Tuple[date, date]:
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def current_working_day(now: datetime, cutoff_hour: int = 17) -> int:
    """
    Working days elapsed this month, counting today only once the
    working day is over (local hour >= cutoff_hour). Never below 1.
    """
    today = now.date()
    month_start, _ = month_bounds(today)
    count = working_days(month_start, today)
    if now.hour < cutoff_hour and today.weekday() < 5:
        count -= 1
    return max(count, 1)


def total_working_days(today: date) -> int:
    month_start, month_end = month_bounds(today)
    return working_days(month_start, month_end)
