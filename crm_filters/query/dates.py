"""
Relative date resolution.

Calendar tokens (today, yesterday, this_week, last_week, this_month,
last_month) are aligned to local midnight in the timezone of ``now``; weeks
start on Sunday. The ``last_N_days`` tokens are rolling windows ending at
``now``. Every range is half-open: ``start <= x < end``.
"""
from __future__ import annotations
import os
from datetime import date, datetime, timedelta
from typing import Any, NamedTuple, Optional
from zoneinfo import ZoneInfo

from ..errors import UnsupportedToken
from ..filters import RelativeDateToken

FILTER_TIMEZONE = os.getenv("FILTER_TIMEZONE", "UTC")

_ROLLING_DAYS = {
    RelativeDateToken.LAST_7_DAYS.value: 7,
    RelativeDateToken.LAST_30_DAYS.value: 30,
    RelativeDateToken.LAST_90_DAYS.value: 90,
}


class DateRange(NamedTuple):
    start: datetime
    end: datetime


def current_time() -> datetime:
    return datetime.now(ZoneInfo(FILTER_TIMEZONE))


def start_of_day(d: datetime) -> datetime:
    return d.replace(hour=0, minute=0, second=0, microsecond=0)


def _first_of_month(year: int, month: int, like: datetime) -> datetime:
    # month may run one past either end of the year
    if month < 1:
        year, month = year - 1, 12
    elif month > 12:
        year, month = year + 1, 1
    return start_of_day(like).replace(year=year, month=month, day=1)


def resolve_relative_date(token: str, now: Optional[datetime] = None) -> DateRange:
    now = now or current_time()
    token = str(token)
    midnight = start_of_day(now)
    day = timedelta(days=1)

    if token == RelativeDateToken.TODAY.value:
        return DateRange(midnight, midnight + day)

    if token == RelativeDateToken.YESTERDAY.value:
        return DateRange(midnight - day, midnight)

    if token in (RelativeDateToken.THIS_WEEK.value, RelativeDateToken.LAST_WEEK.value):
        days_since_sunday = (now.weekday() + 1) % 7
        week_start = midnight - timedelta(days=days_since_sunday)
        if token == RelativeDateToken.LAST_WEEK.value:
            week_start -= timedelta(days=7)
        return DateRange(week_start, week_start + timedelta(days=7))

    if token == RelativeDateToken.THIS_MONTH.value:
        return DateRange(
            _first_of_month(now.year, now.month, now),
            _first_of_month(now.year, now.month + 1, now),
        )

    if token == RelativeDateToken.LAST_MONTH.value:
        return DateRange(
            _first_of_month(now.year, now.month - 1, now),
            _first_of_month(now.year, now.month, now),
        )

    if token in _ROLLING_DAYS:
        return DateRange(now - timedelta(days=_ROLLING_DAYS[token]), now)

    raise UnsupportedToken(token)


def parse_date_value(value: Any) -> datetime:
    """
    Accepts datetime, date, or an ISO-8601 string ('Z' suffix allowed).
    Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        s = value.strip()
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        return datetime.fromisoformat(s)
    raise ValueError(f"Not a date: {value!r}")


def is_date_value(value: Any) -> bool:
    try:
        parse_date_value(value)
    except ValueError:
        return False
    return True
