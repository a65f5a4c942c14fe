"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def end_of_utc_day(moment: datetime) -> datetime:
    """Last representable instant of the UTC calendar day containing `moment`"""
    day = moment.astimezone(timezone.utc).date()
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative if end is earlier)"""
    return (end - start).days


def add_months(from_date: date, months: int) -> date:
    """Same day-of-month `months` later, clamped to the target month's length"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def format_short_date(value: date) -> str:
    """e.g. 'Mon, Nov 3'"""
    return f"{value:%a}, {value:%b} {value.day}"
