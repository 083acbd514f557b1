"""Date manipulation utilities"""

import calendar
from datetime import datetime, timedelta, timezone
from typing import Tuple


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    """Last representable millisecond of the day (23:59:59.999)"""
    return moment.replace(hour=23, minute=59, second=59, microsecond=999000)


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """Move (year, month) by delta months, e.g. (2025, 1, -1) -> (2024, 12)"""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def first_of_month(year: int, month: int) -> datetime:
    return datetime(year, month, 1)


def last_moment_of_month(year: int, month: int) -> datetime:
    last_day = calendar.monthrange(year, month)[1]
    return end_of_day(datetime(year, month, last_day))


def month_range(year: int, month: int) -> Tuple[datetime, datetime]:
    """Half-open [start, next_start) bounds of a calendar month"""
    next_year, next_month = shift_month(year, month, 1)
    return first_of_month(year, month), first_of_month(next_year, next_month)


def start_of_week(moment: datetime, first_weekday: int = 0) -> datetime:
    """Most recent first_weekday (0=Monday) at 00:00, inclusive of today"""
    offset = (moment.weekday() - first_weekday) % 7
    return start_of_day(moment - timedelta(days=offset))


def to_epoch_millis(moment: datetime) -> int:
    # Integer arithmetic keeps the millisecond exact
    seconds = int(moment.replace(microsecond=0).timestamp())
    return seconds * 1000 + moment.microsecond // 1000


def from_epoch_millis(millis: int) -> datetime:
    """Epoch milliseconds to naive local time"""
    seconds, remainder = divmod(millis, 1000)
    return datetime.fromtimestamp(seconds).replace(microsecond=remainder * 1000)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
