"""Resolution of named analytics periods into concrete timestamp bounds"""

from datetime import datetime, timedelta
from typing import Tuple

from finance_hub.domain.models import AnalyticsPeriod
from finance_hub.utils.date_utils import (
    end_of_day,
    first_of_month,
    last_moment_of_month,
    shift_month,
    start_of_week,
)

Bounds = Tuple[datetime, datetime]


def resolve_period(period: AnalyticsPeriod, now: datetime, first_weekday: int = 0) -> Bounds:
    """
    Inclusive (start, end) bounds of a period relative to now.

    Open-ended periods end at now; LAST_MONTH ends at 23:59:59.999 on the
    last day of the previous month. CUSTOM has no distinct range and
    resolves like THIS_MONTH.
    """
    if period == AnalyticsPeriod.THIS_WEEK:
        return start_of_week(now, first_weekday), now

    if period == AnalyticsPeriod.LAST_MONTH:
        year, month = shift_month(now.year, now.month, -1)
        return first_of_month(year, month), last_moment_of_month(year, month)

    if period == AnalyticsPeriod.LAST_3_MONTHS:
        year, month = shift_month(now.year, now.month, -3)
        return first_of_month(year, month), now

    if period == AnalyticsPeriod.THIS_YEAR:
        return datetime(now.year, 1, 1), now

    # THIS_MONTH and CUSTOM
    return first_of_month(now.year, now.month), now


def resolve_previous_period(period: AnalyticsPeriod, now: datetime, first_weekday: int = 0) -> Bounds:
    """
    Bounds of the period preceding the current one.

    Only THIS_WEEK (prior full week) and THIS_MONTH (prior full calendar
    month) have a real predecessor; every other period resolves to itself.
    """
    if period == AnalyticsPeriod.THIS_WEEK:
        start = start_of_week(now, first_weekday) - timedelta(days=7)
        return start, end_of_day(start + timedelta(days=6))

    if period == AnalyticsPeriod.THIS_MONTH:
        year, month = shift_month(now.year, now.month, -1)
        return first_of_month(year, month), last_moment_of_month(year, month)

    return resolve_period(period, now, first_weekday)
