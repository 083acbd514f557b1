"""Unit tests for analytics period resolution"""

from datetime import datetime

import pytest

from finance_hub.domain.models import AnalyticsPeriod
from finance_hub.domain.periods import resolve_period, resolve_previous_period
from finance_hub.utils.date_utils import month_range, shift_month, start_of_week

# Wednesday
NOW = datetime(2024, 5, 15, 12, 0, 0)


def test_this_week_starts_on_monday():
    """Test THIS_WEEK starts at 00:00 of the locale's first weekday"""
    start, end = resolve_period(AnalyticsPeriod.THIS_WEEK, NOW)
    assert start == datetime(2024, 5, 13)
    assert end == NOW


def test_this_week_honours_sunday_first_weekday():
    start, _ = resolve_period(AnalyticsPeriod.THIS_WEEK, NOW, first_weekday=6)
    assert start == datetime(2024, 5, 12)


def test_this_week_on_first_weekday_starts_today():
    monday = datetime(2024, 5, 13, 8, 30)
    start, _ = resolve_period(AnalyticsPeriod.THIS_WEEK, monday)
    assert start == datetime(2024, 5, 13)


def test_this_month_runs_to_now():
    assert resolve_period(AnalyticsPeriod.THIS_MONTH, NOW) == (datetime(2024, 5, 1), NOW)


def test_custom_resolves_like_this_month():
    assert resolve_period(AnalyticsPeriod.CUSTOM, NOW) == resolve_period(AnalyticsPeriod.THIS_MONTH, NOW)


def test_last_month_is_the_full_previous_month():
    start, end = resolve_period(AnalyticsPeriod.LAST_MONTH, NOW)
    assert start == datetime(2024, 4, 1)
    assert end == datetime(2024, 4, 30, 23, 59, 59, 999000)


def test_last_month_in_january_rolls_back_a_year():
    start, end = resolve_period(AnalyticsPeriod.LAST_MONTH, datetime(2024, 1, 10))
    assert start == datetime(2023, 12, 1)
    assert end == datetime(2023, 12, 31, 23, 59, 59, 999000)


@pytest.mark.parametrize(
    "now,expected_start",
    [
        (NOW, datetime(2024, 2, 1)),
        (datetime(2024, 2, 10), datetime(2023, 11, 1)),
    ],
)
def test_last_3_months_starts_three_months_back(now, expected_start):
    start, end = resolve_period(AnalyticsPeriod.LAST_3_MONTHS, now)
    assert start == expected_start
    assert end == now


def test_this_year_starts_january_first():
    assert resolve_period(AnalyticsPeriod.THIS_YEAR, NOW) == (datetime(2024, 1, 1), NOW)


def test_previous_week_is_the_full_prior_week():
    start, end = resolve_previous_period(AnalyticsPeriod.THIS_WEEK, NOW)
    assert start == datetime(2024, 5, 6)
    assert end == datetime(2024, 5, 12, 23, 59, 59, 999000)


def test_previous_of_this_month_is_last_month():
    assert resolve_previous_period(AnalyticsPeriod.THIS_MONTH, NOW) == resolve_period(AnalyticsPeriod.LAST_MONTH, NOW)


@pytest.mark.parametrize(
    "period",
    [AnalyticsPeriod.LAST_MONTH, AnalyticsPeriod.LAST_3_MONTHS, AnalyticsPeriod.THIS_YEAR, AnalyticsPeriod.CUSTOM],
)
def test_previous_period_without_predecessor_is_the_period_itself(period):
    assert resolve_previous_period(period, NOW) == resolve_period(period, NOW)


def test_shift_month_crosses_year_boundaries():
    assert shift_month(2025, 1, -1) == (2024, 12)
    assert shift_month(2024, 12, 1) == (2025, 1)
    assert shift_month(2024, 2, -3) == (2023, 11)


def test_month_range_is_half_open():
    assert month_range(2024, 12) == (datetime(2024, 12, 1), datetime(2025, 1, 1))


def test_start_of_week_truncates_time():
    assert start_of_week(datetime(2024, 5, 19, 23, 59)) == datetime(2024, 5, 13)
