"""Unit tests for the analytics engine"""

from datetime import datetime
from decimal import Decimal

import pytest

from finance_hub.domain.models import AnalyticsPeriod, InsightType, Transaction, TransactionType
from finance_hub.infrastructure.database.repositories import TransactionRepository
from finance_hub.services.analytics import AnalyticsEngine, percentage_change, savings_rate, trend_percentage


@pytest.fixture
def engine(db, clock) -> AnalyticsEngine:
    return AnalyticsEngine(TransactionRepository(db), now=clock)


def add(db, amount: str, type_: TransactionType, category: str, occurred_at: datetime) -> None:
    TransactionRepository(db).insert(
        Transaction(amount=Decimal(amount), type=type_, category=category, occurred_at=occurred_at)
    )


def spend(db, amount: str, category: str, occurred_at: datetime) -> None:
    add(db, amount, TransactionType.EXPENSE, category, occurred_at)


def earn(db, amount: str, occurred_at: datetime) -> None:
    add(db, amount, TransactionType.INCOME, "Salary", occurred_at)


def test_percentage_change_zero_guard():
    assert percentage_change(Decimal("50"), Decimal("0")) == 0.0
    assert percentage_change(Decimal("150"), Decimal("100")) == 50.0
    assert percentage_change(Decimal("50"), Decimal("100")) == -50.0


def test_trend_percentage_new_category_counts_as_full_increase():
    assert trend_percentage(Decimal("20"), Decimal("0")) == 100.0
    assert trend_percentage(Decimal("0"), Decimal("0")) == 0.0
    assert trend_percentage(Decimal("30"), Decimal("20")) == 50.0


def test_savings_rate_zero_guard():
    assert savings_rate(Decimal("0"), Decimal("10")) == 0.0
    assert savings_rate(Decimal("1000"), Decimal("750")) == 25.0
    assert savings_rate(Decimal("1000"), Decimal("1200")) == -20.0


def test_empty_period_is_all_zero(engine):
    analytics = engine.get_spending_analytics(AnalyticsPeriod.THIS_MONTH)

    assert analytics.total_spent == Decimal("0.00")
    assert analytics.total_income == Decimal("0.00")
    assert analytics.category_breakdown == []
    assert analytics.monthly_trends == []
    assert analytics.top_expense_categories == []
    assert analytics.average_daily_spending == Decimal("0.00")
    assert analytics.savings_rate == 0.0


def test_spending_analytics_for_this_month(db, engine):
    earn(db, "1000.00", datetime(2024, 5, 1, 9))
    spend(db, "100.00", "Food", datetime(2024, 5, 2, 12))
    spend(db, "50.00", "Food", datetime(2024, 5, 2, 19))
    spend(db, "200.00", "Rent", datetime(2024, 5, 10))
    spend(db, "999.00", "Rent", datetime(2024, 4, 30, 23, 59))
    spend(db, "999.00", "Rent", datetime(2024, 5, 16))  # after now

    analytics = engine.get_spending_analytics(AnalyticsPeriod.THIS_MONTH)

    assert analytics.total_spent == Decimal("350.00")
    assert analytics.total_income == Decimal("1000.00")
    assert [(c.category, c.total_spent, c.transaction_count) for c in analytics.category_breakdown] == [
        ("Rent", Decimal("200.00"), 1),
        ("Food", Decimal("150.00"), 2),
    ]
    assert analytics.savings_rate == 65.0
    # Two days with spending
    assert analytics.average_daily_spending == Decimal("175.00")


def test_top_categories_are_limited_to_five(db, engine):
    for i, category in enumerate(["A", "B", "C", "D", "E", "F", "G"]):
        spend(db, f"{10 + i}.00", category, datetime(2024, 5, 3))

    analytics = engine.get_spending_analytics(AnalyticsPeriod.THIS_MONTH)

    assert len(analytics.category_breakdown) == 7
    assert [c.category for c in analytics.top_expense_categories] == ["G", "F", "E", "D", "C"]


def test_monthly_trends_newest_first(db, engine):
    earn(db, "500.00", datetime(2024, 3, 1))
    spend(db, "100.00", "Food", datetime(2024, 3, 5))
    spend(db, "40.00", "Food", datetime(2024, 5, 5))

    trends = engine.get_spending_analytics(AnalyticsPeriod.LAST_3_MONTHS).monthly_trends

    assert [(t.year, t.month) for t in trends] == [(2024, "05"), (2024, "03")]
    march = trends[1]
    assert march.total_spent == Decimal("100.00")
    assert march.total_income == Decimal("500.00")
    assert march.net_savings == Decimal("400.00")


def test_spending_comparison_against_previous_month(db, engine):
    spend(db, "100.00", "Food", datetime(2024, 4, 10))
    spend(db, "150.00", "Food", datetime(2024, 5, 10))

    comparison = engine.get_spending_comparison(AnalyticsPeriod.THIS_MONTH)

    assert comparison.current_period == Decimal("150.00")
    assert comparison.previous_period == Decimal("100.00")
    assert comparison.change_amount == Decimal("50.00")
    assert comparison.change_percentage == 50.0
    assert comparison.is_increase is True


def test_spending_comparison_with_empty_previous_period(db, engine):
    spend(db, "80.00", "Food", datetime(2024, 5, 14))

    comparison = engine.get_spending_comparison(AnalyticsPeriod.THIS_WEEK)

    assert comparison.previous_period == Decimal("0.00")
    assert comparison.change_percentage == 0.0
    assert comparison.is_increase is True


def test_category_trends(db, engine):
    spend(db, "100.00", "Food", datetime(2024, 4, 3))
    spend(db, "120.00", "Food", datetime(2024, 5, 3))
    spend(db, "30.00", "Fun", datetime(2024, 5, 4))
    spend(db, "500.00", "Rent", datetime(2024, 4, 1))

    trends = {t.category: t for t in engine.get_category_trends()}

    assert set(trends) == {"Food", "Fun"}
    assert trends["Food"].change_percentage == 20.0
    assert trends["Food"].is_increasing is True
    assert trends["Fun"].previous_month == Decimal("0.00")
    assert trends["Fun"].change_percentage == 100.0


def test_insights_follow_rule_order(db, engine):
    earn(db, "1000.00", datetime(2024, 5, 1))
    spend(db, "100.00", "Food", datetime(2024, 4, 5))
    spend(db, "300.00", "Food", datetime(2024, 5, 5))
    spend(db, "100.00", "Fun", datetime(2024, 5, 6))

    insights = engine.get_spending_insights(AnalyticsPeriod.THIS_MONTH)

    assert [i.title for i in insights] == [
        "Top Spending Category",
        "Spending Change",
        "Great Savings!",
        "Category Trend",
        "Category Trend",
    ]
    top = insights[0]
    assert top.type == InsightType.TOP_CATEGORY
    assert top.description == "Food accounts for 75% of your expenses"
    assert insights[1].type == InsightType.SPENDING_INCREASE
    assert insights[1].description == "Your spending has increased by 300% compared to last period"
    assert insights[2].description == "You're saving 60% of your income. Keep it up!"
    assert insights[3].description == "Food spending has increased by 200%"
    assert insights[4].description == "Fun spending has increased by 100%"


def test_low_savings_rate_produces_recommendation(db, engine):
    earn(db, "100.00", datetime(2024, 5, 1))
    spend(db, "98.00", "Rent", datetime(2024, 5, 2))
    spend(db, "98.00", "Rent", datetime(2024, 4, 2))

    insights = engine.get_spending_insights(AnalyticsPeriod.THIS_MONTH)

    assert [i.type for i in insights] == [InsightType.TOP_CATEGORY, InsightType.RECOMMENDATION]
    assert insights[1].title == "Improve Savings"


def test_no_data_still_recommends_saving(engine):
    """Test an empty ledger has a 0% savings rate and only the recommendation"""
    insights = engine.get_spending_insights(AnalyticsPeriod.THIS_MONTH)
    assert [i.type for i in insights] == [InsightType.RECOMMENDATION]


def test_financial_summary_is_all_time(db, engine):
    earn(db, "2000.00", datetime(2023, 1, 1))
    spend(db, "750.25", "Rent", datetime(2022, 6, 1))
    spend(db, "49.75", "Food", datetime(2024, 5, 14))

    summary = engine.get_financial_summary()

    assert summary.total_income == Decimal("2000.00")
    assert summary.total_expense == Decimal("800.00")
    assert summary.balance == Decimal("1200.00")
