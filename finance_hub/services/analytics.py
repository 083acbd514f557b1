"""Analytics engine - period-scoped aggregates and rule-based insights"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List

from finance_hub.domain.models import (
    AnalyticsPeriod,
    CategoryTrend,
    FinancialSummary,
    InsightType,
    SpendingAnalytics,
    SpendingComparison,
    SpendingInsight,
    TransactionType,
)
from finance_hub.domain.periods import resolve_period, resolve_previous_period
from finance_hub.infrastructure.database.repositories import TransactionRepository
from finance_hub.utils.money import CENT

TOP_CATEGORY_LIMIT = 5
SPENDING_CHANGE_THRESHOLD = 10.0  # percent
CATEGORY_TREND_THRESHOLD = 50.0  # percent
MAX_TREND_INSIGHTS = 2
HIGH_SAVINGS_RATE = 20.0
LOW_SAVINGS_RATE = 5.0


def percentage_change(current: Decimal, previous: Decimal) -> float:
    """Change relative to previous in percent, 0.0 when previous is zero"""
    if previous == 0:
        return 0.0
    return float((current - previous) / previous * 100)


def trend_percentage(current: Decimal, previous: Decimal) -> float:
    """Like percentage_change, but a category appearing from nothing counts as +100%"""
    if previous > 0:
        return float((current - previous) / previous * 100)
    if current > 0:
        return 100.0
    return 0.0


def savings_rate(total_income: Decimal, total_spent: Decimal) -> float:
    if total_income <= 0:
        return 0.0
    return float((total_income - total_spent) / total_income * 100)


class AnalyticsEngine:
    """Read-only aggregation over transactions"""

    def __init__(
        self,
        transactions: TransactionRepository,
        now: Callable[[], datetime] = datetime.now,
        first_weekday: int = 0,
    ):
        self.transactions = transactions
        self.now = now
        self.first_weekday = first_weekday

    def resolve_period(self, period: AnalyticsPeriod):
        return resolve_period(period, self.now(), self.first_weekday)

    def resolve_previous_period(self, period: AnalyticsPeriod):
        return resolve_previous_period(period, self.now(), self.first_weekday)

    def get_spending_analytics(self, period: AnalyticsPeriod) -> SpendingAnalytics:
        start, end = self.resolve_period(period)

        total_spent = self.transactions.sum_for_period(TransactionType.EXPENSE, start, end)
        total_income = self.transactions.sum_for_period(TransactionType.INCOME, start, end)
        breakdown = self.transactions.category_spending(start, end)

        # Averaged over days with spending, not calendar days
        daily = self.transactions.daily_expense_totals(start, end)
        if daily:
            average = (sum(daily.values(), Decimal("0")) / len(daily)).quantize(CENT, rounding=ROUND_HALF_UP)
        else:
            average = Decimal("0.00")

        return SpendingAnalytics(
            period=period,
            total_spent=total_spent,
            total_income=total_income,
            category_breakdown=breakdown,
            monthly_trends=self.transactions.monthly_trends(start, end),
            top_expense_categories=breakdown[:TOP_CATEGORY_LIMIT],
            average_daily_spending=average,
            savings_rate=savings_rate(total_income, total_spent),
        )

    def get_spending_comparison(self, period: AnalyticsPeriod) -> SpendingComparison:
        current_start, current_end = self.resolve_period(period)
        previous_start, previous_end = self.resolve_previous_period(period)

        current = self.transactions.sum_for_period(TransactionType.EXPENSE, current_start, current_end)
        previous = self.transactions.sum_for_period(TransactionType.EXPENSE, previous_start, previous_end)
        change = current - previous

        return SpendingComparison(
            current_period=current,
            previous_period=previous,
            change_amount=change,
            change_percentage=percentage_change(current, previous),
            is_increase=change > 0,
        )

    def get_category_trends(self) -> List[CategoryTrend]:
        """This month's categories against the previous full month"""
        current_start, current_end = self.resolve_period(AnalyticsPeriod.THIS_MONTH)
        previous_start, previous_end = self.resolve_previous_period(AnalyticsPeriod.THIS_MONTH)

        previous_by_category = {
            c.category: c.total_spent for c in self.transactions.category_spending(previous_start, previous_end)
        }

        trends = []
        for current in self.transactions.category_spending(current_start, current_end):
            previous = previous_by_category.get(current.category, Decimal("0.00"))
            trends.append(
                CategoryTrend(
                    category=current.category,
                    current_month=current.total_spent,
                    previous_month=previous,
                    change_percentage=trend_percentage(current.total_spent, previous),
                    is_increasing=current.total_spent > previous,
                )
            )
        return trends

    def get_spending_insights(self, period: AnalyticsPeriod) -> List[SpendingInsight]:
        """
        Rule-based insights, always in this order:

        1. Top spending category share of total spend
        2. Period-over-period change, when above 10%
        3. Savings achievement (>20%) or recommendation (<5%)
        4. Up to two category trends moving more than 50%
        """
        analytics = self.get_spending_analytics(period)
        comparison = self.get_spending_comparison(period)
        insights = []

        if analytics.top_expense_categories:
            top = analytics.top_expense_categories[0]
            share = float(top.total_spent / analytics.total_spent * 100) if analytics.total_spent > 0 else 0.0
            insights.append(
                SpendingInsight(
                    title="Top Spending Category",
                    description=f"{top.category} accounts for {int(share)}% of your expenses",
                    type=InsightType.TOP_CATEGORY,
                    category=top.category,
                    amount=top.total_spent,
                    percentage=share,
                )
            )

        if abs(comparison.change_percentage) > SPENDING_CHANGE_THRESHOLD:
            direction = "increased" if comparison.is_increase else "decreased"
            insights.append(
                SpendingInsight(
                    title="Spending Change",
                    description=(
                        f"Your spending has {direction} by {int(abs(comparison.change_percentage))}% "
                        "compared to last period"
                    ),
                    type=InsightType.SPENDING_INCREASE if comparison.is_increase else InsightType.SPENDING_DECREASE,
                    amount=abs(comparison.change_amount),
                    percentage=abs(comparison.change_percentage),
                )
            )

        if analytics.savings_rate > HIGH_SAVINGS_RATE:
            insights.append(
                SpendingInsight(
                    title="Great Savings!",
                    description=f"You're saving {int(analytics.savings_rate)}% of your income. Keep it up!",
                    type=InsightType.SAVINGS_ACHIEVEMENT,
                    percentage=analytics.savings_rate,
                )
            )
        elif analytics.savings_rate < LOW_SAVINGS_RATE:
            insights.append(
                SpendingInsight(
                    title="Improve Savings",
                    description="Consider reducing expenses to increase your savings rate",
                    type=InsightType.RECOMMENDATION,
                    percentage=analytics.savings_rate,
                )
            )

        # Trends keep the order returned by get_category_trends
        moving = [t for t in self.get_category_trends() if abs(t.change_percentage) > CATEGORY_TREND_THRESHOLD]
        for trend in moving[:MAX_TREND_INSIGHTS]:
            direction = "increased" if trend.is_increasing else "decreased"
            insights.append(
                SpendingInsight(
                    title="Category Trend",
                    description=f"{trend.category} spending has {direction} by {int(abs(trend.change_percentage))}%",
                    type=InsightType.SPENDING_INCREASE if trend.is_increasing else InsightType.SPENDING_DECREASE,
                    category=trend.category,
                    percentage=abs(trend.change_percentage),
                )
            )

        return insights

    def get_financial_summary(self) -> FinancialSummary:
        """All-time income, expense and balance"""
        income = self.transactions.total_for_type(TransactionType.INCOME)
        expense = self.transactions.total_for_type(TransactionType.EXPENSE)
        return FinancialSummary(total_income=income, total_expense=expense, balance=income - expense)
