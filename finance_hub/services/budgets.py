"""Budget engine - budget CRUD and spend-vs-budget summaries"""

import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from finance_hub.domain.models import Budget, BudgetOverview, BudgetSummary, CategorySpending, TransactionType
from finance_hub.infrastructure.database.repositories import BudgetRepository, TransactionRepository
from finance_hub.infrastructure.observability.metrics import budget_duplicates_removed_counter
from finance_hub.utils.date_utils import month_range
from finance_hub.utils.money import ratio

logger = logging.getLogger(__name__)


def build_summary(budget: Budget, spent: Decimal) -> BudgetSummary:
    """Join a budget with its spend; progress is not clamped"""
    return BudgetSummary(
        budget=budget,
        spent_amount=spent,
        remaining_amount=budget.budget_amount - spent,
        progress=ratio(spent, budget.budget_amount),
        is_over_budget=spent > budget.budget_amount,
    )


class BudgetEngine:
    """Budget CRUD plus BudgetSummary / CategorySpending derivation"""

    def __init__(self, budgets: BudgetRepository, transactions: TransactionRepository):
        self.budgets = budgets
        self.transactions = transactions

    def get_budget_for_category_and_month(self, category: str, month: int, year: int) -> Optional[Budget]:
        return self.budgets.get_for_category_and_month(category, month, year)

    def get_budget_by_id(self, budget_id: int) -> Optional[Budget]:
        return self.budgets.get_by_id(budget_id)

    def get_budgets_for_month(self, month: int, year: int) -> List[Budget]:
        return self.budgets.list_for_month(month, year)

    def get_all_active_budgets(self) -> List[Budget]:
        return self.budgets.list_active()

    def insert_budget(self, budget: Budget) -> int:
        """Always inserts; duplicates are removed by cleanup_duplicate_budgets"""
        budget_id = self.budgets.insert(budget)
        logger.info(
            "Budget inserted",
            extra={"budget_id": budget_id, "category": budget.category, "month": budget.month, "year": budget.year},
        )
        return budget_id

    def update_budget(self, budget: Budget) -> None:
        self.budgets.update(budget)

    def delete_budget(self, budget_id: int) -> None:
        self.budgets.delete(budget_id)

    def deactivate_budget(self, budget_id: int) -> None:
        self.budgets.deactivate(budget_id)

    def get_spent_amount_for_category(self, category: str, month: int, year: int) -> Decimal:
        """Expense total for the category within the calendar month"""
        start, end = month_range(year, month)
        return self.transactions.sum_for_period(
            TransactionType.EXPENSE, start, end, category=category, end_inclusive=False
        )

    def get_category_spending_for_month(self, month: int, year: int) -> List[CategorySpending]:
        start, end = month_range(year, month)
        return self.transactions.category_spending(start, end, end_inclusive=False)

    def get_budget_summary_for_category(self, category: str, month: int, year: int) -> Optional[BudgetSummary]:
        budget = self.get_budget_for_category_and_month(category, month, year)
        if budget is None:
            return None
        return build_summary(budget, self.get_spent_amount_for_category(category, month, year))

    def get_all_budget_summaries_for_month(self, month: int, year: int) -> List[BudgetSummary]:
        """One summary per budgeted category; unbudgeted spend is not listed"""
        summaries = []
        for budget in self.get_budgets_for_month(month, year):
            summary = self.get_budget_summary_for_category(budget.category, month, year)
            if summary is not None:
                summaries.append(summary)
        return summaries

    def get_budget_overview(self, month: int, year: int) -> BudgetOverview:
        summaries = self.get_all_budget_summaries_for_month(month, year)
        total_budget = sum((s.budget.budget_amount for s in summaries), Decimal("0.00"))
        total_spent = sum((s.spent_amount for s in summaries), Decimal("0.00"))
        return BudgetOverview(
            month=month,
            year=year,
            total_budget=total_budget,
            total_spent=total_spent,
            utilization=ratio(total_spent, total_budget),
            over_budget=[s for s in summaries if s.is_over_budget],
        )

    def cleanup_duplicate_budgets(self) -> int:
        """
        Keep one active budget per (category, month, year).

        The survivor of each group is the most recently synced budget
        (never-synced budgets rank oldest), ties broken by highest local id;
        the rest are hard-deleted. Failures are logged, never raised.

        Returns:
            Number of budgets removed
        """
        try:
            groups: Dict[Tuple[str, int, int], List[Budget]] = defaultdict(list)
            for budget in self.budgets.list_active():
                groups[(budget.category, budget.month, budget.year)].append(budget)

            removed = 0
            for (category, month, year), group in groups.items():
                if len(group) < 2:
                    continue
                ranked = sorted(group, key=_freshness, reverse=True)
                stale_ids = [b.id for b in ranked[1:]]
                removed += self.budgets.delete_many(stale_ids)
                logger.info(
                    "Removed duplicate budgets",
                    extra={"category": category, "month": month, "year": year, "kept_id": ranked[0].id, "removed_ids": stale_ids},
                )

            if removed:
                budget_duplicates_removed_counter.inc(removed)
            return removed

        except SQLAlchemyError as e:
            logger.error(f"Error cleaning up duplicate budgets: {e}")
            return 0


def _freshness(budget: Budget):
    synced = budget.last_synced_at
    return (synced or datetime.min, budget.id or 0)
