"""Data access layer for transactions and budgets"""

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import case, extract, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finance_hub.domain.exceptions import RecordNotFoundError
from finance_hub.domain.models import (
    Budget,
    CategorySpending,
    MonthlySpending,
    SyncStatus,
    Transaction,
    TransactionType,
)
from finance_hub.infrastructure.database.models import BudgetRecord, TransactionRecord
from finance_hub.utils.money import from_cents, to_cents


class _Repository:
    """Shared commit handling: every mutation is its own unit of work"""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise


class TransactionRepository(_Repository):
    """Repository for income/expense transactions"""

    def insert(self, transaction: Transaction) -> int:
        """Persist a new transaction and return its local id"""
        record = TransactionRecord()
        _apply_transaction(record, transaction)
        self.db.add(record)
        self._commit()
        return record.id

    def update(self, transaction: Transaction) -> None:
        record = self._get_record(transaction.id)
        _apply_transaction(record, transaction)
        self._commit()

    def delete(self, transaction_id: int) -> None:
        record = self._get_record(transaction_id)
        self.db.delete(record)
        self._commit()

    def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        record = self.db.get(TransactionRecord, transaction_id)
        return _transaction_to_domain(record) if record else None

    def get_by_remote_id(self, remote_id: str) -> Optional[Transaction]:
        record = (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.remote_id == remote_id)
            .first()
        )
        return _transaction_to_domain(record) if record else None

    def list_all(self) -> List[Transaction]:
        """All transactions, newest first"""
        records = (
            self.db.query(TransactionRecord)
            .order_by(TransactionRecord.occurred_at.desc(), TransactionRecord.id.desc())
            .all()
        )
        return [_transaction_to_domain(r) for r in records]

    def list_by_type(self, type_: TransactionType) -> List[Transaction]:
        records = (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.type == type_.value)
            .order_by(TransactionRecord.occurred_at.desc())
            .all()
        )
        return [_transaction_to_domain(r) for r in records]

    def list_by_sync_status(self, status: SyncStatus) -> List[Transaction]:
        records = (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.sync_status == status.value)
            .order_by(TransactionRecord.id)
            .all()
        )
        return [_transaction_to_domain(r) for r in records]

    def total_for_type(self, type_: TransactionType) -> Decimal:
        """All-time sum for one transaction type"""
        cents = (
            self.db.query(func.sum(TransactionRecord.amount_cents))
            .filter(TransactionRecord.type == type_.value)
            .scalar()
        )
        return from_cents(cents)

    def sum_for_period(
        self,
        type_: TransactionType,
        start: datetime,
        end: datetime,
        category: Optional[str] = None,
        end_inclusive: bool = True,
    ) -> Decimal:
        """Sum of one type in [start, end] (or [start, end) when end_inclusive=False)"""
        query = self.db.query(func.sum(TransactionRecord.amount_cents)).filter(
            TransactionRecord.type == type_.value
        )
        if category is not None:
            query = query.filter(TransactionRecord.category == category)
        query = _within(query, start, end, end_inclusive)
        return from_cents(query.scalar())

    def category_spending(
        self,
        start: datetime,
        end: datetime,
        end_inclusive: bool = True,
    ) -> List[CategorySpending]:
        """Expense sum and count per category, largest spend first"""
        total = func.sum(TransactionRecord.amount_cents).label("total")
        query = self.db.query(
            TransactionRecord.category,
            total,
            func.count(TransactionRecord.id),
        ).filter(TransactionRecord.type == TransactionType.EXPENSE.value)
        query = _within(query, start, end, end_inclusive)
        query = query.group_by(TransactionRecord.category).order_by(total.desc(), TransactionRecord.category)
        return [
            CategorySpending(category=category, total_spent=from_cents(cents), transaction_count=count)
            for category, cents, count in query.all()
        ]

    def monthly_trends(self, start: datetime, end: datetime) -> List[MonthlySpending]:
        """Spent/income/net per calendar month in [start, end], newest month first"""
        year_col = extract("year", TransactionRecord.occurred_at).label("year")
        month_col = extract("month", TransactionRecord.occurred_at).label("month")
        spent = func.sum(
            case((TransactionRecord.type == TransactionType.EXPENSE.value, TransactionRecord.amount_cents), else_=0)
        )
        income = func.sum(
            case((TransactionRecord.type == TransactionType.INCOME.value, TransactionRecord.amount_cents), else_=0)
        )
        query = self.db.query(year_col, month_col, spent, income)
        query = _within(query, start, end, True)
        rows = query.group_by(year_col, month_col).order_by(year_col.desc(), month_col.desc()).all()

        trends = []
        for year, month, spent_cents, income_cents in rows:
            total_spent = from_cents(spent_cents)
            total_income = from_cents(income_cents)
            trends.append(
                MonthlySpending(
                    month=f"{int(month):02d}",
                    year=int(year),
                    total_spent=total_spent,
                    total_income=total_income,
                    net_savings=total_income - total_spent,
                )
            )
        return trends

    def daily_expense_totals(self, start: datetime, end: datetime) -> Dict[date, Decimal]:
        """Expense sum per calendar day; days without expenses are absent"""
        query = self.db.query(TransactionRecord.occurred_at, TransactionRecord.amount_cents).filter(
            TransactionRecord.type == TransactionType.EXPENSE.value
        )
        rows = _within(query, start, end, True).all()

        cents_by_day: Dict[date, int] = defaultdict(int)
        for occurred_at, cents in rows:
            cents_by_day[occurred_at.date()] += cents
        return {day: from_cents(cents) for day, cents in cents_by_day.items()}

    def _get_record(self, transaction_id: Optional[int]) -> TransactionRecord:
        record = self.db.get(TransactionRecord, transaction_id) if transaction_id is not None else None
        if record is None:
            raise RecordNotFoundError(f"Transaction {transaction_id} not found")
        return record


class BudgetRepository(_Repository):
    """Repository for category budgets"""

    def insert(self, budget: Budget) -> int:
        """Persist a new budget; duplicates per (category, month, year) are allowed"""
        record = BudgetRecord()
        _apply_budget(record, budget)
        self.db.add(record)
        self._commit()
        return record.id

    def update(self, budget: Budget) -> None:
        record = self._get_record(budget.id)
        _apply_budget(record, budget)
        self._commit()

    def delete(self, budget_id: int) -> None:
        record = self._get_record(budget_id)
        self.db.delete(record)
        self._commit()

    def delete_many(self, budget_ids: Iterable[int]) -> int:
        ids = list(budget_ids)
        if not ids:
            return 0
        deleted = (
            self.db.query(BudgetRecord)
            .filter(BudgetRecord.id.in_(ids))
            .delete(synchronize_session=False)
        )
        self._commit()
        return deleted

    def deactivate(self, budget_id: int) -> None:
        record = self._get_record(budget_id)
        record.is_active = False
        self._commit()

    def get_by_id(self, budget_id: int) -> Optional[Budget]:
        record = self.db.get(BudgetRecord, budget_id)
        return _budget_to_domain(record) if record else None

    def get_by_remote_id(self, remote_id: str) -> Optional[Budget]:
        record = self.db.query(BudgetRecord).filter(BudgetRecord.remote_id == remote_id).first()
        return _budget_to_domain(record) if record else None

    def get_for_category_and_month(self, category: str, month: int, year: int) -> Optional[Budget]:
        """Active budget for the key; duplicates resolve to most recently synced, then highest id"""
        record = (
            self.db.query(BudgetRecord)
            .filter(
                BudgetRecord.category == category,
                BudgetRecord.month == month,
                BudgetRecord.year == year,
                BudgetRecord.is_active.is_(True),
            )
            .order_by(*_preferred_order())
            .first()
        )
        return _budget_to_domain(record) if record else None

    def list_active(self) -> List[Budget]:
        records = (
            self.db.query(BudgetRecord)
            .filter(BudgetRecord.is_active.is_(True))
            .order_by(BudgetRecord.category, BudgetRecord.id)
            .all()
        )
        return [_budget_to_domain(r) for r in records]

    def list_for_month(self, month: int, year: int) -> List[Budget]:
        """One active budget per category for the month, ordered by category"""
        records = (
            self.db.query(BudgetRecord)
            .filter(
                BudgetRecord.month == month,
                BudgetRecord.year == year,
                BudgetRecord.is_active.is_(True),
            )
            .order_by(BudgetRecord.category, *_preferred_order())
            .all()
        )
        seen = set()
        budgets = []
        for record in records:
            if record.category in seen:
                continue
            seen.add(record.category)
            budgets.append(_budget_to_domain(record))
        return budgets

    def list_by_sync_status(self, status: SyncStatus) -> List[Budget]:
        records = (
            self.db.query(BudgetRecord)
            .filter(BudgetRecord.sync_status == status.value)
            .order_by(BudgetRecord.id)
            .all()
        )
        return [_budget_to_domain(r) for r in records]

    def _get_record(self, budget_id: Optional[int]) -> BudgetRecord:
        record = self.db.get(BudgetRecord, budget_id) if budget_id is not None else None
        if record is None:
            raise RecordNotFoundError(f"Budget {budget_id} not found")
        return record


def _preferred_order():
    return (BudgetRecord.last_synced_at.desc().nulls_last(), BudgetRecord.id.desc())


def _within(query, start: datetime, end: datetime, end_inclusive: bool):
    query = query.filter(TransactionRecord.occurred_at >= start)
    if end_inclusive:
        return query.filter(TransactionRecord.occurred_at <= end)
    return query.filter(TransactionRecord.occurred_at < end)


def _apply_transaction(record: TransactionRecord, transaction: Transaction) -> None:
    record.amount_cents = to_cents(transaction.amount)
    record.type = TransactionType(transaction.type).value
    record.category = transaction.category
    record.description = transaction.description or ""
    record.occurred_at = transaction.occurred_at
    record.remote_id = transaction.remote_id
    record.sync_status = SyncStatus(transaction.sync_status).value
    record.last_synced_at = transaction.last_synced_at


def _transaction_to_domain(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=record.id,
        amount=from_cents(record.amount_cents),
        type=TransactionType(record.type),
        category=record.category,
        description=record.description or "",
        occurred_at=record.occurred_at,
        remote_id=record.remote_id,
        sync_status=SyncStatus(record.sync_status),
        last_synced_at=record.last_synced_at,
    )


def _apply_budget(record: BudgetRecord, budget: Budget) -> None:
    record.category = budget.category
    record.budget_amount_cents = to_cents(budget.budget_amount)
    record.month = budget.month
    record.year = budget.year
    record.created_at = budget.created_at
    record.is_active = budget.is_active
    record.remote_id = budget.remote_id
    record.sync_status = SyncStatus(budget.sync_status).value
    record.last_synced_at = budget.last_synced_at


def _budget_to_domain(record: BudgetRecord) -> Budget:
    return Budget(
        id=record.id,
        category=record.category,
        budget_amount=from_cents(record.budget_amount_cents),
        month=record.month,
        year=record.year,
        created_at=record.created_at,
        is_active=bool(record.is_active),
        remote_id=record.remote_id,
        sync_status=SyncStatus(record.sync_status),
        last_synced_at=record.last_synced_at,
    )
