"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class SyncStatus(str, Enum):
    """Per-record synchronization lifecycle"""

    LOCAL = "LOCAL"  # never synced
    SYNC_PENDING = "SYNC_PENDING"  # write attempted, in flight or needs retry
    SYNCED = "SYNCED"  # remote id confirmed
    SYNC_FAILED = "SYNC_FAILED"  # last remote write failed


class RecordKind(str, Enum):
    """Entity kinds known to the remote service, valued by their resource name"""

    TRANSACTION = "transactions"
    BUDGET = "budgets"


class BudgetStatus(str, Enum):
    SAFE = "SAFE"
    GOOD = "GOOD"
    WARNING = "WARNING"
    OVER_BUDGET = "OVER_BUDGET"


class AnalyticsPeriod(str, Enum):
    THIS_WEEK = "THIS_WEEK"
    THIS_MONTH = "THIS_MONTH"
    LAST_MONTH = "LAST_MONTH"
    LAST_3_MONTHS = "LAST_3_MONTHS"
    THIS_YEAR = "THIS_YEAR"
    CUSTOM = "CUSTOM"


class InsightType(str, Enum):
    SPENDING_INCREASE = "SPENDING_INCREASE"
    SPENDING_DECREASE = "SPENDING_DECREASE"
    TOP_CATEGORY = "TOP_CATEGORY"
    SAVINGS_ACHIEVEMENT = "SAVINGS_ACHIEVEMENT"
    RECOMMENDATION = "RECOMMENDATION"


@dataclass
class Transaction:
    """Income or expense entry, local id assigned by the store"""

    amount: Decimal
    type: TransactionType
    category: str
    description: str = ""
    occurred_at: datetime = field(default_factory=datetime.now)
    id: Optional[int] = None
    remote_id: Optional[str] = None
    sync_status: SyncStatus = SyncStatus.LOCAL
    last_synced_at: Optional[datetime] = None


@dataclass
class Budget:
    """Monthly spending limit for one category"""

    category: str
    budget_amount: Decimal
    month: int  # 1-12
    year: int
    created_at: datetime = field(default_factory=datetime.now)
    is_active: bool = True
    id: Optional[int] = None
    remote_id: Optional[str] = None
    sync_status: SyncStatus = SyncStatus.LOCAL
    last_synced_at: Optional[datetime] = None


Record = Union[Transaction, Budget]


@dataclass
class CategorySpending:
    category: str
    total_spent: Decimal
    transaction_count: int


@dataclass
class BudgetSummary:
    """Budget joined with the month's spend for its category"""

    budget: Budget
    spent_amount: Decimal
    remaining_amount: Decimal
    progress: float  # may exceed 1.0 when over budget
    is_over_budget: bool

    @property
    def status(self) -> BudgetStatus:
        if self.is_over_budget:
            return BudgetStatus.OVER_BUDGET
        if self.progress >= 0.9:
            return BudgetStatus.WARNING
        if self.progress >= 0.7:
            return BudgetStatus.GOOD
        return BudgetStatus.SAFE


@dataclass
class BudgetOverview:
    """Totals across all budget summaries of one month"""

    month: int
    year: int
    total_budget: Decimal
    total_spent: Decimal
    utilization: float
    over_budget: List[BudgetSummary]


@dataclass
class MonthlySpending:
    month: str  # zero-padded, "01".."12"
    year: int
    total_spent: Decimal
    total_income: Decimal
    net_savings: Decimal


@dataclass
class SpendingAnalytics:
    """Aggregate bundle for one analytics period"""

    period: AnalyticsPeriod
    total_spent: Decimal
    total_income: Decimal
    category_breakdown: List[CategorySpending]
    monthly_trends: List[MonthlySpending]
    top_expense_categories: List[CategorySpending]
    average_daily_spending: Decimal
    savings_rate: float


@dataclass
class SpendingComparison:
    current_period: Decimal
    previous_period: Decimal
    change_amount: Decimal
    change_percentage: float
    is_increase: bool


@dataclass
class CategoryTrend:
    category: str
    current_month: Decimal
    previous_month: Decimal
    change_percentage: float
    is_increasing: bool


@dataclass
class SpendingInsight:
    title: str
    description: str
    type: InsightType
    category: Optional[str] = None
    amount: Optional[Decimal] = None
    percentage: Optional[float] = None


@dataclass
class FinancialSummary:
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal


@dataclass(frozen=True)
class Result(Generic[T]):
    """Tagged success/failure returned by every remote-facing operation"""

    success: bool
    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: Exception) -> "Result[T]":
        return cls(success=False, error=error)

    @property
    def message(self) -> str:
        if self.error is not None:
            return str(self.error) or type(self.error).__name__
        return ""


@dataclass
class SyncReport:
    """Outcome counters of one composite sync run"""

    strategy: str
    message: str = ""
    transactions_fetched: int = 0
    budgets_fetched: int = 0
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    succeeded: int = 0
    failed: int = 0


@dataclass(frozen=True)
class SyncState:
    """Snapshot of the reconciler's observable state"""

    status: str = "Sync enabled"
    is_loading: bool = False
    last_error: Optional[str] = None
    is_connected: bool = False
    connection_error: Optional[str] = None
    last_sync_at: Optional[datetime] = None
    enabled: bool = True
