"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from finance_hub.domain.models import (
    AnalyticsPeriod,
    BudgetStatus,
    InsightType,
    SyncStatus,
    TransactionType,
)


class Schema(BaseModel):
    """Response base: built straight from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


class SyncStrategy(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"
    CLEAN = "clean"
    RETRY = "retry"
    SMART = "smart"


class TransactionRequest(BaseModel):
    """Request body for POST/PUT /v1/transactions"""

    amount: Decimal = Field(..., gt=0, description="Positive amount in currency units")
    type: TransactionType
    category: str = Field(..., min_length=1)
    description: str = ""
    occurred_at: Optional[datetime] = Field(None, description="Defaults to now")


class TransactionResponse(Schema):
    id: int
    amount: Decimal
    type: TransactionType
    category: str
    description: str
    occurred_at: datetime
    remote_id: Optional[str] = None
    sync_status: SyncStatus
    last_synced_at: Optional[datetime] = None


class BudgetRequest(BaseModel):
    """Request body for POST/PUT /v1/budgets"""

    category: str = Field(..., min_length=1)
    budget_amount: Decimal = Field(..., ge=0)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1)
    is_active: bool = True


class BudgetResponse(Schema):
    id: int
    category: str
    budget_amount: Decimal
    month: int
    year: int
    created_at: datetime
    is_active: bool
    remote_id: Optional[str] = None
    sync_status: SyncStatus
    last_synced_at: Optional[datetime] = None


class BudgetSummaryResponse(Schema):
    budget: BudgetResponse
    spent_amount: Decimal
    remaining_amount: Decimal
    progress: float
    is_over_budget: bool
    status: BudgetStatus


class BudgetOverviewResponse(Schema):
    month: int
    year: int
    total_budget: Decimal
    total_spent: Decimal
    utilization: float
    over_budget: List[BudgetSummaryResponse]


class DeleteResponse(BaseModel):
    """Local delete always happened; remote_deleted tells whether the remote copy is gone too"""

    deleted: bool = True
    remote_deleted: bool
    message: Optional[str] = None


class CategorySpendingResponse(Schema):
    category: str
    total_spent: Decimal
    transaction_count: int


class MonthlySpendingResponse(Schema):
    month: str
    year: int
    total_spent: Decimal
    total_income: Decimal
    net_savings: Decimal


class SpendingAnalyticsResponse(Schema):
    period: AnalyticsPeriod
    total_spent: Decimal
    total_income: Decimal
    category_breakdown: List[CategorySpendingResponse]
    monthly_trends: List[MonthlySpendingResponse]
    top_expense_categories: List[CategorySpendingResponse]
    average_daily_spending: Decimal
    savings_rate: float


class SpendingComparisonResponse(Schema):
    current_period: Decimal
    previous_period: Decimal
    change_amount: Decimal
    change_percentage: float
    is_increase: bool


class CategoryTrendResponse(Schema):
    category: str
    current_month: Decimal
    previous_month: Decimal
    change_percentage: float
    is_increasing: bool


class SpendingInsightResponse(Schema):
    title: str
    description: str
    type: InsightType
    category: Optional[str] = None
    amount: Optional[Decimal] = None
    percentage: Optional[float] = None


class FinancialSummaryResponse(Schema):
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal


class SyncStateResponse(Schema):
    status: str
    is_loading: bool
    last_error: Optional[str] = None
    is_connected: bool
    connection_error: Optional[str] = None
    last_sync_at: Optional[datetime] = None
    enabled: bool


class SyncReportResponse(Schema):
    strategy: str
    message: str
    transactions_fetched: int
    budgets_fetched: int
    inserted: int
    updated: int
    deleted: int
    succeeded: int
    failed: int


class SyncOutcomeResponse(BaseModel):
    """Sync outcomes are always 200; failures surface through success/message"""

    success: bool
    message: str
    report: Optional[SyncReportResponse] = None
    state: SyncStateResponse
