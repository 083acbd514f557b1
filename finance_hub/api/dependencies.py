"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from finance_hub.config import settings
from finance_hub.infrastructure.database.repositories import BudgetRepository, TransactionRepository
from finance_hub.infrastructure.database.session import get_db
from finance_hub.services.analytics import AnalyticsEngine
from finance_hub.services.budgets import BudgetEngine
from finance_hub.services.sync import SyncReconciler


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_reconciler(request: Request) -> SyncReconciler:
    """The application-wide reconciler; it owns the sync guard and state"""
    return request.app.state.reconciler


def get_transaction_repository(db: Session = Depends(get_db)) -> TransactionRepository:
    return TransactionRepository(db)


def get_budget_engine(db: Session = Depends(get_db)) -> BudgetEngine:
    return BudgetEngine(BudgetRepository(db), TransactionRepository(db))


def get_analytics_engine(request: Request, db: Session = Depends(get_db)) -> AnalyticsEngine:
    return AnalyticsEngine(TransactionRepository(db), now=request.app.state.clock, first_weekday=settings.first_weekday)
