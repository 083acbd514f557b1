"""SQLAlchemy ORM models for the local record store"""

from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Integer, Text, Index
from sqlalchemy.orm import declarative_base

from finance_hub.domain.models import SyncStatus

Base = declarative_base()


class TransactionRecord(Base):
    """Income/expense entry, amount stored in cents"""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    amount_cents = Column(BigInteger, nullable=False)
    type = Column(String(16), nullable=False, index=True)
    category = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    occurred_at = Column(DateTime, nullable=False, index=True)
    remote_id = Column(Text, nullable=True, unique=True)
    sync_status = Column(String(16), nullable=False, default=SyncStatus.LOCAL.value, index=True)
    last_synced_at = Column(DateTime, nullable=True)


class BudgetRecord(Base):
    """Monthly category budget; is_active=False is a soft delete"""

    __tablename__ = "budgets"
    __table_args__ = (Index("ix_budgets_category_month_year", "category", "month", "year"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(Text, nullable=False)
    budget_amount_cents = Column(BigInteger, nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    remote_id = Column(Text, nullable=True, unique=True)
    sync_status = Column(String(16), nullable=False, default=SyncStatus.LOCAL.value, index=True)
    last_synced_at = Column(DateTime, nullable=True)
