"""/v1/analytics - period aggregates, comparisons and insights"""

from typing import List

from fastapi import APIRouter, Depends

from finance_hub.api.dependencies import get_analytics_engine
from finance_hub.api.v1.schemas import (
    CategoryTrendResponse,
    FinancialSummaryResponse,
    SpendingAnalyticsResponse,
    SpendingComparisonResponse,
    SpendingInsightResponse,
)
from finance_hub.domain.models import AnalyticsPeriod
from finance_hub.services.analytics import AnalyticsEngine

router = APIRouter()


@router.get("/analytics", response_model=SpendingAnalyticsResponse)
def get_spending_analytics(
    period: AnalyticsPeriod = AnalyticsPeriod.THIS_MONTH,
    engine: AnalyticsEngine = Depends(get_analytics_engine),
):
    return SpendingAnalyticsResponse.model_validate(engine.get_spending_analytics(period))


@router.get("/analytics/comparison", response_model=SpendingComparisonResponse)
def get_spending_comparison(
    period: AnalyticsPeriod = AnalyticsPeriod.THIS_MONTH,
    engine: AnalyticsEngine = Depends(get_analytics_engine),
):
    """Expense total of the period against the period before it"""
    return SpendingComparisonResponse.model_validate(engine.get_spending_comparison(period))


@router.get("/analytics/trends", response_model=List[CategoryTrendResponse])
def get_category_trends(engine: AnalyticsEngine = Depends(get_analytics_engine)):
    return [CategoryTrendResponse.model_validate(t) for t in engine.get_category_trends()]


@router.get("/analytics/insights", response_model=List[SpendingInsightResponse])
def get_spending_insights(
    period: AnalyticsPeriod = AnalyticsPeriod.THIS_MONTH,
    engine: AnalyticsEngine = Depends(get_analytics_engine),
):
    return [SpendingInsightResponse.model_validate(i) for i in engine.get_spending_insights(period)]


@router.get("/analytics/summary", response_model=FinancialSummaryResponse)
def get_financial_summary(engine: AnalyticsEngine = Depends(get_analytics_engine)):
    return FinancialSummaryResponse.model_validate(engine.get_financial_summary())
