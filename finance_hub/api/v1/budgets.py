"""/v1/budgets - monthly category budgets and spend summaries"""

import logging
from dataclasses import replace
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from finance_hub.api.dependencies import get_budget_engine, get_reconciler, get_request_id
from finance_hub.api.v1.schemas import (
    BudgetOverviewResponse,
    BudgetRequest,
    BudgetResponse,
    BudgetSummaryResponse,
    DeleteResponse,
)
from finance_hub.domain.exceptions import RecordNotFoundError
from finance_hub.domain.models import Budget
from finance_hub.services.budgets import BudgetEngine
from finance_hub.services.sync import SyncReconciler

router = APIRouter()

MonthQuery = Query(..., ge=1, le=12)
YearQuery = Query(..., ge=1)


def _to_budget(body: BudgetRequest, request: Request, budget_id: Optional[int] = None) -> Budget:
    return Budget(
        id=budget_id,
        category=body.category,
        budget_amount=body.budget_amount,
        month=body.month,
        year=body.year,
        is_active=body.is_active,
        created_at=request.app.state.clock(),
    )


@router.post("/budgets", response_model=BudgetResponse, status_code=201)
async def create_budget(
    body: BudgetRequest,
    request: Request,
    reconciler: SyncReconciler = Depends(get_reconciler),
):
    try:
        saved = await reconciler.add_budget(_to_budget(body, request))
    except SQLAlchemyError as e:
        logging.error(f"Error saving budget: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Error saving budget")
    return BudgetResponse.model_validate(saved)


@router.get("/budgets", response_model=List[BudgetResponse])
def list_budgets(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1),
    engine: BudgetEngine = Depends(get_budget_engine),
):
    """Active budgets, one per category when month and year are given"""
    if month is not None and year is not None:
        budgets = engine.get_budgets_for_month(month, year)
    else:
        budgets = engine.get_all_active_budgets()
    return [BudgetResponse.model_validate(b) for b in budgets]


@router.get("/budgets/summaries", response_model=List[BudgetSummaryResponse])
def get_budget_summaries(
    month: int = MonthQuery,
    year: int = YearQuery,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    return [BudgetSummaryResponse.model_validate(s) for s in engine.get_all_budget_summaries_for_month(month, year)]


@router.get("/budgets/summary", response_model=BudgetSummaryResponse)
def get_budget_summary(
    category: str = Query(..., min_length=1),
    month: int = MonthQuery,
    year: int = YearQuery,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    summary = engine.get_budget_summary_for_category(category, month, year)
    if summary is None:
        raise HTTPException(status_code=404, detail=f"No budget for {category} in {year}-{month:02d}")
    return BudgetSummaryResponse.model_validate(summary)


@router.get("/budgets/overview", response_model=BudgetOverviewResponse)
def get_budget_overview(
    month: int = MonthQuery,
    year: int = YearQuery,
    engine: BudgetEngine = Depends(get_budget_engine),
):
    return BudgetOverviewResponse.model_validate(engine.get_budget_overview(month, year))


@router.get("/budgets/{budget_id}", response_model=BudgetResponse)
def get_budget(budget_id: int, engine: BudgetEngine = Depends(get_budget_engine)):
    budget = engine.get_budget_by_id(budget_id)
    if budget is None:
        raise HTTPException(status_code=404, detail="Budget not found")
    return BudgetResponse.model_validate(budget)


@router.put("/budgets/{budget_id}", response_model=BudgetResponse)
async def update_budget(
    budget_id: int,
    body: BudgetRequest,
    request: Request,
    engine: BudgetEngine = Depends(get_budget_engine),
    reconciler: SyncReconciler = Depends(get_reconciler),
):
    current = engine.get_budget_by_id(budget_id)
    if current is None:
        raise HTTPException(status_code=404, detail="Budget not found")
    budget = replace(_to_budget(body, request, budget_id), created_at=current.created_at)
    return BudgetResponse.model_validate(await _edit(reconciler, budget, request))


@router.post("/budgets/{budget_id}/deactivate", response_model=BudgetResponse)
async def deactivate_budget(
    budget_id: int,
    request: Request,
    engine: BudgetEngine = Depends(get_budget_engine),
    reconciler: SyncReconciler = Depends(get_reconciler),
):
    """Soft-delete: the budget stops counting in summaries but is kept and synced"""
    current = engine.get_budget_by_id(budget_id)
    if current is None:
        raise HTTPException(status_code=404, detail="Budget not found")
    return BudgetResponse.model_validate(await _edit(reconciler, replace(current, is_active=False), request))


@router.delete("/budgets/{budget_id}", response_model=DeleteResponse)
async def delete_budget(
    budget_id: int,
    request: Request,
    reconciler: SyncReconciler = Depends(get_reconciler),
):
    try:
        result = await reconciler.remove_budget(budget_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Error deleting budget: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Error deleting budget")
    return DeleteResponse(remote_deleted=bool(result.success and result.value), message=result.message or None)


async def _edit(reconciler: SyncReconciler, budget: Budget, request: Request) -> Budget:
    try:
        return await reconciler.edit_budget(budget)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Error updating budget: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Error updating budget")
