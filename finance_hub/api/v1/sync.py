"""/v1/sync - trigger sync strategies and observe sync state"""

from fastapi import APIRouter, Depends

from finance_hub.api.dependencies import get_reconciler
from finance_hub.api.v1.schemas import SyncOutcomeResponse, SyncReportResponse, SyncStateResponse, SyncStrategy
from finance_hub.domain.models import Result
from finance_hub.services.sync import SyncReconciler

router = APIRouter()


def _outcome(result: Result, reconciler: SyncReconciler) -> SyncOutcomeResponse:
    report = result.value if result.success else None
    return SyncOutcomeResponse(
        success=result.success,
        message=report.message if report is not None else result.message,
        report=SyncReportResponse.model_validate(report) if report is not None else None,
        state=SyncStateResponse.model_validate(reconciler.state),
    )


@router.get("/sync/state", response_model=SyncStateResponse)
def get_sync_state(reconciler: SyncReconciler = Depends(get_reconciler)):
    return SyncStateResponse.model_validate(reconciler.state)


@router.post("/sync/enable", response_model=SyncStateResponse)
def enable_sync(reconciler: SyncReconciler = Depends(get_reconciler)):
    reconciler.enable_sync()
    return SyncStateResponse.model_validate(reconciler.state)


@router.post("/sync/disable", response_model=SyncStateResponse)
def disable_sync(reconciler: SyncReconciler = Depends(get_reconciler)):
    reconciler.disable_sync()
    return SyncStateResponse.model_validate(reconciler.state)


@router.post("/sync/errors/clear", response_model=SyncStateResponse)
def clear_sync_errors(reconciler: SyncReconciler = Depends(get_reconciler)):
    reconciler.clear_errors()
    return SyncStateResponse.model_validate(reconciler.state)


@router.post("/sync/connection", response_model=SyncOutcomeResponse)
async def check_connection(reconciler: SyncReconciler = Depends(get_reconciler)):
    result = await reconciler.check_connection()
    return SyncOutcomeResponse(
        success=result.success,
        message=result.value if result.success else result.message,
        state=SyncStateResponse.model_validate(reconciler.state),
    )


@router.post("/sync/{strategy}", response_model=SyncOutcomeResponse)
async def run_sync(strategy: SyncStrategy, reconciler: SyncReconciler = Depends(get_reconciler)):
    """
    Run one composite sync strategy.

    Always 200: a failed or rejected sync is reported with success=false
    and the reason in message, mirrored by the state's status line.
    """
    runners = {
        SyncStrategy.FULL: reconciler.full_sync,
        SyncStrategy.INCREMENTAL: reconciler.incremental_sync,
        SyncStrategy.CLEAN: reconciler.clean_sync,
        SyncStrategy.RETRY: reconciler.retry_failed_sync,
        SyncStrategy.SMART: reconciler.smart_sync,
    }
    return _outcome(await runners[strategy](), reconciler)
