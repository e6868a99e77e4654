from typing import Optional

from fastapi import APIRouter, Depends

from commercetax.api.deps import get_backfill, get_scheduler
from commercetax.api.schemas.backfill import BackfillRunResponse, BackfillStatusResponse
from commercetax.filing.backfill import BackfillCoordinator
from commercetax.workers.scheduler import BackfillScheduler

router = APIRouter(prefix="/api/backfill", tags=["backfill"])


@router.get("/status", response_model=BackfillStatusResponse)
async def backfill_status(
    coordinator: BackfillCoordinator = Depends(get_backfill),
    scheduler: Optional[BackfillScheduler] = Depends(get_scheduler),
) -> BackfillStatusResponse:
    last = coordinator.last_run
    return BackfillStatusResponse(
        state=coordinator.state.value,
        deadline_day=scheduler.deadline_day if scheduler else None,
        next_run_at=scheduler.next_run_time() if scheduler else None,
        last_run=BackfillRunResponse(**last.model_dump(mode="json")) if last else None,
    )


@router.post("/run")
async def enqueue_backfill() -> dict:
    """Enqueue a Celery task that drains the backfill in a worker process."""
    from commercetax.workers.tasks import backfill_filings_task

    result = backfill_filings_task.delay()
    return {"status": "queued", "task_id": getattr(result, "id", None)}
