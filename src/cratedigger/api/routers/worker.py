"""Ingestion worker endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from cratedigger.api.dependencies import get_ingestion_worker, get_user_id
from cratedigger.api.schemas import ProcessLabelRequest, StepResponse
from cratedigger.application.services import StepOutcome
from cratedigger.application.workers import IngestionWorker

router = APIRouter(prefix="/worker", tags=["worker"])


# Hey future me - the UI polls this every ~1.6s while a label crawls. It goes through the
# SAME worker instance as the background loop, so the busy flag covers both: a second
# request while a step is in flight gets "Worker busy" instead of a parallel step.
@router.post("/process", response_model=StepResponse)
async def process_label(
    payload: ProcessLabelRequest,
    user_id: str = Depends(get_user_id),
    worker: IngestionWorker = Depends(get_ingestion_worker),
) -> StepResponse:
    """Advance one label by one unit of work."""
    result = await worker.process(user_id, payload.label_id)
    if result.outcome == StepOutcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail=result.message)
    return StepResponse(done=result.done, message=result.message, outcome=result.outcome.value)


@router.get("/status")
async def worker_status(worker: IngestionWorker = Depends(get_ingestion_worker)) -> dict[str, Any]:
    return worker.get_stats()
