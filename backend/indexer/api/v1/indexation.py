"""Interactive inspection and submission endpoints.

These routes run a full processing cycle inside the request, so they are plain
``def`` handlers on a sync session and FastAPI runs them in its threadpool.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from indexer.config import get_settings
from indexer.dependencies.indexation import get_batch_runner
from indexer.models.base import get_sync_db
from indexer.models.property import Property
from indexer.schemas.indexation import (
    InspectRequest,
    InspectResponse,
    SubmitRequest,
    SubmitResponse,
    BatchResponse,
    ItemResultRead,
    QueuedTaskResponse,
)
from indexer.services.batch_runner import BatchResult, BatchRunner
from indexer.services.errors import (
    IndexerError,
    LockUnavailableError,
    PropertyBusyError,
    PropertyInactiveError,
    PropertyNotFoundError,
    TokenError,
)

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/indexation", tags=["indexation"])


def _http_error(e: IndexerError) -> HTTPException:
    if isinstance(e, PropertyNotFoundError):
        return HTTPException(status_code=404, detail="Property not found")
    if isinstance(e, PropertyInactiveError):
        return HTTPException(status_code=400, detail="Property is not active")
    if isinstance(e, PropertyBusyError):
        return HTTPException(status_code=409, detail="Another cycle is running for this property")
    if isinstance(e, TokenError):
        return HTTPException(status_code=502, detail=f"Could not obtain an access token: {e}")
    if isinstance(e, LockUnavailableError):
        return HTTPException(status_code=503, detail="Lock store unavailable, try again later")
    return HTTPException(status_code=500, detail=str(e))


def _batch_fields(result: BatchResult) -> dict:
    return {
        "property_id": result.property_id,
        "processed": result.processed,
        "succeeded": result.succeeded,
        "failed": result.failed,
        "quota_remaining": result.quota_remaining,
        "quota_exhausted": result.quota_exhausted,
        "interrupted": result.interrupted,
        "results": [ItemResultRead(**vars(item)) for item in result.results],
    }


@router.post("/inspect", response_model=InspectResponse)
def inspect_urls(
    data: InspectRequest,
    runner: BatchRunner = Depends(get_batch_runner),
):
    """Inspect a batch of URLs within today's inspection budget.

    Without ``urls`` the never-inspected URLs go first, then the ones with the
    oldest inspection.
    """
    try:
        result = runner.run_inspection(data.property_id, limit=data.limit, urls=data.urls)
    except IndexerError as e:
        raise _http_error(e)

    message = None
    if result.quota_exhausted:
        message = "Daily inspection quota reached"
    elif result.processed == 0:
        message = "No URLs to inspect"

    return InspectResponse(
        **_batch_fields(result),
        inspected=result.succeeded,
        skipped=result.skipped,
        message=message,
    )


@router.post("/submit", response_model=SubmitResponse)
def submit_urls(
    data: SubmitRequest,
    runner: BatchRunner = Depends(get_batch_runner),
):
    """Submit URLs for indexing; whatever exceeds today's budget is queued as pending."""
    try:
        result = runner.run_submission(data.property_id, data.urls, action=data.action)
    except IndexerError as e:
        raise _http_error(e)

    return SubmitResponse(
        **_batch_fields(result),
        submitted=result.succeeded,
        queued=result.queued,
        errors=[f"{item.url}: {item.error}" for item in result.results if not item.success],
    )


@router.post("/properties/{property_id}/queue/process", response_model=BatchResponse)
def process_queue(
    property_id: UUID,
    runner: BatchRunner = Depends(get_batch_runner),
):
    """Retry pending and failed queue items for a property now."""
    try:
        result = runner.process_queue(property_id, trigger="interactive")
    except IndexerError as e:
        raise _http_error(e)

    return BatchResponse(**_batch_fields(result))


@router.post("/properties/{property_id}/inspect-task", response_model=QueuedTaskResponse)
def queue_inspection(
    property_id: UUID,
    limit: int | None = Query(None, ge=1, le=settings.max_inspect_limit),
    db: Session = Depends(get_sync_db),
):
    """Queue an inspection cycle on the Celery worker."""
    prop = db.get(Property, property_id)

    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")

    if not prop.is_active:
        raise HTTPException(status_code=400, detail="Property is not active")

    from indexer.tasks.indexation_tasks import inspect_property

    task = inspect_property.delay(str(property_id), limit)
    logger.info(f"Queued inspection task {task.id} for {prop.site_url}")

    return QueuedTaskResponse(
        message=f"Inspection task queued for {prop.site_url}",
        task_id=task.id,
        property_id=property_id,
    )
