"""Property API endpoints: quota, verdict overview, settings, records, queue and runs."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from indexer.models.base import get_db
from indexer.models.property import Property
from indexer.models.indexation_settings import IndexationSettings
from indexer.models.indexation_snapshot import IndexationSnapshot
from indexer.models.inspection_record import InspectionRecord, Verdict
from indexer.models.queue_item import QueueItem
from indexer.models.indexation_run import IndexationRun
from indexer.schemas.property import (
    PropertyRead,
    PropertyWithQuota,
    PropertyOverview,
    QuotaRead,
    IndexationSettingsRead,
    IndexationSettingsUpdate,
    SnapshotRead,
)
from indexer.schemas.inspection_record import (
    InspectionRecordRead,
    QueueItemRead,
    QueueStats,
    IndexationRunRead,
)
from indexer.services.quota_ledger import QuotaLedger
from indexer.services.snapshot import verdict_counts

router = APIRouter(prefix="/properties", tags=["properties"])


async def _get_property(db: AsyncSession, property_id: UUID) -> Property:
    prop = await db.get(Property, property_id)
    if not prop:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


async def _quota(db: AsyncSession, property_id: UUID) -> QuotaRead:
    summary = await db.run_sync(lambda session: QuotaLedger(session).summary(property_id))
    return QuotaRead(**summary)


@router.get("", response_model=list[PropertyWithQuota])
async def list_properties(
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    tenant_id: UUID | None = Query(None, description="Filter by tenant"),
    is_active: bool | None = Query(None, description="Filter by active status"),
):
    """List properties with today's quota usage."""
    query = select(Property)

    if tenant_id:
        query = query.where(Property.tenant_id == tenant_id)
    if is_active is not None:
        query = query.where(Property.is_active == is_active)

    query = query.order_by(Property.site_url).offset(skip).limit(limit)
    result = await db.execute(query)
    properties = result.scalars().all()

    return [
        PropertyWithQuota(
            **PropertyRead.model_validate(prop).model_dump(),
            quota=await _quota(db, prop.id),
        )
        for prop in properties
    ]


@router.get("/{property_id}", response_model=PropertyWithQuota)
async def get_property(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a single property with today's quota usage."""
    prop = await _get_property(db, property_id)
    return PropertyWithQuota(
        **PropertyRead.model_validate(prop).model_dump(),
        quota=await _quota(db, prop.id),
    )


@router.get("/{property_id}/overview", response_model=PropertyOverview)
async def get_overview(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    days: int = Query(30, ge=1, le=365, description="Number of history snapshots"),
):
    """Current verdict distribution, quota usage and recent snapshot history."""
    await _get_property(db, property_id)

    counts = await db.run_sync(lambda session: verdict_counts(session, property_id))

    history_query = (
        select(IndexationSnapshot)
        .where(IndexationSnapshot.property_id == property_id)
        .order_by(IndexationSnapshot.stat_date.desc())
        .limit(days)
    )
    history_result = await db.execute(history_query)
    history = list(reversed(history_result.scalars().all()))

    return PropertyOverview(
        property_id=property_id,
        total_urls=sum(counts.values()),
        verdicts=counts,
        quota=await _quota(db, property_id),
        history=[SnapshotRead.model_validate(s) for s in history],
    )


@router.get("/{property_id}/settings", response_model=IndexationSettingsRead)
async def get_indexation_settings(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get auto-inspection settings; a property without a row has both flags off."""
    await _get_property(db, property_id)
    result = await db.execute(
        select(IndexationSettings).where(IndexationSettings.property_id == property_id)
    )
    row = result.scalar_one_or_none()
    if not row:
        return IndexationSettingsRead(property_id=property_id)
    return IndexationSettingsRead.model_validate(row)


@router.put("/{property_id}/settings", response_model=IndexationSettingsRead)
async def update_indexation_settings(
    property_id: UUID,
    data: IndexationSettingsUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Enable or disable automatic inspection of new and updated URLs."""
    await _get_property(db, property_id)
    result = await db.execute(
        select(IndexationSettings).where(IndexationSettings.property_id == property_id)
    )
    row = result.scalar_one_or_none()
    if not row:
        row = IndexationSettings(
            property_id=property_id,
            auto_inspect_new=False,
            auto_inspect_updated=False,
        )
        db.add(row)

    for key, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(row, key, value)

    await db.commit()
    await db.refresh(row)
    return IndexationSettingsRead.model_validate(row)


@router.get("/{property_id}/records", response_model=list[InspectionRecordRead])
async def list_records(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    verdict: Verdict | None = Query(None, description="Filter by verdict"),
):
    """List inspection records, most recently inspected first."""
    await _get_property(db, property_id)
    query = select(InspectionRecord).where(InspectionRecord.property_id == property_id)

    if verdict:
        query = query.where(InspectionRecord.verdict == verdict.value)

    query = query.order_by(InspectionRecord.inspected_at.desc(), InspectionRecord.url).offset(skip).limit(limit)
    result = await db.execute(query)
    return [InspectionRecordRead.model_validate(r) for r in result.scalars().all()]


@router.get("/{property_id}/queue", response_model=list[QueueItemRead])
async def list_queue(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    status: str | None = Query(None, description="Filter by status (pending, submitted, failed)"),
):
    """List submission queue items, oldest first."""
    await _get_property(db, property_id)
    query = select(QueueItem).where(QueueItem.property_id == property_id)

    if status:
        query = query.where(QueueItem.status == status)

    query = query.order_by(QueueItem.updated_at, QueueItem.url).offset(skip).limit(limit)
    result = await db.execute(query)
    return [QueueItemRead.model_validate(q) for q in result.scalars().all()]


@router.get("/{property_id}/queue/stats", response_model=QueueStats)
async def get_queue_stats(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Count queue items by status."""
    await _get_property(db, property_id)
    result = await db.execute(
        select(QueueItem.status, func.count(QueueItem.id))
        .where(QueueItem.property_id == property_id)
        .group_by(QueueItem.status)
    )
    by_status = dict(result.all())

    return QueueStats(
        pending=by_status.get("pending", 0),
        submitted=by_status.get("submitted", 0),
        failed=by_status.get("failed", 0),
        total=sum(by_status.values()),
    )


@router.get("/{property_id}/runs", response_model=list[IndexationRunRead])
async def list_runs(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    limit: int = Query(20, ge=1, le=100),
    kind: str | None = Query(None, description="Filter by kind (inspection, submission)"),
):
    """List recent processing cycles for a property."""
    await _get_property(db, property_id)
    query = select(IndexationRun).where(IndexationRun.property_id == property_id)

    if kind:
        query = query.where(IndexationRun.kind == kind)

    query = query.order_by(IndexationRun.started_at.desc()).limit(limit)
    result = await db.execute(query)
    return [IndexationRunRead.model_validate(r) for r in result.scalars().all()]
