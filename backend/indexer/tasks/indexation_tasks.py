"""Indexation scheduling tasks."""

import logging
import uuid

from sqlalchemy import select

from indexer.tasks.celery_app import celery_app
from indexer.models.base import SyncSessionLocal
from indexer.models.property import Property
from indexer.services import scheduler
from indexer.services.batch_runner import BatchRunner
from indexer.services.snapshot import snapshot_property

logger = logging.getLogger(__name__)


@celery_app.task(name="indexer.tasks.indexation_tasks.run_inspection_sweep")
def run_inspection_sweep():
    """Inspect new/updated URLs for every property with auto-inspection enabled."""
    db = SyncSessionLocal()
    try:
        return scheduler.run_inspection_sweep(db)
    finally:
        db.close()


@celery_app.task(name="indexer.tasks.indexation_tasks.process_submission_queues")
def process_submission_queues():
    """Retry pending and failed submissions within each property's daily budget."""
    db = SyncSessionLocal()
    try:
        return scheduler.run_queue_sweep(db)
    finally:
        db.close()


@celery_app.task(name="indexer.tasks.indexation_tasks.inspect_property")
def inspect_property(property_id: str, limit: int | None = None):
    """Run one interactive-style inspection cycle in the background."""
    db = SyncSessionLocal()
    try:
        result = BatchRunner(db).run_inspection(uuid.UUID(property_id), limit=limit, trigger="task")
        return result.to_dict()
    finally:
        db.close()


@celery_app.task(name="indexer.tasks.indexation_tasks.snapshot_all_properties")
def snapshot_all_properties():
    """Write today's verdict snapshot for every active property."""
    db = SyncSessionLocal()
    try:
        property_ids = db.execute(
            select(Property.id).where(Property.is_active == True)  # noqa: E712
        ).scalars().all()

        written = 0
        for property_id in property_ids:
            try:
                snapshot_property(db, property_id)
                written += 1
            except Exception as e:
                db.rollback()
                logger.error(f"Snapshot failed for property {property_id}: {e}")

        logger.info(f"Wrote {written} indexation snapshots")
        return {"snapshots": written}
    finally:
        db.close()
