"""Periodic sweeps over every eligible property.

Properties are processed one after another. A failure on one property (token
refresh, busy lock, database error) is logged and reported in the sweep result
but never stops the sweep.
"""

import logging
import uuid
from dataclasses import asdict, dataclass
from typing import Callable

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from indexer.config import get_settings
from indexer.models.indexation_settings import IndexationSettings
from indexer.models.property import Property
from indexer.models.queue_item import QueueItem
from indexer.services.batch_runner import BatchRunner
from indexer.services.candidate_selector import SelectionPolicy

logger = logging.getLogger(__name__)


@dataclass
class PropertySweepResult:
    property_id: str
    site_url: str
    processed: int = 0
    succeeded: int = 0
    inspected_new: int = 0
    inspected_updated: int = 0
    quota_remaining: int = 0
    skipped_quota: bool = False
    error: str | None = None


def sweep_policies(settings: IndexationSettings) -> list[SelectionPolicy]:
    """Active selection policies for a property, "new" ahead of "updated"."""
    policies = []
    if settings.auto_inspect_new:
        policies.append(SelectionPolicy.NEVER_INSPECTED)
    if settings.auto_inspect_updated:
        policies.append(SelectionPolicy.UPDATED)
    return policies


def eligible_properties(db: Session) -> list[tuple[Property, IndexationSettings]]:
    """Active properties with at least one auto-inspection policy enabled."""
    rows = db.execute(
        select(Property, IndexationSettings)
        .join(IndexationSettings, IndexationSettings.property_id == Property.id)
        .where(
            Property.is_active == True,  # noqa: E712
            or_(
                IndexationSettings.auto_inspect_new == True,  # noqa: E712
                IndexationSettings.auto_inspect_updated == True,  # noqa: E712
            ),
        )
        .order_by(Property.site_url, Property.id)
    ).all()
    return [(prop, settings) for prop, settings in rows]


def run_inspection_sweep(db: Session, runner_factory: Callable[[Session], BatchRunner] = BatchRunner) -> dict:
    """Run one inspection cycle for every eligible property."""
    settings = get_settings()
    runner = runner_factory(db)
    results: list[PropertySweepResult] = []

    targets = [
        (prop.id, prop.site_url, sweep_policies(prop_settings))
        for prop, prop_settings in eligible_properties(db)
    ]
    for property_id, site_url, policies in targets:
        entry = PropertySweepResult(property_id=str(property_id), site_url=site_url)
        try:
            batch = runner.run_inspection(
                property_id,
                limit=settings.sweep_batch_size,
                policies=policies,
                trigger="sweep",
            )
            entry.processed = batch.processed
            entry.succeeded = batch.succeeded
            entry.inspected_new = batch.count_by_reason(SelectionPolicy.NEVER_INSPECTED)
            entry.inspected_updated = batch.count_by_reason(SelectionPolicy.UPDATED)
            entry.quota_remaining = batch.quota_remaining
            entry.skipped_quota = batch.quota_exhausted
        except Exception as e:
            db.rollback()
            entry.error = str(e)
            logger.error(f"[{site_url}] Sweep failed: {e}")
        results.append(entry)

    summary = {
        "properties_processed": len(results),
        "total_new": sum(r.inspected_new for r in results),
        "total_updated": sum(r.inspected_updated for r in results),
        "failures": sum(1 for r in results if r.error),
        "results": [asdict(r) for r in results],
    }
    logger.info(
        f"Inspection sweep: {summary['properties_processed']} properties, "
        f"{summary['total_new']} new, {summary['total_updated']} updated, {summary['failures']} failures"
    )
    return summary


def properties_with_queued_submissions(db: Session, max_attempts: int) -> list[tuple[uuid.UUID, str]]:
    return db.execute(
        select(Property.id, Property.site_url)
        .where(
            Property.is_active == True,  # noqa: E712
            select(QueueItem.id)
            .where(
                QueueItem.property_id == Property.id,
                or_(
                    QueueItem.status == "pending",
                    (QueueItem.status == "failed") & (QueueItem.attempts < max_attempts),
                ),
            )
            .exists(),
        )
        .order_by(Property.site_url, Property.id)
    ).all()


def run_queue_sweep(db: Session, runner_factory: Callable[[Session], BatchRunner] = BatchRunner) -> dict:
    """Retry queued submissions for every property that has some."""
    settings = get_settings()
    runner = runner_factory(db)
    results = []

    for property_id, site_url in properties_with_queued_submissions(db, settings.queue_max_attempts):
        entry = {"property_id": str(property_id), "site_url": site_url, "error": None}
        try:
            batch = runner.process_queue(property_id, trigger="queue")
            entry.update(
                processed=batch.processed,
                submitted=batch.succeeded,
                quota_remaining=batch.quota_remaining,
                skipped_quota=batch.quota_exhausted,
            )
        except Exception as e:
            db.rollback()
            entry["error"] = str(e)
            logger.error(f"[{site_url}] Queue retry failed: {e}")
        results.append(entry)

    logger.info(f"Queue sweep: {len(results)} properties")
    return {"properties_processed": len(results), "results": results}
