"""Daily verdict-count snapshots per property."""

import logging
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from indexer.models.base import upsert
from indexer.models.catalog_entry import CatalogEntry
from indexer.models.indexation_snapshot import IndexationSnapshot
from indexer.models.inspection_record import InspectionRecord, Verdict

logger = logging.getLogger(__name__)


def verdict_counts(db: Session, property_id: uuid.UUID) -> dict[str, int]:
    """Count active catalog entries per verdict; uninspected entries count as unknown."""
    verdict = func.coalesce(InspectionRecord.verdict, Verdict.UNKNOWN.value)
    rows = db.execute(
        select(verdict, func.count(CatalogEntry.id))
        .select_from(CatalogEntry)
        .outerjoin(InspectionRecord, InspectionRecord.catalog_entry_id == CatalogEntry.id)
        .where(
            CatalogEntry.property_id == property_id,
            CatalogEntry.is_active == True,  # noqa: E712
        )
        .group_by(verdict)
    ).all()

    counts = {v.value: 0 for v in Verdict}
    for name, count in rows:
        counts[name] = counts.get(name, 0) + count
    return counts


def snapshot_property(db: Session, property_id: uuid.UUID, stat_date: date | None = None) -> dict[str, int]:
    """Upsert today's snapshot row for a property and return its counts."""
    stat_date = stat_date or datetime.now(timezone.utc).date()
    counts = verdict_counts(db, property_id)
    values = {"total_urls": sum(counts.values()), **counts}

    stmt = upsert(db, IndexationSnapshot).values(
        id=uuid.uuid4(),
        property_id=property_id,
        stat_date=stat_date,
        **values,
    )
    stmt = stmt.on_conflict_do_update(index_elements=["property_id", "stat_date"], set_=values)
    db.execute(stmt)
    db.commit()

    logger.debug(f"Snapshot for property {property_id} on {stat_date}: {values}")
    return values
