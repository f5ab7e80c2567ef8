"""Idempotent persistence of per-URL outcomes."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable

from sqlalchemy.orm import Session

from indexer.models.base import upsert
from indexer.models.inspection_record import InspectionRecord
from indexer.models.queue_item import QueueItem
from indexer.services.verdicts import InspectionOutcome

logger = logging.getLogger(__name__)


class ResultRecorder:
    def __init__(self, db: Session, now: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.db = db
        self.now = now

    def record_inspection(
        self,
        property_id: uuid.UUID,
        catalog_entry_id: uuid.UUID,
        url: str,
        outcome: InspectionOutcome,
    ) -> None:
        """Upsert the InspectionRecord for (property, url); last write wins."""
        values = {
            "catalog_entry_id": catalog_entry_id,
            "verdict": outcome.verdict.value,
            "inspected_at": self.now(),
            **outcome.diagnostics,
        }
        stmt = upsert(self.db, InspectionRecord).values(
            id=uuid.uuid4(),
            property_id=property_id,
            url=url,
            **values,
        )
        stmt = stmt.on_conflict_do_update(index_elements=["property_id", "url"], set_=values)
        self.db.execute(stmt)
        self.db.commit()

    def record_submission(
        self,
        property_id: uuid.UUID,
        url: str,
        action: str,
        success: bool,
        error_message: str | None = None,
    ) -> None:
        """Upsert the QueueItem for (property, url, action) after one attempt."""
        now = self.now()
        values = {
            "status": "submitted" if success else "failed",
            "submitted_at": now if success else None,
            "error_message": None if success else (error_message or "Submission failed")[:2000],
            "updated_at": now,
        }
        stmt = upsert(self.db, QueueItem).values(
            id=uuid.uuid4(),
            property_id=property_id,
            url=url,
            action=action,
            attempts=1,
            created_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["property_id", "url", "action"],
            set_={**values, "attempts": QueueItem.attempts + 1},
        )
        self.db.execute(stmt)
        self.db.commit()

    def enqueue_submissions(self, property_id: uuid.UUID, urls: Iterable[str], action: str) -> int:
        """Mark URLs as pending submissions, creating rows as needed."""
        now = self.now()
        count = 0
        for url in urls:
            stmt = upsert(self.db, QueueItem).values(
                id=uuid.uuid4(),
                property_id=property_id,
                url=url,
                action=action,
                status="pending",
                attempts=0,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["property_id", "url", "action"],
                set_={"status": "pending", "error_message": None, "updated_at": now},
            )
            self.db.execute(stmt)
            count += 1
        self.db.commit()
        if count:
            logger.info(f"Queued {count} URLs for later submission on property {property_id}")
        return count
