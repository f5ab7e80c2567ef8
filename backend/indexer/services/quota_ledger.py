"""Daily quota ledger: per-property, per-budget-kind consumption counters.

A counter is only meaningful for the date stored alongside it. When the stored
date is not today the counter reads as zero, and the next commit resets it.
Commits are a single UPDATE so concurrent writers cannot lose increments, and
the new value is clamped to the daily limit.
"""

import enum
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Callable

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from indexer.config import get_settings
from indexer.models.base import upsert
from indexer.models.quota_state import QuotaState

logger = logging.getLogger(__name__)


class BudgetKind(str, enum.Enum):
    INSPECTION = "inspection"
    SUBMISSION = "submission"


# (counter column, date column) per budget kind
_COLUMNS = {
    BudgetKind.INSPECTION: ("inspection_count", "inspection_date"),
    BudgetKind.SUBMISSION: ("submission_count", "submission_date"),
}


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class QuotaLedger:
    def __init__(
        self,
        db: Session,
        limits: dict[BudgetKind, int] | None = None,
        today: Callable[[], date] = utc_today,
    ):
        settings = get_settings()
        self.db = db
        self.limits = limits or {
            BudgetKind.INSPECTION: settings.inspection_daily_limit,
            BudgetKind.SUBMISSION: settings.submission_daily_limit,
        }
        self.today = today

    def daily_limit(self, kind: BudgetKind) -> int:
        return self.limits[BudgetKind(kind)]

    def used(self, property_id: uuid.UUID, kind: BudgetKind) -> int:
        """Return today's effective consumption for a budget kind."""
        count_name, date_name = _COLUMNS[BudgetKind(kind)]
        row = self.db.execute(
            select(getattr(QuotaState, count_name), getattr(QuotaState, date_name))
            .where(QuotaState.property_id == property_id)
        ).first()
        if row is None:
            return 0
        counter, counter_date = row
        if counter_date != self.today():
            return 0
        return counter or 0

    def remaining(self, property_id: uuid.UUID, kind: BudgetKind) -> int:
        return max(0, self.daily_limit(kind) - self.used(property_id, kind))

    def commit(self, property_id: uuid.UUID, kind: BudgetKind, consumed: int) -> int:
        """Add ``consumed`` successful operations to today's counter.

        Returns the budget remaining after the commit.
        """
        if consumed < 0:
            raise ValueError(f"consumed must be >= 0, got {consumed}")

        kind = BudgetKind(kind)
        limit = self.daily_limit(kind)
        today = self.today()
        count_name, date_name = _COLUMNS[kind]
        count_col = getattr(QuotaState, count_name)
        date_col = getattr(QuotaState, date_name)

        self._ensure_row(property_id)

        effective = case((date_col == today, count_col), else_=0)
        new_value = case(
            (effective >= limit, effective),
            (effective + consumed > limit, limit),
            else_=effective + consumed,
        )
        self.db.execute(
            update(QuotaState)
            .where(QuotaState.property_id == property_id)
            .values({count_name: new_value, date_name: today})
        )
        self.db.commit()

        remaining = self.remaining(property_id, kind)
        logger.debug(f"Quota {kind.value} for {property_id}: +{consumed}, {remaining} remaining")
        return remaining

    def summary(self, property_id: uuid.UUID) -> dict[str, int]:
        """Limit, usage and remaining budget for every kind."""
        data = {}
        for kind in BudgetKind:
            used = self.used(property_id, kind)
            limit = self.daily_limit(kind)
            data[f"{kind.value}_limit"] = limit
            data[f"{kind.value}_used"] = used
            data[f"{kind.value}_remaining"] = max(0, limit - used)
        return data

    def _ensure_row(self, property_id: uuid.UUID) -> None:
        stmt = upsert(self.db, QuotaState).values(
            id=uuid.uuid4(),
            property_id=property_id,
            inspection_count=0,
            submission_count=0,
        ).on_conflict_do_nothing(index_elements=["property_id"])
        self.db.execute(stmt)
