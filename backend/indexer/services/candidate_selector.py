"""Priority-ordered selection of URLs to inspect.

One selector serves every caller; the caller picks which policies are active
and in what order. Each policy draws from the slots the previous ones left,
and a URL claimed by an earlier policy is never returned twice.
"""

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Sequence

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from indexer.models.catalog_entry import CatalogEntry
from indexer.models.inspection_record import InspectionRecord

logger = logging.getLogger(__name__)


class SelectionPolicy(str, enum.Enum):
    NEVER_INSPECTED = "new"
    UPDATED = "updated"
    OLDEST_INSPECTED = "stale"
    EXPLICIT = "explicit"


# Interactive batch inspection: never-inspected first, then stalest.
INTERACTIVE_POLICIES = (SelectionPolicy.NEVER_INSPECTED, SelectionPolicy.OLDEST_INSPECTED)


@dataclass(frozen=True)
class Candidate:
    id: uuid.UUID
    url: str
    reason: SelectionPolicy


class CandidateSelector:
    def __init__(self, db: Session):
        self.db = db

    def select(
        self,
        property_id: uuid.UUID,
        max_count: int,
        policies: Sequence[SelectionPolicy] = INTERACTIVE_POLICIES,
    ) -> list[Candidate]:
        """Return up to ``max_count`` deduplicated candidates in priority order."""
        if max_count <= 0:
            return []

        queries = {
            SelectionPolicy.NEVER_INSPECTED: self._never_inspected,
            SelectionPolicy.UPDATED: self._updated_since_inspection,
            SelectionPolicy.OLDEST_INSPECTED: self._oldest_inspected,
        }

        selected: list[Candidate] = []
        claimed: set[uuid.UUID] = set()
        for policy in policies:
            slots = max_count - len(selected)
            if slots <= 0:
                break
            query = queries.get(SelectionPolicy(policy))
            if query is None:
                raise ValueError(f"Policy {policy} cannot be used for automatic selection")
            for entry_id, url in query(property_id, slots, claimed):
                if entry_id in claimed:
                    continue
                claimed.add(entry_id)
                selected.append(Candidate(entry_id, url, SelectionPolicy(policy)))

        return selected[:max_count]

    def select_explicit(
        self,
        property_id: uuid.UUID,
        urls: Iterable[str],
        max_count: int,
    ) -> tuple[list[Candidate], list[str]]:
        """Resolve an explicit URL list against the catalog.

        The list is deduplicated and capped to ``max_count`` in request order.
        Returns (candidates, skipped) where skipped holds URLs the property's
        catalog does not know.
        """
        if max_count <= 0:
            return [], []

        requested = list(dict.fromkeys(urls))[:max_count]
        if not requested:
            return [], []

        rows = self.db.execute(
            select(CatalogEntry.id, CatalogEntry.url).where(
                CatalogEntry.property_id == property_id,
                CatalogEntry.url.in_(requested),
            )
        ).all()
        by_url = {url: entry_id for entry_id, url in rows}

        candidates = [
            Candidate(by_url[url], url, SelectionPolicy.EXPLICIT)
            for url in requested
            if url in by_url
        ]
        skipped = [url for url in requested if url not in by_url]
        if skipped:
            logger.info(f"Skipping {len(skipped)} URLs not in catalog for property {property_id}")
        return candidates, skipped

    def _base_query(self, property_id: uuid.UUID, exclude: set[uuid.UUID]):
        query = select(CatalogEntry.id, CatalogEntry.url).where(
            CatalogEntry.property_id == property_id,
            CatalogEntry.is_active == True,  # noqa: E712
        )
        if exclude:
            query = query.where(CatalogEntry.id.not_in(exclude))
        return query

    def _never_inspected(self, property_id: uuid.UUID, limit: int, exclude: set[uuid.UUID]):
        has_record = exists().where(InspectionRecord.catalog_entry_id == CatalogEntry.id)
        query = (
            self._base_query(property_id, exclude)
            .where(~has_record)
            .order_by(CatalogEntry.first_seen_at, CatalogEntry.url)
            .limit(limit)
        )
        return self.db.execute(query).all()

    def _updated_since_inspection(self, property_id: uuid.UUID, limit: int, exclude: set[uuid.UUID]):
        query = (
            self._base_query(property_id, exclude)
            .join(InspectionRecord, InspectionRecord.catalog_entry_id == CatalogEntry.id)
            .where(
                CatalogEntry.lastmod.is_not(None),
                CatalogEntry.lastmod > InspectionRecord.inspected_at,
            )
            .order_by(InspectionRecord.inspected_at, CatalogEntry.url)
            .limit(limit)
        )
        return self.db.execute(query).all()

    def _oldest_inspected(self, property_id: uuid.UUID, limit: int, exclude: set[uuid.UUID]):
        query = (
            self._base_query(property_id, exclude)
            .join(InspectionRecord, InspectionRecord.catalog_entry_id == CatalogEntry.id)
            .order_by(InspectionRecord.inspected_at, CatalogEntry.url)
            .limit(limit)
        )
        return self.db.execute(query).all()
