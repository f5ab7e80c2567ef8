"""Inspection record model: latest known indexation outcome per URL."""

import enum

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid, Index, UniqueConstraint

from indexer.models.base import Base, UUIDMixin


class Verdict(str, enum.Enum):
    INDEXED = "indexed"
    NOT_INDEXED = "not_indexed"
    CRAWLED_NOT_INDEXED = "crawled_not_indexed"
    DISCOVERED_NOT_INDEXED = "discovered_not_indexed"
    NOINDEX = "noindex"
    BLOCKED_ROBOTS = "blocked_robots"
    ERROR = "error"
    UNKNOWN = "unknown"


class InspectionRecord(UUIDMixin, Base):
    __tablename__ = "inspection_records"

    catalog_entry_id = Column(
        Uuid(as_uuid=True), ForeignKey("catalog_entries.id", ondelete="CASCADE"),
        unique=True, nullable=False,
    )
    property_id = Column(
        Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
    )
    url = Column(Text, nullable=False)

    verdict = Column(String(30), nullable=False, default=Verdict.UNKNOWN.value)

    # Diagnostics from the inspection payload
    coverage_state = Column(Text)
    last_crawl_time = Column(DateTime(timezone=True))
    crawled_as = Column(String(20))
    robots_txt_state = Column(String(30))
    indexing_state = Column(String(40))
    page_fetch_state = Column(String(40))
    google_canonical = Column(Text)
    user_canonical = Column(Text)

    inspected_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("property_id", "url", name="uq_inspection_property_url"),
        Index("idx_inspection_property_verdict", "property_id", "verdict"),
        Index("idx_inspection_inspected_at", "property_id", "inspected_at"),
    )
