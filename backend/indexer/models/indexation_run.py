"""Indexation run model: audit log per processing cycle."""

from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Uuid

from indexer.models.base import Base, UUIDMixin


class IndexationRun(UUIDMixin, Base):
    __tablename__ = "indexation_runs"

    property_id = Column(Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)

    kind = Column(String(20), nullable=False)  # inspection, submission
    trigger = Column(String(20), nullable=False)  # interactive, sweep, queue, task, cli
    started_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True))
    status = Column(String(20), nullable=False, default="running")  # running, success, quota_exhausted, interrupted, failed
    processed = Column(Integer, default=0)
    succeeded = Column(Integer, default=0)
    error_message = Column(Text)
