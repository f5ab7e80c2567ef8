"""Queue item model: deferred or retry-pending submission actions."""

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Uuid, Index, UniqueConstraint

from indexer.models.base import Base, TimestampMixin, UUIDMixin


class QueueItem(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "queue_items"

    property_id = Column(
        Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
    )
    url = Column(Text, nullable=False)
    action = Column(String(20), nullable=False, default="URL_UPDATED")  # URL_UPDATED, URL_DELETED

    status = Column(String(20), nullable=False, default="pending")  # pending, submitted, failed
    attempts = Column(Integer, default=0, nullable=False)
    submitted_at = Column(DateTime(timezone=True))
    error_message = Column(Text)

    __table_args__ = (
        UniqueConstraint("property_id", "url", "action", name="uq_queue_property_url_action"),
        Index("idx_queue_property_status", "property_id", "status"),
    )
