"""Quota state model: daily consumption counters per property."""

from sqlalchemy import Column, Integer, Date, ForeignKey, Uuid

from indexer.models.base import Base, TimestampMixin, UUIDMixin


class QuotaState(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "quota_states"

    property_id = Column(
        Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"),
        unique=True, nullable=False,
    )

    # A counter only applies to the date stored next to it; any other date means zero.
    inspection_count = Column(Integer, default=0, nullable=False)
    inspection_date = Column(Date)
    submission_count = Column(Integer, default=0, nullable=False)
    submission_date = Column(Date)
