"""Daily snapshot of verdict counts per property."""

from sqlalchemy import Column, Integer, Date, ForeignKey, Uuid, UniqueConstraint

from indexer.models.base import Base, TimestampMixin, UUIDMixin


class IndexationSnapshot(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "indexation_snapshots"

    property_id = Column(
        Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    stat_date = Column(Date, nullable=False)

    total_urls = Column(Integer, default=0, nullable=False)
    indexed = Column(Integer, default=0, nullable=False)
    not_indexed = Column(Integer, default=0, nullable=False)
    crawled_not_indexed = Column(Integer, default=0, nullable=False)
    discovered_not_indexed = Column(Integer, default=0, nullable=False)
    noindex = Column(Integer, default=0, nullable=False)
    blocked_robots = Column(Integer, default=0, nullable=False)
    error = Column(Integer, default=0, nullable=False)
    unknown = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("property_id", "stat_date", name="uq_snapshot_property_date"),
    )
