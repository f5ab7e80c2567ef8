"""Per-property sweep settings."""

from sqlalchemy import Column, Boolean, ForeignKey, Uuid

from indexer.models.base import Base, TimestampMixin, UUIDMixin


class IndexationSettings(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "indexation_settings"

    property_id = Column(
        Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"),
        unique=True, nullable=False,
    )

    auto_inspect_new = Column(Boolean, default=False, nullable=False)
    auto_inspect_updated = Column(Boolean, default=False, nullable=False)
