"""Catalog entry model: one discoverable URL of a property."""

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Uuid, Index, UniqueConstraint, func

from indexer.models.base import Base, UUIDMixin


class CatalogEntry(UUIDMixin, Base):
    __tablename__ = "catalog_entries"

    property_id = Column(
        Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )

    url = Column(Text, nullable=False)
    lastmod = Column(DateTime(timezone=True))
    is_active = Column(Boolean, default=True, nullable=False)
    source = Column(String(20), nullable=False, default="sitemap")  # sitemap, product, blog, manual

    first_seen_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_seen_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("property_id", "url", name="uq_catalog_property_url"),
        Index("idx_catalog_property_active", "property_id", "is_active"),
    )
