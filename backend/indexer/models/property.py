"""Property model: a managed site under indexation control."""

from sqlalchemy import Column, String, Boolean, DateTime, Uuid, Index

from indexer.models.base import Base, TimestampMixin, UUIDMixin


class Property(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "properties"

    # Canonical site URL as registered with the search console (e.g. "sc-domain:example.com")
    site_url = Column(String(500), nullable=False)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    is_active = Column(Boolean, default=True, nullable=False)
    last_synced_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_property_tenant_site", "tenant_id", "site_url", unique=True),
    )
