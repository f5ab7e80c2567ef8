"""OAuth credential model: access/refresh token pair per property."""

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Uuid

from indexer.models.base import Base, TimestampMixin, UUIDMixin


class OAuthCredential(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "oauth_credentials"

    property_id = Column(
        Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"),
        unique=True, nullable=False,
    )

    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    scope = Column(String(500))
    is_active = Column(Boolean, default=True, nullable=False)
