"""Pydantic schemas for properties and their indexation state."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class PropertyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    site_url: str
    tenant_id: UUID
    is_active: bool
    last_synced_at: datetime | None = None
    created_at: datetime


class QuotaRead(BaseModel):
    inspection_limit: int
    inspection_used: int
    inspection_remaining: int
    submission_limit: int
    submission_used: int
    submission_remaining: int


class PropertyWithQuota(PropertyRead):
    quota: QuotaRead


class IndexationSettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    property_id: UUID
    auto_inspect_new: bool = False
    auto_inspect_updated: bool = False


class IndexationSettingsUpdate(BaseModel):
    auto_inspect_new: bool | None = None
    auto_inspect_updated: bool | None = None


class SnapshotRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    stat_date: date
    total_urls: int
    indexed: int
    not_indexed: int
    crawled_not_indexed: int
    discovered_not_indexed: int
    noindex: int
    blocked_robots: int
    error: int
    unknown: int


class PropertyOverview(BaseModel):
    property_id: UUID
    total_urls: int
    verdicts: dict[str, int]
    quota: QuotaRead
    history: list[SnapshotRead] = []
