"""Pydantic schemas for InspectionRecord, QueueItem and IndexationRun."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class InspectionRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    catalog_entry_id: UUID
    url: str
    verdict: str
    coverage_state: str | None = None
    last_crawl_time: datetime | None = None
    crawled_as: str | None = None
    robots_txt_state: str | None = None
    indexing_state: str | None = None
    page_fetch_state: str | None = None
    google_canonical: str | None = None
    user_canonical: str | None = None
    inspected_at: datetime


class QueueItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    action: str
    status: str
    attempts: int = 0
    submitted_at: datetime | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime


class QueueStats(BaseModel):
    pending: int = 0
    submitted: int = 0
    failed: int = 0
    total: int = 0


class IndexationRunRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    property_id: UUID
    kind: str
    trigger: str
    started_at: datetime
    finished_at: datetime | None = None
    status: str
    processed: int = 0
    succeeded: int = 0
    error_message: str | None = None
