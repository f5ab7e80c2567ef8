"""Pydantic schemas for the interactive inspection and submission endpoints."""

from typing import Literal
from urllib.parse import urlparse
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from indexer.config import get_settings

settings = get_settings()


def _validate_urls(urls: list[str] | None) -> list[str] | None:
    if urls is None:
        return None
    cleaned = []
    for url in urls:
        url = url.strip()
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid URL: {url!r}")
        cleaned.append(url)
    return cleaned


class InspectRequest(BaseModel):
    """Inspect a batch of URLs; without ``urls`` the selector picks them."""

    property_id: UUID
    urls: list[str] | None = Field(None, max_length=settings.max_inspect_limit)
    limit: int = Field(settings.batch_size, ge=1, le=settings.max_inspect_limit)

    @field_validator("urls")
    @classmethod
    def check_urls(cls, urls):
        return _validate_urls(urls)


class SubmitRequest(BaseModel):
    """Submit URLs for indexing; the excess over today's budget is queued."""

    property_id: UUID
    urls: list[str] = Field(..., min_length=1, max_length=settings.submission_max_urls)
    action: Literal["URL_UPDATED", "URL_DELETED"] = "URL_UPDATED"

    @field_validator("urls")
    @classmethod
    def check_urls(cls, urls):
        return _validate_urls(urls)


class ItemResultRead(BaseModel):
    url: str
    success: bool
    verdict: str | None = None
    status: str | None = None
    reason: str | None = None
    error: str | None = None


class BatchResponse(BaseModel):
    """Outcome of one processing cycle."""

    property_id: UUID
    processed: int
    succeeded: int
    failed: int
    quota_remaining: int
    quota_exhausted: bool = False
    interrupted: bool = False
    results: list[ItemResultRead] = []


class InspectResponse(BatchResponse):
    inspected: int
    skipped: list[str] = []
    message: str | None = None


class SubmitResponse(BatchResponse):
    submitted: int
    queued: int = 0
    errors: list[str] = []


class QueuedTaskResponse(BaseModel):
    message: str
    task_id: str
    property_id: UUID
