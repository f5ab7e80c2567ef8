"""Pydantic schemas package."""

from indexer.schemas.indexation import (
    InspectRequest,
    SubmitRequest,
    ItemResultRead,
    BatchResponse,
    InspectResponse,
    SubmitResponse,
    QueuedTaskResponse,
)
from indexer.schemas.property import (
    PropertyRead,
    PropertyWithQuota,
    QuotaRead,
    IndexationSettingsRead,
    IndexationSettingsUpdate,
    SnapshotRead,
    PropertyOverview,
)
from indexer.schemas.inspection_record import (
    InspectionRecordRead,
    QueueItemRead,
    QueueStats,
    IndexationRunRead,
)

__all__ = [
    "InspectRequest",
    "SubmitRequest",
    "ItemResultRead",
    "BatchResponse",
    "InspectResponse",
    "SubmitResponse",
    "QueuedTaskResponse",
    "PropertyRead",
    "PropertyWithQuota",
    "QuotaRead",
    "IndexationSettingsRead",
    "IndexationSettingsUpdate",
    "SnapshotRead",
    "PropertyOverview",
    "InspectionRecordRead",
    "QueueItemRead",
    "QueueStats",
    "IndexationRunRead",
]
