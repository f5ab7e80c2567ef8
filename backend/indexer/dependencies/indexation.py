"""Dependencies for the interactive indexation endpoints."""

from fastapi import Depends
from sqlalchemy.orm import Session

from indexer.models.base import get_sync_db
from indexer.services.batch_runner import BatchRunner


def get_batch_runner(db: Session = Depends(get_sync_db)) -> BatchRunner:
    """A BatchRunner bound to a request-scoped sync session."""
    return BatchRunner(db)
