"""One processing cycle for one property.

A cycle moves through: budget check, candidate selection, paced sequential
processing, and a final quota commit of the successful calls only. A failed
item is recorded as failed and the cycle carries on; only token and lock
failures abort the whole cycle, and those commit no quota. The property lock
is renewed after every item; a cycle that loses it stops early and commits
what already succeeded.
"""

import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Callable, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from indexer.config import get_settings
from indexer.models.indexation_run import IndexationRun
from indexer.models.property import Property
from indexer.models.queue_item import QueueItem
from indexer.models.inspection_record import Verdict
from indexer.services.candidate_selector import (
    INTERACTIVE_POLICIES,
    Candidate,
    CandidateSelector,
    SelectionPolicy,
)
from indexer.services.errors import ExternalCallError, PropertyInactiveError, PropertyNotFoundError
from indexer.services.property_lock import LockLease, PropertyLock
from indexer.services.quota_ledger import BudgetKind, QuotaLedger
from indexer.services.result_recorder import ResultRecorder
from indexer.services.search_console import SearchConsoleClient
from indexer.services.snapshot import snapshot_property
from indexer.services.token_provider import TokenProvider
from indexer.services.verdicts import InspectionOutcome

logger = logging.getLogger(__name__)


@dataclass
class ItemResult:
    url: str
    success: bool
    verdict: str | None = None
    status: str | None = None
    reason: str | None = None
    error: str | None = None


@dataclass
class BatchResult:
    property_id: uuid.UUID
    kind: str
    processed: int = 0
    succeeded: int = 0
    quota_remaining: int = 0
    quota_exhausted: bool = False
    queued: int = 0
    interrupted: bool = False
    skipped: list[str] = field(default_factory=list)
    results: list[ItemResult] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.processed - self.succeeded

    def count_by_reason(self, reason: SelectionPolicy) -> int:
        return sum(1 for r in self.results if r.success and r.reason == reason.value)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["property_id"] = str(self.property_id)
        data["failed"] = self.failed
        return data


class BatchRunner:
    def __init__(
        self,
        db: Session,
        client: SearchConsoleClient | None = None,
        token_provider: TokenProvider | None = None,
        lock: PropertyLock | None = None,
        ledger: QuotaLedger | None = None,
        sleep: Callable[[float], None] = time.sleep,
        take_snapshots: bool = True,
    ):
        self.db = db
        self.settings = get_settings()
        self.client = client or SearchConsoleClient()
        self.token_provider = token_provider or TokenProvider()
        self.lock = lock or PropertyLock()
        self.ledger = ledger or QuotaLedger(db)
        self.selector = CandidateSelector(db)
        self.recorder = ResultRecorder(db)
        self.sleep = sleep
        self.take_snapshots = take_snapshots

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def run_inspection(
        self,
        property_id: uuid.UUID,
        limit: int | None = None,
        urls: Sequence[str] | None = None,
        policies: Sequence[SelectionPolicy] = INTERACTIVE_POLICIES,
        trigger: str = "interactive",
    ) -> BatchResult:
        """Inspect up to ``limit`` URLs for a property within today's budget.

        When ``urls`` is given the selector is bypassed and those URLs (capped
        to the limit and the budget) are inspected in request order.
        """
        prop = self._load_property(property_id)
        limit = self.settings.batch_size if limit is None else limit
        result = BatchResult(property_id=prop.id, kind=BudgetKind.INSPECTION.value)
        run = self._start_run(prop.id, BudgetKind.INSPECTION, trigger)

        try:
            with self.lock.hold(prop.id) as lease:
                remaining = self.ledger.remaining(prop.id, BudgetKind.INSPECTION)
                if remaining == 0:
                    result.quota_exhausted = True
                    logger.info(f"[{prop.site_url}] Inspection quota exhausted")
                    self._finish_run(run, result, status="quota_exhausted")
                    return result

                count = min(limit, remaining)
                if urls:
                    candidates, result.skipped = self.selector.select_explicit(prop.id, urls, count)
                else:
                    candidates = self.selector.select(prop.id, count, policies)

                if candidates:
                    token = self.token_provider.get_valid_token(self.db, prop.id)
                    for i, candidate in enumerate(candidates):
                        item = self._inspect_one(prop, token.access_token, candidate)
                        result.results.append(item)
                        result.processed += 1
                        if item.success:
                            result.succeeded += 1
                        if not self._keep_lease(prop, lease, result):
                            break
                        if i < len(candidates) - 1:
                            self.sleep(self.settings.inspect_delay_ms / 1000)

                result.quota_remaining = self.ledger.commit(prop.id, BudgetKind.INSPECTION, result.succeeded)
        except Exception as e:
            self._fail_run(run, result, e)
            raise

        logger.info(f"[{prop.site_url}] Inspected {result.succeeded}/{result.processed} URLs")
        self._finish_run(run, result)
        if result.succeeded and self.take_snapshots:
            self._snapshot(prop)
        return result

    def _inspect_one(self, prop: Property, access_token: str, candidate: Candidate) -> ItemResult:
        try:
            raw = self.client.inspect(access_token, candidate.url, prop.site_url)
            outcome = InspectionOutcome.from_result(raw)
        except ExternalCallError as e:
            logger.warning(f"[{prop.site_url}] Inspection failed for {candidate.url}: {e}")
            return ItemResult(
                url=candidate.url, success=False, verdict=Verdict.UNKNOWN.value,
                reason=candidate.reason.value, error=str(e),
            )

        try:
            self.recorder.record_inspection(prop.id, candidate.id, candidate.url, outcome)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[{prop.site_url}] Could not record inspection for {candidate.url}: {e}")
            return ItemResult(
                url=candidate.url, success=False, verdict=outcome.verdict.value,
                reason=candidate.reason.value, error="persistence failure",
            )

        return ItemResult(
            url=candidate.url, success=True, verdict=outcome.verdict.value, reason=candidate.reason.value,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def run_submission(
        self,
        property_id: uuid.UUID,
        urls: Sequence[str],
        action: str = "URL_UPDATED",
        trigger: str = "interactive",
    ) -> BatchResult:
        """Submit URLs directly up to today's budget and queue the rest as pending."""
        prop = self._load_property(property_id)
        urls = list(dict.fromkeys(urls))
        result = BatchResult(property_id=prop.id, kind=BudgetKind.SUBMISSION.value)
        run = self._start_run(prop.id, BudgetKind.SUBMISSION, trigger)

        try:
            with self.lock.hold(prop.id) as lease:
                remaining = self.ledger.remaining(prop.id, BudgetKind.SUBMISSION)
                direct, deferred = urls[:remaining], urls[remaining:]
                result.quota_exhausted = remaining == 0

                if direct:
                    token = self.token_provider.get_valid_token(self.db, prop.id)
                    deferred = self._submit_all(prop, token.access_token, direct, action, result, lease) + deferred

                result.queued = self.recorder.enqueue_submissions(prop.id, deferred, action)
                result.quota_remaining = self.ledger.commit(prop.id, BudgetKind.SUBMISSION, result.succeeded)
        except Exception as e:
            self._fail_run(run, result, e)
            raise

        logger.info(
            f"[{prop.site_url}] Submitted {result.succeeded}/{result.processed} URLs, queued {result.queued}"
        )
        self._finish_run(run, result, status="quota_exhausted" if result.quota_exhausted else "success")
        return result

    def process_queue(self, property_id: uuid.UUID, trigger: str = "queue") -> BatchResult:
        """Retry pending and failed QueueItems, oldest first, within today's budget."""
        prop = self._load_property(property_id)
        result = BatchResult(property_id=prop.id, kind=BudgetKind.SUBMISSION.value)
        run = self._start_run(prop.id, BudgetKind.SUBMISSION, trigger)

        try:
            with self.lock.hold(prop.id) as lease:
                remaining = self.ledger.remaining(prop.id, BudgetKind.SUBMISSION)
                if remaining == 0:
                    result.quota_exhausted = True
                    self._finish_run(run, result, status="quota_exhausted")
                    return result

                items = self.db.execute(
                    select(QueueItem.url, QueueItem.action)
                    .where(
                        QueueItem.property_id == prop.id,
                        or_(
                            QueueItem.status == "pending",
                            (QueueItem.status == "failed")
                            & (QueueItem.attempts < self.settings.queue_max_attempts),
                        ),
                    )
                    .order_by(QueueItem.updated_at, QueueItem.url)
                    .limit(remaining)
                ).all()

                if items:
                    token = self.token_provider.get_valid_token(self.db, prop.id)
                    for i, (url, action) in enumerate(items):
                        self._submit_one_and_record(prop, token.access_token, url, action, result)
                        if not self._keep_lease(prop, lease, result):
                            break
                        if i < len(items) - 1:
                            self.sleep(self.settings.submit_delay_ms / 1000)

                result.quota_remaining = self.ledger.commit(prop.id, BudgetKind.SUBMISSION, result.succeeded)
        except Exception as e:
            self._fail_run(run, result, e)
            raise

        if result.processed:
            logger.info(f"[{prop.site_url}] Retried {result.processed} queue items, {result.succeeded} submitted")
        self._finish_run(run, result)
        return result

    def _submit_all(
        self, prop: Property, access_token: str, urls: list[str], action: str, result: BatchResult, lease: LockLease,
    ) -> list[str]:
        """Submit URLs in order; returns the ones left unsent if the lock was lost."""
        for i, url in enumerate(urls):
            self._submit_one_and_record(prop, access_token, url, action, result)
            if not self._keep_lease(prop, lease, result):
                return urls[i + 1:]
            if i < len(urls) - 1:
                self.sleep(self.settings.submit_delay_ms / 1000)
        return []

    def _submit_one_and_record(
        self, prop: Property, access_token: str, url: str, action: str, result: BatchResult,
    ) -> None:
        result.processed += 1
        try:
            self.client.submit(access_token, url, action)
        except ExternalCallError as e:
            logger.warning(f"[{prop.site_url}] Submission failed for {url}: {e}")
            item = ItemResult(url=url, success=False, status="failed", error=str(e))
            try:
                self.recorder.record_submission(prop.id, url, action, success=False, error_message=str(e))
            except SQLAlchemyError as db_error:
                self.db.rollback()
                logger.error(f"[{prop.site_url}] Could not record failed submission for {url}: {db_error}")
            result.results.append(item)
            return

        try:
            self.recorder.record_submission(prop.id, url, action, success=True)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[{prop.site_url}] Could not record submission for {url}: {e}")
            result.results.append(ItemResult(url=url, success=False, status="failed", error="persistence failure"))
            return

        result.succeeded += 1
        result.results.append(ItemResult(url=url, success=True, status="submitted"))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_property(self, property_id: uuid.UUID) -> Property:
        prop = self.db.get(Property, property_id)
        if prop is None:
            raise PropertyNotFoundError(f"Property {property_id} not found")
        if not prop.is_active:
            raise PropertyInactiveError(f"Property {property_id} is not active")
        return prop

    def _start_run(self, property_id: uuid.UUID, kind: BudgetKind, trigger: str) -> IndexationRun:
        run = IndexationRun(
            id=uuid.uuid4(),
            property_id=property_id,
            kind=kind.value,
            trigger=trigger,
            started_at=datetime.now(timezone.utc),
            status="running",
        )
        self.db.add(run)
        self.db.commit()
        return run

    def _keep_lease(self, prop: Property, lease: LockLease, result: BatchResult) -> bool:
        if lease.extend():
            return True
        result.interrupted = True
        logger.warning(f"[{prop.site_url}] Lost the property lock, stopping after {result.processed} items")
        return False

    def _finish_run(self, run: IndexationRun, result: BatchResult, status: str = "success") -> None:
        run.status = "interrupted" if result.interrupted else status
        run.finished_at = datetime.now(timezone.utc)
        run.processed = result.processed
        run.succeeded = result.succeeded
        self.db.commit()

    def _fail_run(self, run: IndexationRun, result: BatchResult, error: Exception) -> None:
        self.db.rollback()
        run.status = "failed"
        run.finished_at = datetime.now(timezone.utc)
        run.processed = result.processed
        run.succeeded = result.succeeded
        run.error_message = str(error)[:2000]
        self.db.commit()

    def _snapshot(self, prop: Property) -> None:
        try:
            snapshot_property(self.db, prop.id)
        except Exception as e:
            self.db.rollback()
            logger.warning(f"[{prop.site_url}] History snapshot failed: {e}")
