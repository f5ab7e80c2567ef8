"""
Tests for indexing submissions and the retry queue.
"""

from datetime import datetime, timedelta, timezone

import pytest

from indexer.models.oauth_credential import OAuthCredential
from indexer.models.queue_item import QueueItem
from indexer.services.errors import TokenError
from indexer.services.quota_ledger import BudgetKind, QuotaLedger
from indexer.services.result_recorder import ResultRecorder

from conftest import set_quota

T0 = datetime(2026, 10, 1, tzinfo=timezone.utc)


def _urls(count, prefix="page"):
    return [f"https://example.com/{prefix}-{i:03d}" for i in range(count)]


class TestRunSubmission:
    def test_excess_over_budget_is_queued(self, db, prop, google, make_runner):
        """500 URLs against a 200/day budget: 200 submitted, 300 pending."""
        urls = _urls(500)

        result = make_runner(db).run_submission(prop.id, urls)

        assert result.succeeded == 200
        assert result.queued == 300
        assert google.submitted == urls[:200]
        assert result.quota_remaining == 0
        assert db.query(QueueItem).filter_by(status="submitted").count() == 200
        assert db.query(QueueItem).filter_by(status="pending").count() == 300
        assert QuotaLedger(db).used(prop.id, BudgetKind.SUBMISSION) == 200

    def test_exhausted_budget_queues_everything(self, db, prop, google, make_runner):
        set_quota(db, prop, submission_count=200)

        result = make_runner(db).run_submission(prop.id, _urls(3))

        assert result.quota_exhausted
        assert result.queued == 3
        assert google.submitted == []

    def test_duplicates_submitted_once(self, db, prop, google, make_runner):
        url = "https://example.com/a"

        result = make_runner(db).run_submission(prop.id, [url, url, url])

        assert result.processed == 1
        assert google.submitted == [url]

    def test_failed_submission_recorded(self, db, prop, google, make_runner):
        urls = _urls(3)
        google.failures[urls[1]] = 429

        result = make_runner(db).run_submission(prop.id, urls, action="URL_DELETED")

        assert result.succeeded == 2
        item = db.query(QueueItem).filter_by(url=urls[1]).one()
        assert item.status == "failed"
        assert item.action == "URL_DELETED"
        assert "429" in item.error_message
        assert QuotaLedger(db).used(prop.id, BudgetKind.SUBMISSION) == 2

    def test_token_failure_commits_nothing(self, db, prop, google, make_runner):
        google.token_status = 400
        credential = db.query(OAuthCredential).one()
        credential.expires_at = T0
        db.commit()

        with pytest.raises(TokenError):
            make_runner(db).run_submission(prop.id, _urls(2))

        assert google.submitted == []
        assert db.query(QueueItem).count() == 0
        assert QuotaLedger(db).used(prop.id, BudgetKind.SUBMISSION) == 0


class TestProcessQueue:
    def _enqueue(self, db, prop, urls, start=T0):
        for i, url in enumerate(urls):
            ResultRecorder(db, now=lambda i=i: start + timedelta(minutes=i)).enqueue_submissions(
                prop.id, [url], "URL_UPDATED"
            )

    def test_oldest_first_within_budget(self, db, prop, google, make_runner):
        urls = _urls(3)
        self._enqueue(db, prop, list(reversed(urls)))
        set_quota(db, prop, submission_count=198)

        result = make_runner(db).process_queue(prop.id)

        assert result.processed == 2
        assert google.submitted == [urls[2], urls[1]]
        assert db.query(QueueItem).filter_by(status="pending").one().url == urls[0]

    def test_exhausted_attempts_not_retried(self, db, prop, google, make_runner):
        recorder = ResultRecorder(db)
        retryable, exhausted = "https://example.com/retry", "https://example.com/give-up"
        recorder.record_submission(prop.id, retryable, "URL_UPDATED", success=False)
        for _ in range(5):
            recorder.record_submission(prop.id, exhausted, "URL_UPDATED", success=False)

        result = make_runner(db).process_queue(prop.id)

        assert google.submitted == [retryable]
        assert result.succeeded == 1

    def test_submitted_items_left_alone(self, db, prop, google, make_runner):
        ResultRecorder(db).record_submission(prop.id, "https://example.com/done", "URL_UPDATED", success=True)

        result = make_runner(db).process_queue(prop.id)

        assert result.processed == 0
        assert google.submitted == []

    def test_empty_budget(self, db, prop, google, make_runner):
        self._enqueue(db, prop, _urls(2))
        set_quota(db, prop, submission_count=200)

        result = make_runner(db).process_queue(prop.id)

        assert result.quota_exhausted
        assert google.submitted == []
