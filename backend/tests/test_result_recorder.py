"""
Tests for idempotent persistence of inspection and submission outcomes.
"""

from datetime import datetime, timedelta, timezone

from indexer.models.inspection_record import InspectionRecord, Verdict
from indexer.models.queue_item import QueueItem
from indexer.services.result_recorder import ResultRecorder
from indexer.services.verdicts import InspectionOutcome

from conftest import add_entries

T0 = datetime(2026, 10, 1, tzinfo=timezone.utc)


class Clock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class TestRecordInspection:
    def test_second_write_replaces_first(self, db, prop):
        entry = add_entries(db, prop, 1)[0]
        clock = Clock(T0)
        recorder = ResultRecorder(db, now=clock)

        recorder.record_inspection(prop.id, entry.id, entry.url, InspectionOutcome(Verdict.NOT_INDEXED))
        clock.advance(hours=1)
        recorder.record_inspection(prop.id, entry.id, entry.url, InspectionOutcome(
            Verdict.INDEXED, {"coverage_state": "Submitted and indexed"},
        ))

        records = db.query(InspectionRecord).filter_by(property_id=prop.id).all()
        assert len(records) == 1
        assert records[0].verdict == Verdict.INDEXED.value
        assert records[0].coverage_state == "Submitted and indexed"
        assert records[0].inspected_at.replace(tzinfo=timezone.utc) == T0 + timedelta(hours=1)


class TestRecordSubmission:
    def test_attempts_counted_per_url_and_action(self, db, prop):
        recorder = ResultRecorder(db)
        url = "https://example.com/a"

        recorder.record_submission(prop.id, url, "URL_UPDATED", success=False, error_message="HTTP 429")
        recorder.record_submission(prop.id, url, "URL_UPDATED", success=True)
        recorder.record_submission(prop.id, url, "URL_DELETED", success=True)

        items = {i.action: i for i in db.query(QueueItem).filter_by(property_id=prop.id).all()}
        assert items["URL_UPDATED"].attempts == 2
        assert items["URL_UPDATED"].status == "submitted"
        assert items["URL_UPDATED"].error_message is None
        assert items["URL_UPDATED"].submitted_at is not None
        assert items["URL_DELETED"].attempts == 1

    def test_failure_keeps_error(self, db, prop):
        ResultRecorder(db).record_submission(prop.id, "https://example.com/a", "URL_UPDATED", success=False)

        item = db.query(QueueItem).one()
        assert item.status == "failed"
        assert item.error_message == "Submission failed"
        assert item.submitted_at is None


class TestEnqueue:
    def test_enqueue_is_idempotent(self, db, prop):
        recorder = ResultRecorder(db)
        urls = ["https://example.com/a", "https://example.com/b"]

        assert recorder.enqueue_submissions(prop.id, urls, "URL_UPDATED") == 2
        recorder.enqueue_submissions(prop.id, urls, "URL_UPDATED")

        items = db.query(QueueItem).filter_by(property_id=prop.id).all()
        assert len(items) == 2
        assert {i.status for i in items} == {"pending"}
        assert {i.attempts for i in items} == {0}

    def test_requeue_keeps_attempts(self, db, prop):
        recorder = ResultRecorder(db)
        url = "https://example.com/a"
        recorder.record_submission(prop.id, url, "URL_UPDATED", success=False, error_message="HTTP 500")

        recorder.enqueue_submissions(prop.id, [url], "URL_UPDATED")

        db.expire_all()
        item = db.query(QueueItem).one()
        assert item.status == "pending"
        assert item.attempts == 1
        assert item.error_message is None
