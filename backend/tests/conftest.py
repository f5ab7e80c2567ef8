import json
import os
import shutil
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest


# Point the app at a throwaway SQLite file before importing any indexer module.
_SESSION_DIR = Path(tempfile.mkdtemp(prefix="indexer_pytest_"))

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_SESSION_DIR / 'indexer.db'}"
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("INSPECT_DELAY_MS", "0")
os.environ.setdefault("SUBMIT_DELAY_MS", "0")
os.environ.setdefault("PROPERTY_LOCK_WAIT_SECONDS", "0")

from indexer.models.base import Base, SyncSessionLocal, sync_engine  # noqa: E402
from indexer.models.catalog_entry import CatalogEntry  # noqa: E402
from indexer.models.indexation_run import IndexationRun  # noqa: E402,F401
from indexer.models.indexation_settings import IndexationSettings  # noqa: E402,F401
from indexer.models.indexation_snapshot import IndexationSnapshot  # noqa: E402,F401
from indexer.models.inspection_record import InspectionRecord  # noqa: E402,F401
from indexer.models.oauth_credential import OAuthCredential  # noqa: E402
from indexer.models.property import Property  # noqa: E402
from indexer.models.queue_item import QueueItem  # noqa: E402,F401
from indexer.models.quota_state import QuotaState  # noqa: E402
from indexer.services.batch_runner import BatchRunner  # noqa: E402
from indexer.services.property_lock import PropertyLock  # noqa: E402
from indexer.services.quota_ledger import utc_today  # noqa: E402
from indexer.services.search_console import SearchConsoleClient  # noqa: E402
from indexer.services.token_provider import TokenProvider  # noqa: E402


def pytest_sessionfinish(session, exitstatus):
    """Remove the SQLite directory after the test session."""
    shutil.rmtree(_SESSION_DIR, ignore_errors=True)


# =============================================================================
# Test doubles
# =============================================================================


class FakeRedis:
    """In-memory stand-in for the Redis commands PropertyLock uses.

    Keys honour ``px`` against ``self.now``, which tests can move forward.
    ``eval`` runs the lock's release and extend scripts by recognising them.
    """

    def __init__(self):
        self.store = {}
        self.expires = {}
        self.now = 0.0
        self.extensions = 0

    def advance(self, seconds):
        self.now += seconds

    def _purge(self, key):
        if key in self.expires and self.expires[key] <= self.now:
            self.store.pop(key, None)
            self.expires.pop(key, None)

    def set(self, key, value, nx=False, px=None):
        self._purge(key)
        if nx and key in self.store:
            return None
        self.store[key] = value
        if px is not None:
            self.expires[key] = self.now + px / 1000
        return True

    def get(self, key):
        self._purge(key)
        return self.store.get(key)

    def delete(self, key):
        self.expires.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0

    def eval(self, script, numkeys, key, token, *args):
        if self.get(key) != token:
            return 0
        if "PEXPIRE" in script:
            self.extensions += 1
            self.expires[key] = self.now + int(args[0]) / 1000
            return 1
        return self.delete(key)


INDEXED_RESULT = {
    "indexStatusResult": {
        "verdict": "PASS",
        "coverageState": "Submitted and indexed",
        "robotsTxtState": "ALLOWED",
        "indexingState": "INDEXING_ALLOWED",
        "pageFetchState": "SUCCESSFUL",
        "lastCrawlTime": "2026-10-01T08:30:00Z",
        "crawledAs": "MOBILE",
        "googleCanonical": "https://example.com/",
        "userCanonical": "https://example.com/",
    }
}


class FakeGoogle:
    """Serves the token, inspection and indexing endpoints from canned data.

    ``results`` maps a URL to the ``inspectionResult`` returned for it;
    ``failures`` maps a URL to an HTTP status returned instead.
    """

    def __init__(self):
        self.results = {}
        self.failures = {}
        self.token_status = 200
        self.inspected = []
        self.submitted = []
        self.token_requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "oauth2.googleapis.com":
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            self.token_requests.append(form)
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "fresh-token", "expires_in": 3600})

        body = json.loads(request.content)
        if host == "searchconsole.googleapis.com":
            url = body["inspectionUrl"]
            self.inspected.append(url)
            if url in self.failures:
                return httpx.Response(self.failures[url], json={"error": {"message": "backend error"}})
            return httpx.Response(200, json={"inspectionResult": self.results.get(url, INDEXED_RESULT)})

        if host == "indexing.googleapis.com":
            url = body["url"]
            self.submitted.append(url)
            if url in self.failures:
                return httpx.Response(self.failures[url], json={"error": {"message": "quota exceeded"}})
            return httpx.Response(200, json={"urlNotificationMetadata": {"url": url}})

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(sync_engine)
    yield
    Base.metadata.drop_all(sync_engine)


@pytest.fixture
def db():
    session = SyncSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def google():
    return FakeGoogle()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def prop(db):
    """An active property with a credential that is valid for another hour."""
    p = Property(id=uuid.uuid4(), site_url="sc-domain:example.com", tenant_id=uuid.uuid4(), is_active=True)
    db.add(p)
    db.flush()
    db.add(OAuthCredential(
        property_id=p.id,
        access_token="cached-token",
        refresh_token="refresh-token",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        is_active=True,
    ))
    db.commit()
    return p


@pytest.fixture
def make_runner(google, fake_redis):
    def _make(db, **kwargs):
        kwargs.setdefault("client", SearchConsoleClient(transport=google.transport))
        kwargs.setdefault("token_provider", TokenProvider(transport=google.transport))
        kwargs.setdefault("lock", PropertyLock(client=fake_redis, wait=0))
        kwargs.setdefault("sleep", lambda seconds: None)
        return BatchRunner(db, **kwargs)

    return _make


def add_entries(db, prop, count, prefix="page", start=None, lastmod=None):
    """Add ``count`` catalog entries first seen one minute apart, oldest first."""
    start = start or datetime(2026, 1, 1, tzinfo=timezone.utc)
    entries = []
    for i in range(count):
        entry = CatalogEntry(
            id=uuid.uuid4(),
            property_id=prop.id,
            url=f"https://example.com/{prefix}-{i:03d}",
            lastmod=lastmod,
            is_active=True,
            first_seen_at=start + timedelta(minutes=i),
            last_seen_at=start + timedelta(minutes=i),
        )
        db.add(entry)
        entries.append(entry)
    db.commit()
    return entries


def add_record(db, entry, inspected_at, verdict="indexed"):
    db.add(InspectionRecord(
        id=uuid.uuid4(),
        catalog_entry_id=entry.id,
        property_id=entry.property_id,
        url=entry.url,
        verdict=verdict,
        inspected_at=inspected_at,
    ))
    db.commit()


def set_quota(db, prop, inspection_count=0, submission_count=0, day=None):
    day = day or utc_today()
    db.add(QuotaState(
        property_id=prop.id,
        inspection_count=inspection_count,
        inspection_date=day,
        submission_count=submission_count,
        submission_date=day,
    ))
    db.commit()
