"""
Tests for access-token reuse and refresh.
"""

from datetime import datetime, timedelta, timezone

import pytest

from indexer.models.oauth_credential import OAuthCredential
from indexer.services.errors import TokenError
from indexer.services.token_provider import TokenProvider, needs_refresh

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class TestNeedsRefresh:
    def test_within_margin(self):
        assert needs_refresh(NOW + timedelta(minutes=4), NOW, 300)

    def test_outside_margin(self):
        assert not needs_refresh(NOW + timedelta(minutes=6), NOW, 300)

    def test_naive_expiry_treated_as_utc(self):
        assert needs_refresh((NOW - timedelta(minutes=1)).replace(tzinfo=None), NOW, 300)


class TestGetValidToken:
    def _credential(self, db, prop):
        return db.query(OAuthCredential).filter_by(property_id=prop.id).one()

    def test_cached_token_reused(self, db, prop, google):
        token = TokenProvider(transport=google.transport).get_valid_token(db, prop.id)

        assert token.access_token == "cached-token"
        assert google.token_requests == []

    def test_expiring_token_refreshed_and_persisted(self, db, prop, google):
        credential = self._credential(db, prop)
        credential.expires_at = NOW + timedelta(minutes=2)
        db.commit()

        token = TokenProvider(transport=google.transport, now=lambda: NOW).get_valid_token(db, prop.id)

        assert token.access_token == "fresh-token"
        assert token.expires_at == NOW + timedelta(hours=1)
        assert google.token_requests[0]["grant_type"] == "refresh_token"
        assert google.token_requests[0]["refresh_token"] == "refresh-token"
        db.expire_all()
        assert self._credential(db, prop).access_token == "fresh-token"

    def test_rejected_refresh(self, db, prop, google):
        credential = self._credential(db, prop)
        credential.expires_at = NOW - timedelta(hours=1)
        db.commit()
        google.token_status = 400

        with pytest.raises(TokenError, match="invalid_grant"):
            TokenProvider(transport=google.transport, now=lambda: NOW).get_valid_token(db, prop.id)

    def test_inactive_credential(self, db, prop, google):
        self._credential(db, prop).is_active = False
        db.commit()

        with pytest.raises(TokenError):
            TokenProvider(transport=google.transport).get_valid_token(db, prop.id)
