"""OAuth access tokens for the external APIs, refreshed when close to expiry."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from indexer.config import get_settings
from indexer.models.oauth_credential import OAuthCredential
from indexer.services.errors import TokenError

logger = logging.getLogger(__name__)


@dataclass
class AccessToken:
    access_token: str
    expires_at: datetime


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def needs_refresh(expires_at: datetime, now: datetime, margin_seconds: int) -> bool:
    """True when the token expires within ``margin_seconds`` of ``now``."""
    return now > _aware(expires_at) - timedelta(seconds=margin_seconds)


class TokenProvider:
    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.settings = get_settings()
        self.transport = transport
        self.now = now

    def get_valid_token(self, db: Session, property_id: uuid.UUID) -> AccessToken:
        """Return a usable access token, refreshing and persisting it if needed.

        Raises:
            TokenError: no active credential, or the refresh call failed.
        """
        credential = db.execute(
            select(OAuthCredential).where(OAuthCredential.property_id == property_id)
        ).scalar_one_or_none()

        if credential is None or not credential.is_active:
            raise TokenError(f"No active credential for property {property_id}")

        if not needs_refresh(credential.expires_at, self.now(), self.settings.token_refresh_margin_seconds):
            return AccessToken(credential.access_token, _aware(credential.expires_at))

        data = self._refresh(credential.refresh_token)

        access_token = data["access_token"]
        expires_at = self.now() + timedelta(seconds=int(data.get("expires_in", 3600)))
        credential.access_token = access_token
        credential.expires_at = expires_at
        if data.get("refresh_token"):
            credential.refresh_token = data["refresh_token"]
        if data.get("scope"):
            credential.scope = data["scope"]
        db.commit()

        logger.info(f"Refreshed access token for property {property_id}")
        return AccessToken(access_token, expires_at)

    def _refresh(self, refresh_token: str) -> dict:
        if not self.settings.google_client_id or not self.settings.google_client_secret:
            raise TokenError("google_client_id or google_client_secret not configured")

        try:
            with httpx.Client(timeout=15, transport=self.transport) as client:
                response = client.post(
                    self.settings.google_token_url,
                    data={
                        "grant_type": "refresh_token",
                        "client_id": self.settings.google_client_id,
                        "client_secret": self.settings.google_client_secret,
                        "refresh_token": refresh_token,
                    },
                )
        except httpx.HTTPError as e:
            raise TokenError(f"Token refresh request failed: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("error_description") or response.json().get("error")
            except ValueError:
                detail = None
            raise TokenError(f"Token refresh failed: {detail or response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise TokenError("Token refresh returned a non-JSON body") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise TokenError("Token refresh response has no access_token")
        return data
