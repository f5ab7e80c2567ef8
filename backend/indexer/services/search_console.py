"""Client for the URL Inspection and Indexing APIs.

Every call is one synchronous request with its own timeout. Non-2xx responses,
timeouts and unparseable bodies all raise ExternalCallError so the caller can
fail a single item and move on.
"""

import logging
from typing import Any

import httpx

from indexer.config import get_settings
from indexer.services.errors import ExternalCallError

logger = logging.getLogger(__name__)

SUBMIT_ACTIONS = ("URL_UPDATED", "URL_DELETED")


class SearchConsoleClient:
    def __init__(self, transport: httpx.BaseTransport | None = None):
        self.settings = get_settings()
        self.transport = transport

    def inspect(self, access_token: str, url: str, property_url: str) -> dict[str, Any]:
        """Inspect one URL and return the ``inspectionResult`` payload."""
        data = self._post(
            self.settings.inspection_api_url,
            access_token,
            {
                "inspectionUrl": url,
                "siteUrl": property_url,
                "languageCode": self.settings.inspection_language_code,
            },
            timeout=self.settings.inspect_timeout_seconds,
        )
        result = data.get("inspectionResult")
        if not isinstance(result, dict):
            raise ExternalCallError(f"Inspection response for {url} has no inspectionResult")
        return result

    def submit(self, access_token: str, url: str, action: str = "URL_UPDATED") -> dict[str, Any]:
        """Publish a URL notification; returns the notification metadata."""
        if action not in SUBMIT_ACTIONS:
            raise ValueError(f"Unsupported action: {action}")
        return self._post(
            self.settings.indexing_api_url,
            access_token,
            {"url": url, "type": action},
            timeout=self.settings.submit_timeout_seconds,
        )

    def _post(self, endpoint: str, access_token: str, payload: dict, timeout: float) -> dict[str, Any]:
        try:
            with httpx.Client(timeout=timeout, transport=self.transport) as client:
                response = client.post(
                    endpoint,
                    json=payload,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.TimeoutException as e:
            raise ExternalCallError(f"Request to {endpoint} timed out") from e
        except httpx.HTTPError as e:
            raise ExternalCallError(f"Request to {endpoint} failed: {e}") from e

        if response.status_code >= 300:
            raise ExternalCallError(_error_message(response), status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalCallError(f"Malformed JSON from {endpoint}", status_code=response.status_code) from e
        if not isinstance(data, dict):
            raise ExternalCallError(f"Unexpected payload from {endpoint}", status_code=response.status_code)
        return data


def _error_message(response: httpx.Response) -> str:
    try:
        message = response.json().get("error", {}).get("message")
    except (ValueError, AttributeError):
        message = None
    return f"HTTP {response.status_code}: {message or response.reason_phrase}"
