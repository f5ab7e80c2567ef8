"""Classification of URL inspection payloads into indexation verdicts."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from indexer.models.inspection_record import Verdict

_BLOCKED_INDEXING_STATES = {"BLOCKED_BY_META_TAG", "BLOCKED_BY_HTTP_HEADER"}


def map_verdict(result: dict[str, Any] | None) -> Verdict:
    """Map an ``inspectionResult`` payload to a Verdict.

    Precedence: noindex tag/header, robots.txt disallow, then the coverage
    verdict (PASS/FAIL/NEUTRAL, with NEUTRAL refined by the coverage text).
    Anything else is ``unknown``.
    """
    idx = (result or {}).get("indexStatusResult")
    if not isinstance(idx, dict):
        return Verdict.UNKNOWN

    if idx.get("indexingState") in _BLOCKED_INDEXING_STATES:
        return Verdict.NOINDEX
    if idx.get("robotsTxtState") == "DISALLOWED":
        return Verdict.BLOCKED_ROBOTS

    verdict = idx.get("verdict")
    if verdict == "PASS":
        return Verdict.INDEXED
    if verdict == "FAIL":
        return Verdict.ERROR
    if verdict == "NEUTRAL":
        coverage = (idx.get("coverageState") or "").lower()
        if "crawled" in coverage:
            return Verdict.CRAWLED_NOT_INDEXED
        if "discovered" in coverage:
            return Verdict.DISCOVERED_NOT_INDEXED
        return Verdict.NOT_INDEXED
    return Verdict.UNKNOWN


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class InspectionOutcome:
    """Verdict plus the diagnostic fields persisted on an InspectionRecord."""

    verdict: Verdict
    diagnostics: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_result(cls, result: dict[str, Any] | None) -> "InspectionOutcome":
        idx = (result or {}).get("indexStatusResult") or {}
        return cls(
            verdict=map_verdict(result),
            diagnostics={
                "coverage_state": idx.get("coverageState"),
                "last_crawl_time": _parse_timestamp(idx.get("lastCrawlTime")),
                "crawled_as": idx.get("crawledAs"),
                "robots_txt_state": idx.get("robotsTxtState"),
                "indexing_state": idx.get("indexingState"),
                "page_fetch_state": idx.get("pageFetchState"),
                "google_canonical": idx.get("googleCanonical"),
                "user_canonical": idx.get("userCanonical"),
            },
        )
