"""
Tests for mapping URL inspection payloads to verdicts.
"""

from datetime import datetime, timezone

import pytest

from indexer.models.inspection_record import Verdict
from indexer.services.verdicts import InspectionOutcome, map_verdict


def _result(**index_status):
    return {"indexStatusResult": index_status}


@pytest.mark.parametrize(
    "result, expected",
    [
        (_result(verdict="PASS", coverageState="Submitted and indexed"), Verdict.INDEXED),
        (_result(verdict="FAIL", coverageState="Server error (5xx)"), Verdict.ERROR),
        (_result(verdict="NEUTRAL", coverageState="Crawled - currently not indexed"), Verdict.CRAWLED_NOT_INDEXED),
        (_result(verdict="NEUTRAL", coverageState="Discovered - currently not indexed"), Verdict.DISCOVERED_NOT_INDEXED),
        (_result(verdict="NEUTRAL", coverageState="URL is unknown to Google"), Verdict.NOT_INDEXED),
        (_result(verdict="NEUTRAL"), Verdict.NOT_INDEXED),
        (_result(verdict="PASS", indexingState="BLOCKED_BY_META_TAG"), Verdict.NOINDEX),
        (_result(verdict="NEUTRAL", indexingState="BLOCKED_BY_HTTP_HEADER"), Verdict.NOINDEX),
        (_result(verdict="FAIL", robotsTxtState="DISALLOWED"), Verdict.BLOCKED_ROBOTS),
        (_result(verdict="VERDICT_UNSPECIFIED"), Verdict.UNKNOWN),
        ({}, Verdict.UNKNOWN),
        (None, Verdict.UNKNOWN),
    ],
)
def test_map_verdict(result, expected):
    assert map_verdict(result) == expected


class TestVerdictPrecedence:
    """noindex beats robots.txt, which beats the coverage verdict."""

    def test_noindex_wins_over_robots(self):
        result = _result(verdict="FAIL", indexingState="BLOCKED_BY_META_TAG", robotsTxtState="DISALLOWED")
        assert map_verdict(result) == Verdict.NOINDEX

    def test_robots_wins_over_pass(self):
        result = _result(verdict="PASS", robotsTxtState="DISALLOWED")
        assert map_verdict(result) == Verdict.BLOCKED_ROBOTS

    def test_coverage_match_is_case_insensitive(self):
        result = _result(verdict="NEUTRAL", coverageState="CRAWLED - CURRENTLY NOT INDEXED")
        assert map_verdict(result) == Verdict.CRAWLED_NOT_INDEXED


class TestInspectionOutcome:
    """Test diagnostic extraction from an inspection payload."""

    def test_diagnostics_extracted(self):
        outcome = InspectionOutcome.from_result(_result(
            verdict="PASS",
            coverageState="Submitted and indexed",
            lastCrawlTime="2026-10-01T08:30:00Z",
            crawledAs="MOBILE",
            robotsTxtState="ALLOWED",
            indexingState="INDEXING_ALLOWED",
            pageFetchState="SUCCESSFUL",
            googleCanonical="https://example.com/a",
            userCanonical="https://example.com/a/",
        ))

        assert outcome.verdict == Verdict.INDEXED
        assert outcome.diagnostics["coverage_state"] == "Submitted and indexed"
        assert outcome.diagnostics["last_crawl_time"] == datetime(2026, 10, 1, 8, 30, tzinfo=timezone.utc)
        assert outcome.diagnostics["crawled_as"] == "MOBILE"
        assert outcome.diagnostics["google_canonical"] == "https://example.com/a"
        assert outcome.diagnostics["user_canonical"] == "https://example.com/a/"

    def test_bad_crawl_time_is_dropped(self):
        outcome = InspectionOutcome.from_result(_result(verdict="PASS", lastCrawlTime="yesterday"))
        assert outcome.diagnostics["last_crawl_time"] is None

    def test_empty_payload(self):
        outcome = InspectionOutcome.from_result({})
        assert outcome.verdict == Verdict.UNKNOWN
        assert all(value is None for value in outcome.diagnostics.values())
