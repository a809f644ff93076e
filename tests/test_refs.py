"""Tests for cross-tool reference extraction."""

from __future__ import annotations

import re

import pytest

from story_clustering.extraction.refs import (
    DEFAULT_PATTERNS,
    RefExtractor,
    RefPattern,
    extract_refs,
    extract_refs_from_multiple,
    extract_refs_from_object,
)


class TestExtractRefs:
    """Single-text extraction per grammar."""

    def test_jira_key(self):
        assert extract_refs("Fixed bug in AUTH-123") == ["AUTH-123"]

    def test_lowercase_jira_key_ignored(self):
        assert extract_refs("fixed bug in auth-123") == []

    @pytest.mark.parametrize("text", ["UTF-8 decoding", "SHA-256 digest", "ISO-8601 dates", "CVE-2024-1234", "RFC-7231"])
    def test_non_ticket_prefixes_ignored(self, text):
        assert extract_refs(text) == []

    def test_pr_url_and_repo_ref_normalize_to_same_ref(self):
        text = "Merged https://github.com/acme/repo/pull/99, see also acme/repo#99"
        assert extract_refs(text) == ["acme/repo#99"]

    def test_issue_url(self):
        assert extract_refs("https://github.com/acme/api/issues/7") == ["acme/api#7"]

    def test_local_ref(self):
        assert extract_refs("Fixes #12") == ["local#12"]

    def test_repo_ref_does_not_also_yield_local_ref(self):
        assert extract_refs("acme/backend#42") == ["acme/backend#42"]

    def test_html_entity_is_not_a_local_ref(self):
        assert extract_refs("it&#39;s done") == []

    def test_confluence_page_url(self):
        url = "https://acme.atlassian.net/wiki/spaces/ENG/pages/987654/Design"
        assert extract_refs(url) == ["confluence:987654"]

    def test_confluence_page_id_url(self):
        url = "https://acme.atlassian.net/wiki/pages/viewpage.action?pageId=5551"
        assert extract_refs(url) == ["confluence:5551"]

    def test_figma_url(self):
        assert extract_refs("https://www.figma.com/file/ABC123XYZ/Design") == ["figma:ABC123XYZ"]

    def test_google_meet(self):
        assert extract_refs("Join: https://meet.google.com/abc-defg-hij") == ["gmeet:abc-defg-hij"]

    def test_first_occurrence_order(self):
        text = "See PROJ-2, then acme/api#5 and #7"
        assert extract_refs(text) == ["PROJ-2", "acme/api#5", "local#7"]

    def test_duplicates_removed(self):
        assert extract_refs("AUTH-1 AUTH-2 AUTH-1") == ["AUTH-1", "AUTH-2"]

    @pytest.mark.parametrize("text", [None, "", "nothing to see here"])
    def test_empty_results(self, text):
        assert extract_refs(text) == []

    def test_non_string_input(self):
        assert extract_refs(42) == []  # type: ignore[arg-type]

    def test_idempotent(self):
        """Calling twice on the same text gives the same result."""
        text = "AUTH-9 acme/web#3 #4 https://github.com/acme/web/pull/3"
        assert extract_refs(text) == extract_refs(text)


class TestMultipleAndObject:
    def test_multiple_deduplicates_across_fields(self):
        assert extract_refs_from_multiple(["AUTH-1", None, "AUTH-1 and #3"]) == ["AUTH-1", "local#3"]

    def test_object_walks_nested_string_leaves(self):
        obj = {
            "body": {"comments": ["See AUTH-9"]},
            "count": 5,
            "link": "acme/x#1",
            "flag": None,
        }
        assert extract_refs_from_object(obj) == ["AUTH-9", "acme/x#1"]

    def test_object_ignores_keys(self):
        assert extract_refs_from_object({"AUTH-1": "plain"}) == []

    @pytest.mark.parametrize("obj", [None, 5, [], {}])
    def test_object_degenerate_input(self, obj):
        assert extract_refs_from_object(obj) == []


class TestValidate:
    def test_default_patterns_pass(self):
        RefExtractor().validate()

    def test_no_patterns_raises(self):
        with pytest.raises(ValueError, match="no registered patterns"):
            RefExtractor(patterns=[]).validate()

    def test_failing_examples_all_reported(self):
        broken = [
            RefPattern(
                id="broken-a",
                tool_type="test",
                confidence="low",
                regex=re.compile(r"X-(\d+)"),
                normalize=lambda m: f"x:{m.group(1)}",
                examples=(("no match here", "x:1"),),
            ),
            RefPattern(
                id="broken-b",
                tool_type="test",
                confidence="low",
                regex=re.compile(r"Y-(\d+)"),
                normalize=lambda m: f"y:{m.group(1)}",
                examples=(("Y-2", "y:3"),),
            ),
        ]
        with pytest.raises(ValueError) as exc_info:
            RefExtractor(patterns=broken).validate()
        assert "broken-a" in str(exc_info.value)
        assert "broken-b" in str(exc_info.value)

    def test_failing_normalizer_does_not_break_extraction(self):
        def explode(match):
            raise RuntimeError("boom")

        patterns = [
            RefPattern(
                id="explodes",
                tool_type="test",
                confidence="low",
                regex=re.compile(r"AUTH"),
                normalize=explode,
            ),
            *DEFAULT_PATTERNS,
        ]
        assert RefExtractor(patterns).extract_refs("AUTH-5") == ["AUTH-5"]
