"""Tests for data-island extraction and block-page detection."""

from __future__ import annotations

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from propcrawl.services.scrapers.extractor import (  # noqa: E402
    detect_block,
    extract_data_island,
)
from propcrawl.utils.exceptions import (  # noqa: E402
    ExtractionFailure,
    ExtractionFailureReason,
)

from pages import BLOCK_PAGE, page_with_island, search_page, stub  # noqa: E402


class TestExtractDataIsland:
    def test_reads_script_by_id(self):
        data = extract_data_island(search_page([stub("1")]))
        results = data["props"]["pageProps"]["searchPageState"]["cat1"]["searchResults"]
        assert results["listResults"][0]["zpid"] == "1"

    def test_falls_back_to_marker_scan(self):
        html = (
            "<html><body>"
            "<script>var analytics = true;</script>"
            '<script>window.__STATE__ = {"searchPageState": {"cat1": {}}};</script>'
            "</body></html>"
        )
        assert extract_data_island(html) == {"searchPageState": {"cat1": {}}}

    def test_missing_island_is_not_found(self):
        html = "<html><body><script>var x = 1;</script></body></html>"
        with pytest.raises(ExtractionFailure) as exc_info:
            extract_data_island(html)
        assert exc_info.value.reason == ExtractionFailureReason.NOT_FOUND

    def test_empty_island_is_not_found(self):
        html = '<html><body><script id="__NEXT_DATA__">   </script></body></html>'
        with pytest.raises(ExtractionFailure) as exc_info:
            extract_data_island(html)
        assert exc_info.value.reason == ExtractionFailureReason.NOT_FOUND

    def test_malformed_json_is_parse_error(self):
        html = '<html><body><script id="__NEXT_DATA__">{"props": {</script></body></html>'
        with pytest.raises(ExtractionFailure) as exc_info:
            extract_data_island(html)
        assert exc_info.value.reason == ExtractionFailureReason.PARSE_ERROR

    def test_non_object_json_is_parse_error(self):
        with pytest.raises(ExtractionFailure) as exc_info:
            extract_data_island(page_with_island([1, 2, 3]))
        assert exc_info.value.reason == ExtractionFailureReason.PARSE_ERROR

    def test_block_page_is_blocked(self):
        with pytest.raises(ExtractionFailure) as exc_info:
            extract_data_island(BLOCK_PAGE)
        assert exc_info.value.reason == ExtractionFailureReason.BLOCKED

    def test_block_marker_wins_over_valid_island(self):
        html = search_page([stub("1")]).replace(
            "</body>", '<div class="captcha-container"></div></body>'
        )
        with pytest.raises(ExtractionFailure) as exc_info:
            extract_data_island(html)
        assert exc_info.value.reason == ExtractionFailureReason.BLOCKED

    def test_client_side_redirect_is_blocked(self):
        html = '<html><head><meta http-equiv="refresh" content="0;url=/"></head></html>'
        with pytest.raises(ExtractionFailure) as exc_info:
            extract_data_island(html)
        assert exc_info.value.reason == ExtractionFailureReason.BLOCKED


class TestDetectBlock:
    def test_case_insensitive(self):
        assert detect_block("<h1>ACCESS DENIED</h1>") == "access denied"

    def test_clean_page(self):
        assert detect_block(search_page([])) is None
