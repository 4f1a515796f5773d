"""Locate and parse the JSON data island embedded in server-rendered HTML."""

from __future__ import annotations

import json
import logging
from typing import Any

from bs4 import BeautifulSoup

from propcrawl.utils.exceptions import ExtractionFailure, ExtractionFailureReason

logger = logging.getLogger(__name__)

DATA_ISLAND_ID = "__NEXT_DATA__"

# Substrings that mark a script as carrying the bootstrap state when the
# element id lookup fails.
SCRIPT_MARKERS = ("__NEXT_DATA__", "searchPageState", "listResults", "gdpClientCache")

# Lower-cased substrings of anti-bot interstitials and client-side redirects.
BLOCK_MARKERS = (
    "captcha",
    "access denied",
    "access to this page has been denied",
    "request blocked",
    "you have been blocked",
    "are you a human",
    "window.location.replace",
    'http-equiv="refresh"',
)


def detect_block(html: str) -> str | None:
    """Return the first block marker found in ``html``, if any."""
    lowered = html.lower()
    for marker in BLOCK_MARKERS:
        if marker in lowered:
            return marker
    return None


def _decode_script_json(text: str) -> Any:
    """Decode a script body that is either bare JSON or ``x = {...};``."""
    text = text.strip()
    if text.startswith(("{", "[")):
        return json.loads(text)
    start = text.find("{")
    if start == -1:
        raise ValueError("no JSON object in script")
    obj, _ = json.JSONDecoder().raw_decode(text[start:])
    return obj


def _find_island_text(soup: BeautifulSoup) -> str | None:
    tag = soup.find("script", id=DATA_ISLAND_ID)
    if tag is not None:
        return tag.string or tag.get_text()

    logger.info("No #%s script, scanning script contents for markers", DATA_ISLAND_ID)
    for script in soup.find_all("script"):
        content = script.string or script.get_text() or ""
        if any(marker in content for marker in SCRIPT_MARKERS):
            return content
    return None


def extract_data_island(html: str) -> dict[str, Any]:
    """Return the page's bootstrap JSON object.

    Raises:
        ExtractionFailure: ``blocked`` when the page looks like an anti-bot or
            redirect page (checked first, even if a valid island is present),
            ``not_found`` when no island script exists, ``parse_error`` when
            its content is not a JSON object.
    """
    marker = detect_block(html)
    if marker:
        logger.warning("Block page detected (marker %r, %d chars)", marker, len(html))
        raise ExtractionFailure(ExtractionFailureReason.BLOCKED, marker)

    soup = BeautifulSoup(html, "html.parser")
    text = _find_island_text(soup)
    if not text or not text.strip():
        logger.warning(
            "No data island among %d script tags (%d chars of HTML)",
            len(soup.find_all("script")),
            len(html),
        )
        raise ExtractionFailure(ExtractionFailureReason.NOT_FOUND)

    try:
        data = _decode_script_json(text)
    except ValueError as e:
        logger.warning("Data island is not valid JSON: %s", e)
        raise ExtractionFailure(ExtractionFailureReason.PARSE_ERROR, str(e)) from e

    if not isinstance(data, dict):
        raise ExtractionFailure(
            ExtractionFailureReason.PARSE_ERROR,
            f"expected a JSON object, got {type(data).__name__}",
        )
    return data
