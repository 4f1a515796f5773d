"""Exceptions raised by the crawl pipeline and the read API."""

from __future__ import annotations

from enum import StrEnum


class ScraperError(Exception):
    """Base exception for crawl pipeline errors."""

    pass


class FetchError(ScraperError):
    """Transport-level failure: DNS, connection, timeout or undecodable body."""

    def __init__(self, url: str, cause: BaseException | str) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Request to {url} failed: {cause}")


class ExtractionFailureReason(StrEnum):
    NOT_FOUND = "not_found"
    PARSE_ERROR = "parse_error"
    BLOCKED = "blocked"


class ExtractionFailure(ScraperError):
    """The page carried no usable data island."""

    def __init__(self, reason: ExtractionFailureReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        message = f"Data island extraction failed: {reason.value}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class EnrichmentSkip(ScraperError):
    """A detail page was fetched but held no property object with photos."""

    pass


class CrawlFailedError(ScraperError):
    """The search page could not be fetched or parsed; the run produced nothing."""

    pass


class PropertyNotFoundError(Exception):
    pass


class PathTraversalError(Exception):
    pass
