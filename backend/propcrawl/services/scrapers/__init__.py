"""Search-page crawl pipeline: fetch, extract, normalize, enrich."""

from propcrawl.services.scrapers.enricher import DetailEnricher
from propcrawl.services.scrapers.extractor import detect_block, extract_data_island
from propcrawl.services.scrapers.fetcher import Fetcher
from propcrawl.services.scrapers.normalizer import estimate_unit_count, normalize

__all__ = [
    "Fetcher",
    "extract_data_island",
    "detect_block",
    "normalize",
    "estimate_unit_count",
    "DetailEnricher",
]
