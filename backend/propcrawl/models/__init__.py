from propcrawl.models.crawl_run import CrawlRun
from propcrawl.models.property import Property, PropertyImage

__all__ = [
    "Property",
    "PropertyImage",
    "CrawlRun",
]
