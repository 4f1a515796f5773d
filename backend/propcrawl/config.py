from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Multi-Unit Listing Scraper"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api"

    database_url: str = "sqlite:///./properties.db"

    upload_dir: str = "./uploads"
    max_storage_mb: int = 1024
    storage_warning_ratio: float = 0.8
    cors_origins: str = "*"

    # Target site and market
    site_origin: str = "https://www.zillow.com"
    search_url: str = (
        "https://www.zillow.com/homes/for_sale/Cincinnati-OH/multi-family_type/"
    )
    target_city: str = "Cincinnati"
    target_state: str = "OH"
    default_property_type: str = "Multi-Family"

    # Request identity pool, one entry drawn per request
    user_agents: list[str] = [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    ]

    # Crawl politeness and limits
    request_delay_ms: int = 2000
    fetch_timeout_seconds: float = 30.0
    search_fetch_retries: int = 2
    max_listings_per_run: int = 8
    max_images_per_property: int = 5

    enrich_details: bool = True
    # What to do with a listing whose detail page can't be used:
    # "skip" drops it, "shallow" keeps the search-result-only record.
    detail_failure_policy: Literal["skip", "shallow"] = "skip"
    # What to do when the search page itself can't be fetched or parsed:
    # "fail" raises, "placeholder" returns the built-in dataset flagged degraded.
    fallback_policy: Literal["fail", "placeholder"] = "fail"

    placeholder_image_url: str = (
        "https://via.placeholder.com/400x300.png?text=Property+{id}"
    )

    model_config = {"env_file": ".env"}


settings = Settings()
