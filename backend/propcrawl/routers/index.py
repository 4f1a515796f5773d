from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from propcrawl.config import settings
from propcrawl.services.storage_service import StorageManager, get_storage

router = APIRouter()

RECENT_ACTIVITY_LIMIT = 5


@router.get("/")
def index(storage: StorageManager = Depends(get_storage)) -> dict:
    prefix = settings.api_prefix
    return {
        "success": True,
        "message": settings.app_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "endpoints": {
            "root": "GET /",
            "health": f"GET {prefix}/health",
            "scrape": f"POST {prefix}/scrape - Trigger a crawl of the search page",
            "properties": f"GET {prefix}/props - List properties (pagination and filters)",
            "property_detail": f"GET {prefix}/props/{{id}} - Single property",
            "images": "GET /uploads/properties/{id}/{filename} - Property images",
            "stats": f"GET {prefix}/stats - Collection statistics",
            "runs": f"GET {prefix}/runs - Recent crawl runs",
        },
        "query_params": {
            "properties": {
                "page": "Page number (default: 1)",
                "page_size": "Items per page (default: 20, max: 100)",
                "bedrooms": "Minimum bedrooms",
                "bathrooms": "Minimum bathrooms",
                "price_min": "Minimum price",
                "price_max": "Maximum price",
                "city": "City contains (case-insensitive)",
                "state": "State equals (case-insensitive)",
            }
        },
        "storage": storage.get_storage_stats(),
        "recent_activity": storage.list_recent_properties(RECENT_ACTIVITY_LIMIT),
    }
