from fastapi import APIRouter

from propcrawl.config import settings

router = APIRouter()


@router.get("/health")
def health_check() -> dict:
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "target": f"{settings.target_city}, {settings.target_state}",
    }
