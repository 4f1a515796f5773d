from __future__ import annotations

import logging
from collections.abc import AsyncGenerator  # noqa: TC003
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from propcrawl.config import settings
from propcrawl.database import create_tables
from propcrawl.routers import (
    health,
    index,
    properties,
    runs,
    scrape,
    stats,
    uploads,
)
from propcrawl.services.storage_service import StorageManager

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Import models so Base.metadata knows about them
    import propcrawl.models  # noqa: F401

    create_tables()
    StorageManager().ensure_directories()
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(index.router, tags=["index"])
app.include_router(uploads.router, tags=["uploads"])
app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(scrape.router, prefix=settings.api_prefix, tags=["scrape"])
app.include_router(properties.router, prefix=settings.api_prefix, tags=["properties"])
app.include_router(stats.router, prefix=settings.api_prefix, tags=["stats"])
app.include_router(runs.router, prefix=settings.api_prefix, tags=["runs"])
