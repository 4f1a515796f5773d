"""Upload-root bookkeeping: directory setup, usage reporting, safe path resolution."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from propcrawl.config import settings
from propcrawl.utils.exceptions import PathTraversalError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
PROPERTIES_DIR = "properties"


def format_bytes(size: int) -> str:
    """1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    index = 0
    value = float(size)
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


class StorageManager:
    def __init__(
        self,
        upload_dir: str | None = None,
        *,
        max_storage_mb: int | None = None,
        warning_ratio: float | None = None,
    ) -> None:
        self.root = Path(upload_dir or settings.upload_dir).resolve()
        self.max_bytes = (max_storage_mb or settings.max_storage_mb) * 1024 * 1024
        self.warning_ratio = (
            warning_ratio if warning_ratio is not None else settings.storage_warning_ratio
        )

    @property
    def properties_root(self) -> Path:
        return self.root / PROPERTIES_DIR

    def ensure_directories(self) -> None:
        self.properties_root.mkdir(parents=True, exist_ok=True)
        logger.info("Upload directory ready at %s", self.root)

    def get_storage_stats(self) -> dict:
        total_bytes = 0
        total_files = 0
        images = 0
        if self.root.is_dir():
            for dirpath, _dirnames, filenames in os.walk(self.root):
                for name in filenames:
                    path = Path(dirpath) / name
                    try:
                        total_bytes += path.stat().st_size
                    except OSError:
                        logger.warning("Could not stat %s", path)
                        continue
                    total_files += 1
                    if path.suffix.lower() in IMAGE_EXTENSIONS:
                        images += 1

        properties_count = 0
        if self.properties_root.is_dir():
            properties_count = sum(1 for p in self.properties_root.iterdir() if p.is_dir())

        return {
            "total_size": format_bytes(total_bytes),
            "total_size_bytes": total_bytes,
            "total_files": total_files,
            "properties_count": properties_count,
            "images_count": images,
        }

    def get_disk_usage_warning(self, stats: dict | None = None) -> dict:
        stats = stats or self.get_storage_stats()
        used = stats["total_size_bytes"]
        ratio = used / self.max_bytes if self.max_bytes else 0.0
        if ratio < self.warning_ratio:
            return {"warning": False, "message": None, "usage_ratio": round(ratio, 4)}
        message = (
            f"Upload storage at {ratio:.0%} of {format_bytes(self.max_bytes)} "
            f"({stats['total_size']} used)"
        )
        logger.warning("%s", message)
        return {"warning": True, "message": message, "usage_ratio": round(ratio, 4)}

    def list_recent_properties(self, limit: int = 10) -> list[dict]:
        """Property image directories, most recently modified first."""
        if not self.properties_root.is_dir():
            return []
        entries = []
        for directory in self.properties_root.iterdir():
            if not directory.is_dir():
                continue
            stat = directory.stat()
            entries.append(
                {
                    "property_id": directory.name,
                    "created_at": datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc),
                    "modified_at": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                }
            )
        entries.sort(key=lambda e: e["modified_at"], reverse=True)
        return entries[:limit]

    def resolve_upload_path(self, relative_path: str) -> Path:
        """Map a request path onto the upload root.

        Raises PathTraversalError if the result would land outside the root,
        whether through ``..`` segments, an absolute path or a symlink.
        """
        candidate = (self.root / relative_path.lstrip("/")).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise PathTraversalError(f"Path escapes upload directory: {relative_path}")
        return candidate


def get_storage() -> StorageManager:
    return StorageManager()
