from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse, Response

from propcrawl.services.storage_service import StorageManager, get_storage
from propcrawl.utils.exceptions import PathTraversalError

router = APIRouter(prefix="/uploads")

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}
CACHE_CONTROL = "public, max-age=31536000"


def _not_modified_since(header: str | None, mtime: datetime) -> bool:
    if not header:
        return False
    try:
        since = parsedate_to_datetime(header)
    except (TypeError, ValueError):
        return False
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    # HTTP dates carry whole seconds
    return since >= mtime.replace(microsecond=0)


@router.get("/{file_path:path}")
def serve_upload(
    file_path: str,
    request: Request,
    storage: StorageManager = Depends(get_storage),
) -> Response:
    try:
        path = storage.resolve_upload_path(file_path)
    except PathTraversalError as e:
        raise HTTPException(status_code=403, detail="Access denied") from e
    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")

    mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    headers = {
        "Cache-Control": CACHE_CONTROL,
        "Last-Modified": format_datetime(mtime.replace(microsecond=0), usegmt=True),
    }
    if _not_modified_since(request.headers.get("if-modified-since"), mtime):
        return Response(status_code=304, headers=headers)

    media_type = CONTENT_TYPES.get(path.suffix.lower(), "application/octet-stream")
    return FileResponse(path, media_type=media_type, headers=headers)
