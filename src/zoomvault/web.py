"""
HTTP query surface over the recordings catalogue (FastAPI)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.responses import FileResponse, JSONResponse

from zoomvault import __version__
from zoomvault.exceptions import ZoomVaultError
from zoomvault.models import Recording
from zoomvault.store import RecordStore

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "wmv": "video/x-ms-wmv",
    "flv": "video/x-flv",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "wav": "audio/wav",
    "pdf": "application/pdf",
    "txt": "text/plain",
}


def content_type_for(path: Path) -> str:
    return CONTENT_TYPES.get(path.suffix.lstrip(".").lower(), "application/octet-stream")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _timestamp(value: float) -> str:
    return datetime.fromtimestamp(value, UTC).isoformat()


def create_app(store: RecordStore) -> FastAPI:
    """Build the web app around an initialized store"""
    app = FastAPI(title="zoomvault", version=__version__)

    async def _lookup(raw_id: str) -> Recording | JSONResponse:
        try:
            record_id = int(raw_id)
        except ValueError:
            return _error(400, "Invalid ID")
        record = await store.get_recording(record_id)
        if record is None:
            return _error(404, "Recording not found")
        return record

    async def _artifact(raw_id: str) -> Path | JSONResponse:
        record = await _lookup(raw_id)
        if isinstance(record, JSONResponse):
            return record
        if not record.file_path:
            return _error(404, "File not available")
        path = Path(record.file_path)
        if not await asyncio.to_thread(path.is_file):
            logger.warning(f"File for recording {record.id} is missing: {path}")
            return _error(404, "File not found or inaccessible")
        return path

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}

    @app.get("/recordings", response_model=None)
    async def list_recordings(query: str | None = None) -> Any:
        try:
            if query:
                records = await store.search(query)
            else:
                records = await store.list_recordings()
        except ZoomVaultError as e:
            logger.error(f"Error fetching recordings: {e}")
            return _error(500, "Failed to fetch recordings")
        return [record.to_dict() for record in records]

    @app.get("/recordings/{record_id}", response_model=None)
    async def get_recording(record_id: str) -> Any:
        try:
            record = await _lookup(record_id)
        except ZoomVaultError as e:
            logger.error(f"Error fetching recording {record_id}: {e}")
            return _error(500, "Failed to fetch recording")
        if isinstance(record, JSONResponse):
            return record
        return record.to_dict()

    @app.get("/download/{record_id}", response_model=None)
    async def download(record_id: str) -> Any:
        try:
            path = await _artifact(record_id)
        except ZoomVaultError as e:
            logger.error(f"Error downloading recording {record_id}: {e}")
            return _error(500, "Failed to download recording")
        if isinstance(path, JSONResponse):
            return path
        return FileResponse(
            path,
            media_type=content_type_for(path),
            filename=path.name,
            content_disposition_type="attachment",
        )

    @app.get("/file-info/{record_id}", response_model=None)
    async def file_info(record_id: str) -> Any:
        try:
            path = await _artifact(record_id)
        except ZoomVaultError as e:
            logger.error(f"Error fetching file info for {record_id}: {e}")
            return _error(500, "Failed to fetch file info")
        if isinstance(path, JSONResponse):
            return path
        stat = await asyncio.to_thread(path.stat)
        return {
            "size": stat.st_size,
            "created": _timestamp(stat.st_ctime),
            "modified": _timestamp(stat.st_mtime),
            "path": str(path),
        }

    return app
