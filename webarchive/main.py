from __future__ import annotations

import logging
import mimetypes
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from webarchive.config import settings
from webarchive.errors import ArchiveCreationError, ArchiveNotFound, InvalidURLError, StorageError
from webarchive.services.archiver import ArchiveRegistry
from webarchive.utils import configure_logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")


class ArchiveRequest(BaseModel):
    url: str
    max_depth: int | None = Field(default=None, ge=0, le=5)


def _registry(request: Request) -> ArchiveRegistry:
    return request.app.state.registry


@router.get("/health")
async def health():
    return {"status": "OK", "timestamp": datetime.now(UTC).isoformat()}


@router.get("/archives")
async def list_archives(request: Request):
    return [a.to_dict() for a in _registry(request).list_archives()]


@router.post("/archives")
async def create_archive(body: ArchiveRequest, request: Request):
    try:
        archive = await _registry(request).start_archive(body.url, max_depth=body.max_depth)
    except InvalidURLError:
        raise HTTPException(status_code=400, detail="Invalid URL provided")
    except ArchiveCreationError:
        raise HTTPException(status_code=500, detail="Failed to create archive")
    return archive.to_dict()


@router.get("/archives/{archive_id}")
async def get_archive(archive_id: str, request: Request):
    try:
        return _registry(request).get_archive(archive_id).to_dict()
    except ArchiveNotFound:
        raise HTTPException(status_code=404, detail="Archive not found")


@router.get("/archives/{archive_id}/pages/{filename}", response_class=HTMLResponse)
async def get_page(archive_id: str, filename: str, request: Request):
    try:
        content = await _registry(request).get_page(archive_id, filename)
    except ArchiveNotFound:
        raise HTTPException(status_code=404, detail="Page not found")
    return HTMLResponse(content)


@router.get("/archives/{archive_id}/{category}/{filename}")
async def get_asset(archive_id: str, category: str, filename: str, request: Request):
    try:
        content = await _registry(request).get_asset(archive_id, category, filename)
    except ArchiveNotFound:
        raise HTTPException(status_code=404, detail="Asset not found")
    return Response(content, media_type=mimetypes.guess_type(filename)[0] or "application/octet-stream")


@router.delete("/archives/{archive_id}")
async def delete_archive(archive_id: str, request: Request):
    try:
        await _registry(request).delete_archive(archive_id)
    except ArchiveNotFound:
        raise HTTPException(status_code=404, detail="Archive not found")
    except StorageError:
        logger.exception("Failed to delete archive %s", archive_id)
        raise HTTPException(status_code=500, detail="Failed to delete archive")
    return {"message": "Archive deleted successfully"}


def create_app(registry: ArchiveRegistry | None = None) -> FastAPI:
    configure_logging(settings.log_level)
    registry = registry or ArchiveRegistry(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await registry.load()
        logger.info("Archives will be stored in: %s", registry.root.resolve())
        yield
        await registry.aclose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.registry = registry
    app.include_router(router)
    app.mount("/archives", StaticFiles(directory=registry.root, check_dir=False), name="archives")
    return app


app = create_app()
