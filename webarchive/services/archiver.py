"""
Archive registry: runs crawls and owns the resulting archives.

Each archive lives under ``<base_storage_dir>/<id>/`` with ``metadata.json``,
``pages/`` and one directory per asset category. The in-memory index is kept
most-recent-first and is rebuilt from the metadata files by ``load()``.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path

import httpx

from webarchive.config import Settings, settings as default_settings
from webarchive.errors import (
    ArchiveCreationError,
    ArchiveNotFound,
    CrawlCancelledError,
    InvalidURLError,
    StorageError,
)
from webarchive.models import CATEGORY_DIRS, PAGES_DIR, Archive
from webarchive.services.crawler import Crawler
from webarchive.services.fetcher import Fetcher, build_client
from webarchive.storage.local import METADATA_FILE, LocalArchiveStorage
from webarchive.utils import is_valid_url

logger = logging.getLogger(__name__)


class ArchiveRegistry:
    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or default_settings
        self.root = Path(self.settings.base_storage_dir)
        self.client = client or build_client(self.settings)
        self.fetcher = Fetcher(
            self.client,
            max_concurrent=self.settings.max_concurrent_requests,
            retries=self.settings.fetch_retries,
            backoff=self.settings.retry_backoff,
        )
        self._archives: list[Archive] = []
        self._lock = asyncio.Lock()
        # archive id -> (cancel, finished) for every crawl still running
        self._running: dict[str, tuple[asyncio.Event, asyncio.Event]] = {}

    def _storage(self, archive_id: str) -> LocalArchiveStorage:
        return LocalArchiveStorage(self.root / archive_id, collisions=self.settings.filename_collisions)

    def _scan(self) -> list[Archive]:
        found: list[Archive] = []
        if not self.root.exists():
            return found
        for folder in self.root.iterdir():
            metadata_path = folder / METADATA_FILE
            if not metadata_path.is_file():
                continue
            try:
                found.append(Archive.from_dict(json.loads(metadata_path.read_text(encoding="utf-8"))))
            except (OSError, ValueError, KeyError, TypeError) as exc:
                logger.warning("Skipping unreadable metadata %s: %s", metadata_path, exc)
        found.sort(key=lambda a: a.created_at, reverse=True)
        return found

    async def load(self) -> int:
        """Rebuild the index from metadata files already on disk."""
        found = await asyncio.to_thread(self._scan)
        async with self._lock:
            known = {a.id for a in self._archives}
            self._archives.extend(a for a in found if a.id not in known)
            self._archives.sort(key=lambda a: a.created_at, reverse=True)
        logger.info("Loaded %d archives from %s", len(found), self.root.resolve())
        return len(found)

    async def start_archive(
        self,
        url: str,
        max_depth: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Archive:
        if not url or not is_valid_url(url):
            raise InvalidURLError(url)

        archive_id = uuid.uuid4().hex
        created_at = datetime.now(UTC)
        storage = self._storage(archive_id)
        cancel = cancel or asyncio.Event()
        crawler = Crawler(
            self.fetcher,
            storage,
            max_depth=self.settings.max_crawl_depth if max_depth is None else max_depth,
            cancel=cancel,
        )

        finished = asyncio.Event()
        self._running[archive_id] = (cancel, finished)
        try:
            storage.folder.mkdir(parents=True, exist_ok=True)
            result = await asyncio.wait_for(crawler.crawl(url), timeout=self.settings.crawl_timeout)
            archive = Archive.from_crawl(archive_id, url, created_at, result)
            await storage.write_metadata(archive.to_dict())
        except (StorageError, OSError, CrawlCancelledError, TimeoutError) as exc:
            logger.exception("Archive creation failed for %s", url)
            await self._discard(storage)
            raise ArchiveCreationError(f"Failed to create archive for {url}: {exc}") from exc
        except BaseException:
            # task cancellation or an unexpected bug: never leave a half-built tree
            await self._discard(storage)
            raise
        finally:
            self._running.pop(archive_id, None)
            finished.set()

        if not archive.pages:
            logger.warning("Archive %s for %s captured no pages", archive_id, url)

        async with self._lock:
            self._archives.insert(0, archive)
        logger.info(
            "Archive %s created for %s: %d pages, %d assets, %d bytes",
            archive_id, url, len(archive.pages), len(archive.assets), archive.total_size_bytes,
        )
        return archive

    async def _discard(self, storage: LocalArchiveStorage) -> None:
        try:
            await asyncio.to_thread(storage.remove)
        except StorageError as exc:
            logger.error("Could not clean up %s: %s", storage.folder, exc)

    def list_archives(self) -> list[Archive]:
        return list(self._archives)

    def get_archive(self, archive_id: str) -> Archive:
        for archive in self._archives:
            if archive.id == archive_id:
                return archive
        raise ArchiveNotFound(archive_id)

    async def get_page(self, archive_id: str, filename: str) -> bytes:
        self.get_archive(archive_id)
        return await asyncio.to_thread(self._storage(archive_id).read_file, PAGES_DIR, filename)

    async def get_asset(self, archive_id: str, category_dir: str, filename: str) -> bytes:
        self.get_archive(archive_id)
        if category_dir not in CATEGORY_DIRS.values():
            raise ArchiveNotFound(f"{category_dir}/{filename}")
        return await asyncio.to_thread(self._storage(archive_id).read_file, category_dir, filename)

    async def delete_archive(self, archive_id: str) -> None:
        async with self._lock:
            archive = self.get_archive(archive_id)
            await asyncio.to_thread(self._storage(archive_id).remove)
            self._archives.remove(archive)
        logger.info("Archive %s deleted", archive_id)

    def in_progress(self) -> list[str]:
        return list(self._running)

    async def aclose(self) -> None:
        """Cancel running crawls, wait for them to clean up, then close the client."""
        running = list(self._running.values())
        for cancel, _ in running:
            cancel.set()
        if running:
            logger.info("Waiting for %d running crawls to stop", len(running))
            await asyncio.gather(*(finished.wait() for _, finished in running))
        await self.client.aclose()
