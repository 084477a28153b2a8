"""
Crawl orchestrator: walks the same-host link graph from a root URL.

Depth-limited pre-order traversal, one page at a time. A LIFO work-list of
(url, depth) pairs replaces recursion: children are pushed in reverse so the
first link and its whole subtree finish before the second link starts, which
is the order a recursive walk would produce.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from webarchive.errors import CrawlCancelledError, FetchError, FilenameCollisionError
from webarchive.models import PAGES_DIR, CrawlResult, PageRecord
from webarchive.services.downloader import AssetDownloader
from webarchive.services.fetcher import Fetcher
from webarchive.services.processor import ContentProcessor
from webarchive.storage.base import ArchiveStorage
from webarchive.utils import page_filename

logger = logging.getLogger(__name__)

MAX_LINKS_PER_PAGE = 10


class Crawler:
    def __init__(
        self,
        fetcher: Fetcher,
        storage: ArchiveStorage,
        max_depth: int = 2,
        cancel: asyncio.Event | None = None,
    ):
        self.fetcher = fetcher
        self.storage = storage
        self.max_depth = max_depth
        self.cancel = cancel
        self.processor = ContentProcessor(AssetDownloader(fetcher, storage))
        self.visited: set[str] = set()

    async def crawl(self, root_url: str) -> CrawlResult:
        result = CrawlResult()
        self.visited = set()
        pending: list[tuple[str, int]] = [(root_url, 0)]

        while pending:
            if self.cancel is not None and self.cancel.is_set():
                raise CrawlCancelledError(f"Crawl of {root_url} cancelled")

            url, depth = pending.pop()
            if url in self.visited or depth > self.max_depth:
                continue
            self.visited.add(url)

            node = await self._archive_page(url, depth)
            if node is None:
                continue
            page, assets, links = node
            result.pages.append(page)
            result.assets.extend(assets)

            if depth < self.max_depth:
                children = links[:MAX_LINKS_PER_PAGE]
                pending.extend((link, depth + 1) for link in reversed(children))

        logger.info(
            "Crawl of %s done: %d pages, %d assets",
            root_url, len(result.pages), len(result.assets),
        )
        return result

    async def _archive_page(self, url: str, depth: int):
        logger.info("Archiving page: %s (depth: %d)", url, depth)
        try:
            fetched = await self.fetcher.fetch(url)
        except FetchError as exc:
            logger.warning("Failed to archive %s: %s", url, exc)
            return None

        processed = await self.processor.process(fetched.text, url)
        body = processed.html.encode("utf-8")
        filename = page_filename(url)
        try:
            await self.storage.write_file(PAGES_DIR, filename, body, url)
        except FilenameCollisionError as exc:
            logger.warning("Skipping page %s: %s", url, exc)
            return None

        page = PageRecord(
            url=url,
            filename=filename,
            size_bytes=len(body),
            fetched_at=datetime.now(UTC),
        )
        return page, processed.assets, processed.links
