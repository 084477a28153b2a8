from __future__ import annotations

import logging

from webarchive.errors import FetchError, FilenameCollisionError
from webarchive.models import CATEGORY_DIRS, AssetRecord
from webarchive.services.fetcher import Fetcher
from webarchive.storage.base import ArchiveStorage
from webarchive.utils import asset_filename

logger = logging.getLogger(__name__)


class AssetDownloader:
    """Fetches one referenced resource into its category directory.

    Fetch failures become a failed AssetRecord and never reach the caller;
    StorageError does, since it fails the whole archive.
    """

    def __init__(self, fetcher: Fetcher, storage: ArchiveStorage):
        self.fetcher = fetcher
        self.storage = storage

    async def download(self, url: str, category: str) -> AssetRecord:
        filename = asset_filename(url)
        try:
            fetched = await self.fetcher.fetch(url)
            local_path = await self.storage.write_file(CATEGORY_DIRS[category], filename, fetched.content, url)
        except (FetchError, FilenameCollisionError) as exc:
            logger.warning("Failed to download %s: %s", url, exc)
            return AssetRecord(category=category, source_url=url, status="failed", error=str(exc))

        return AssetRecord(
            category=category,
            source_url=url,
            status="success",
            local_path=local_path,
            size_bytes=len(fetched.content),
            content_type=fetched.content_type,
        )
