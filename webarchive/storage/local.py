from __future__ import annotations

import asyncio
import json
import logging
import shutil
from pathlib import Path

from webarchive.errors import ArchiveNotFound, FilenameCollisionError, StorageError
from webarchive.storage.base import ArchiveStorage
from webarchive.utils import is_safe_filename

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"


class LocalArchiveStorage(ArchiveStorage):
    name = "local"

    def __init__(self, folder: Path, collisions: str = "overwrite"):
        self.folder = Path(folder)
        self.collisions = collisions
        # relative path -> source URL that wrote it during this run
        self._claims: dict[str, str] = {}

    def _claim(self, rel_path: str, source_url: str) -> None:
        owner = self._claims.get(rel_path)
        if owner is not None and owner != source_url:
            if self.collisions == "error":
                raise FilenameCollisionError(rel_path, owner, source_url)
            logger.debug("Overwriting %s (%s -> %s)", rel_path, owner, source_url)
        self._claims[rel_path] = source_url

    async def write_file(self, directory: str, filename: str, data: bytes, source_url: str) -> str:
        rel_path = f"{directory}/{filename}"
        self._claim(rel_path, source_url)
        target = self.folder / directory / filename
        try:
            await asyncio.to_thread(_write_bytes, target, data)
        except OSError as exc:
            raise StorageError(f"Cannot write {target}: {exc}") from exc
        logger.debug("Stored %s (%d bytes)", rel_path, len(data))
        return rel_path

    def read_file(self, directory: str, filename: str) -> bytes:
        if not is_safe_filename(directory) or not is_safe_filename(filename):
            raise ArchiveNotFound(f"{directory}/{filename}")
        path = self.folder / directory / filename
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise ArchiveNotFound(f"{directory}/{filename}") from exc

    async def write_metadata(self, metadata: dict) -> None:
        payload = json.dumps(metadata, indent=2, ensure_ascii=False).encode("utf-8")
        try:
            await asyncio.to_thread(_write_bytes, self.folder / METADATA_FILE, payload)
        except OSError as exc:
            raise StorageError(f"Cannot write metadata for {self.folder.name}: {exc}") from exc

    def read_metadata(self) -> dict:
        return json.loads((self.folder / METADATA_FILE).read_text(encoding="utf-8"))

    def remove(self) -> None:
        try:
            shutil.rmtree(self.folder)
        except FileNotFoundError:
            logger.info("Archive folder already gone: %s", self.folder)
        except OSError as exc:
            raise StorageError(f"Cannot remove {self.folder}: {exc}") from exc


def _write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
