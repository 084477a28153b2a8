from __future__ import annotations

from abc import ABC, abstractmethod


class ArchiveStorage(ABC):
    """File tree backing one archive: ``pages/``, ``css/``, ``js/``, ``images/`` and ``metadata.json``."""

    name: str

    @abstractmethod
    async def write_file(self, directory: str, filename: str, data: bytes, source_url: str) -> str:
        """Store ``data`` and return its path relative to the archive root."""
        raise NotImplementedError

    @abstractmethod
    def read_file(self, directory: str, filename: str) -> bytes:
        raise NotImplementedError

    @abstractmethod
    async def write_metadata(self, metadata: dict) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self) -> None:
        raise NotImplementedError
