from __future__ import annotations


class ArchiverError(Exception):
    """Base class for archiver failures."""


class InvalidURLError(ArchiverError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid URL provided: {url!r}")


class FetchError(ArchiverError):
    """A GET that did not produce a 2xx payload.

    ``kind`` is one of ``network``, ``timeout`` or ``http-status``. A
    non-``transient`` error (a host the resolver rejects) is never retried.
    """

    def __init__(self, url: str, kind: str, message: str = "",
                 status_code: int | None = None, transient: bool = True):
        self.url = url
        self.transient = transient
        self.kind = kind
        self.status_code = status_code
        detail = message or (f"HTTP {status_code}" if status_code else kind)
        super().__init__(f"{kind} error for {url}: {detail}")

    @property
    def retryable(self) -> bool:
        if not self.transient:
            return False
        if self.kind in ("network", "timeout"):
            return True
        return self.status_code is not None and (self.status_code == 429 or self.status_code >= 500)


class FilenameCollisionError(ArchiverError):
    def __init__(self, path: str, claimed_by: str, url: str):
        self.path = path
        self.claimed_by = claimed_by
        self.url = url
        super().__init__(f"{path} already holds {claimed_by}, refusing {url}")


class StorageError(ArchiverError):
    pass


class CrawlCancelledError(ArchiverError):
    pass


class ArchiveCreationError(ArchiverError):
    pass


class ArchiveNotFound(ArchiverError):
    pass
