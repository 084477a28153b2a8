"""
Fetcher: one HTTP GET with timeout, identifying User-Agent and bounded retry.

Returns the raw payload and content type, or raises FetchError classified as
``network``, ``timeout`` or ``http-status``.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

from webarchive.config import Settings
from webarchive.errors import FetchError

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    url: str
    content: bytes
    content_type: str
    status_code: int = 200
    encoding: str | None = None

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", errors="replace")


def build_client(settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.request_timeout,
        follow_redirects=True,
        headers={"User-Agent": settings.user_agent},
        transport=transport,
    )


class Fetcher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        max_concurrent: int = 5,
        retries: int = 0,
        backoff: float = 0.5,
    ):
        self.client = client
        self.retries = max(retries, 0)
        self.backoff = backoff
        self._slots = asyncio.Semaphore(max(max_concurrent, 1))

    async def fetch(self, url: str) -> FetchResult:
        attempt = 0
        while True:
            try:
                async with self._slots:
                    return await self._get(url)
            except FetchError as exc:
                if not exc.retryable or attempt >= self.retries:
                    raise
                delay = self.backoff * (2 ** attempt)
                attempt += 1
                logger.debug("Retry %d for %s after %.1fs (%s)", attempt, url, delay, exc)
                await asyncio.sleep(delay)

    async def _get(self, url: str) -> FetchResult:
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FetchError(url, "timeout", str(exc) or type(exc).__name__) from exc
        except httpx.HTTPStatusError as exc:
            raise FetchError(url, "http-status", status_code=exc.response.status_code) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise FetchError(url, "network", str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            # malformed hosts the resolver rejects (IDNA/UnicodeError)
            raise FetchError(url, "network", str(exc) or type(exc).__name__, transient=False) from exc

        return FetchResult(
            url=url,
            content=response.content,
            content_type=response.headers.get("content-type", ""),
            status_code=response.status_code,
            encoding=response.encoding,
        )
