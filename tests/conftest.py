from __future__ import annotations

import asyncio

import httpx
import pytest

from webarchive.config import Settings
from webarchive.services.fetcher import Fetcher, build_client
from webarchive.storage.local import LocalArchiveStorage


class FakeSite:
    """Serves canned responses by exact URL and records every request made.

    Setting ``delay`` makes every response take that long, which lets tests
    observe concurrency (``peak``) and interrupt requests mid-flight.
    """

    def __init__(self):
        self.routes: dict[str, tuple[int, str, bytes]] = {}
        self.requested: list[str] = []
        self.errors: dict[str, Exception] = {}
        self.delay = 0.0
        self.in_flight = 0
        self.peak = 0

    def page(self, url: str, body: str, status: int = 200):
        self.routes[url] = (status, "text/html; charset=utf-8", body.encode("utf-8"))

    def asset(self, url: str, body: bytes, content_type: str = "application/octet-stream", status: int = 200):
        self.routes[url] = (status, content_type, body)

    def fail(self, url: str, exc: Exception):
        self.errors[url] = exc

    def count(self, url: str) -> int:
        return self.requested.count(url)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requested.append(url)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if url in self.errors:
                raise self.errors[url]
            status, content_type, body = self.routes.get(url, (404, "text/plain", b"not found"))
            return httpx.Response(status, headers={"content-type": content_type}, content=body)
        finally:
            self.in_flight -= 1

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def links_page(*hrefs: str, extra: str = "") -> str:
    anchors = "".join(f'<a href="{h}">{h}</a>' for h in hrefs)
    return f"<html><head><title>t</title></head><body>{anchors}{extra}</body></html>"


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        base_storage_dir=str(tmp_path / "archives"),
        fetch_retries=0,
        retry_backoff=0,
        max_concurrent_requests=4,
    )


@pytest.fixture
def client(site, test_settings) -> httpx.AsyncClient:
    return build_client(test_settings, transport=site.transport())


@pytest.fixture
def fetcher(client) -> Fetcher:
    return Fetcher(client, max_concurrent=4)


@pytest.fixture
def storage(tmp_path) -> LocalArchiveStorage:
    return LocalArchiveStorage(tmp_path / "archive")
