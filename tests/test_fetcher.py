import asyncio

import httpx
import pytest

from webarchive.errors import FetchError
from webarchive.services.fetcher import Fetcher, build_client


def test_fetch_returns_payload_and_content_type(site, fetcher):
    site.asset("https://example.com/logo.png", b"\x89PNG", "image/png")

    result = asyncio.run(fetcher.fetch("https://example.com/logo.png"))

    assert result.content == b"\x89PNG"
    assert result.content_type == "image/png"


def test_fetch_sends_user_agent(test_settings):
    seen = {}

    def handler(request):
        seen["ua"] = request.headers["user-agent"]
        return httpx.Response(200, text="ok")

    client = build_client(test_settings, transport=httpx.MockTransport(handler))
    asyncio.run(Fetcher(client).fetch("https://example.com/"))

    assert seen["ua"] == "Web-Archiver/1.0"


def test_http_status_error(site, fetcher):
    with pytest.raises(FetchError) as info:
        asyncio.run(fetcher.fetch("https://example.com/missing"))

    assert info.value.kind == "http-status"
    assert info.value.status_code == 404


def test_timeout_error(site, fetcher):
    url = "https://example.com/slow"
    site.fail(url, httpx.ReadTimeout("timed out"))

    with pytest.raises(FetchError) as info:
        asyncio.run(fetcher.fetch(url))

    assert info.value.kind == "timeout"


def test_network_error(site, fetcher):
    url = "https://example.com/down"
    site.fail(url, httpx.ConnectError("connection refused"))

    with pytest.raises(FetchError) as info:
        asyncio.run(fetcher.fetch(url))

    assert info.value.kind == "network"


def test_retries_server_errors_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request.url)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, text="back")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    fetcher = Fetcher(client, retries=2, backoff=0)

    result = asyncio.run(fetcher.fetch("https://example.com/"))

    assert result.content == b"back"
    assert len(calls) == 3


def test_does_not_retry_client_errors(site, client):
    fetcher = Fetcher(client, retries=3, backoff=0)

    with pytest.raises(FetchError):
        asyncio.run(fetcher.fetch("https://example.com/gone"))

    assert site.count("https://example.com/gone") == 1


def test_gives_up_after_retry_budget(site, client):
    url = "https://example.com/flaky"
    site.fail(url, httpx.ConnectError("reset"))
    fetcher = Fetcher(client, retries=2, backoff=0)

    with pytest.raises(FetchError):
        asyncio.run(fetcher.fetch(url))

    assert site.count(url) == 3


def test_malformed_host_is_a_network_error_without_retry(site, client):
    # what the resolver raises for hosts such as ``xn--``
    url = "http://xn--/x.png"
    site.fail(url, UnicodeError("label empty or too long"))
    fetcher = Fetcher(client, retries=2, backoff=0)

    with pytest.raises(FetchError) as info:
        asyncio.run(fetcher.fetch(url))

    assert info.value.kind == "network"
    assert not info.value.retryable
    assert site.count(url) == 1
