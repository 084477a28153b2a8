import asyncio

from webarchive.services.downloader import AssetDownloader
from webarchive.storage.local import LocalArchiveStorage


def test_download_writes_payload_under_category_dir(site, fetcher, storage):
    site.asset("https://example.com/js/app.js", b"let x = 1;", "application/javascript")

    record = asyncio.run(AssetDownloader(fetcher, storage).download("https://example.com/js/app.js", "js"))

    assert record.status == "success"
    assert record.local_path == "js/_js_app.js"
    assert record.size_bytes == len(b"let x = 1;")
    assert record.content_type == "application/javascript"
    assert (storage.folder / "js" / "_js_app.js").read_bytes() == b"let x = 1;"


def test_download_failure_is_recorded_not_raised(site, fetcher, storage):
    record = asyncio.run(AssetDownloader(fetcher, storage).download("https://example.com/nope.css", "css"))

    assert record.status == "failed"
    assert record.local_path is None
    assert "404" in record.error


def test_colliding_names_overwrite_by_default(site, fetcher, storage):
    site.asset("https://example.com/a/b.css", b"first", "text/css")
    site.asset("https://example.com/a_b.css", b"second", "text/css")
    downloader = AssetDownloader(fetcher, storage)

    async def run():
        await downloader.download("https://example.com/a/b.css", "css")
        return await downloader.download("https://example.com/a_b.css", "css")

    record = asyncio.run(run())

    assert record.status == "success"
    assert (storage.folder / "css" / "_a_b.css").read_bytes() == b"second"


def test_colliding_names_rejected_under_error_policy(site, fetcher, tmp_path):
    site.asset("https://example.com/a/b.css", b"first", "text/css")
    site.asset("https://example.com/a_b.css", b"second", "text/css")
    storage = LocalArchiveStorage(tmp_path / "archive", collisions="error")
    downloader = AssetDownloader(fetcher, storage)

    async def run():
        first = await downloader.download("https://example.com/a/b.css", "css")
        again = await downloader.download("https://example.com/a/b.css", "css")
        second = await downloader.download("https://example.com/a_b.css", "css")
        return first, again, second

    first, again, second = asyncio.run(run())

    assert first.status == "success"
    assert again.status == "success"
    assert second.status == "failed"
    assert (storage.folder / "css" / "_a_b.css").read_bytes() == b"first"
