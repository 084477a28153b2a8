"""
Content processor: parses one page, downloads its stylesheets, scripts and
images, rewrites successful references to the stored copies and collects the
same-host links to crawl next.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from webarchive.models import AssetRecord
from webarchive.services.downloader import AssetDownloader
from webarchive.utils import is_same_host

logger = logging.getLogger(__name__)

SKIPPED_LINK_PREFIXES = ("#", "mailto:", "tel:")

# (category, css selector, attribute)
ASSET_SELECTORS = (
    ("css", 'link[rel~="stylesheet"][href]', "href"),
    ("js", "script[src]", "src"),
    ("image", "img[src]", "src"),
)


@dataclass
class ProcessedPage:
    html: str
    assets: list[AssetRecord] = field(default_factory=list)
    links: list[str] = field(default_factory=list)


class ContentProcessor:
    def __init__(self, downloader: AssetDownloader):
        self.downloader = downloader

    async def process(self, html: str, page_url: str) -> ProcessedPage:
        soup = BeautifulSoup(html, "lxml")
        links = self._collect_links(soup, page_url)

        # One download per (category, url); every tag referencing it is rewritten.
        references: dict[tuple[str, str], list] = {}
        unresolved: list[AssetRecord] = []
        for category, selector, attr in ASSET_SELECTORS:
            for tag in soup.select(selector):
                raw = (tag.get(attr) or "").strip()
                if not raw or raw.lower().startswith("data:"):
                    continue
                try:
                    abs_url = urljoin(page_url, raw)
                except ValueError as exc:
                    logger.warning("Unresolvable %s reference %r on %s: %s", category, raw, page_url, exc)
                    unresolved.append(AssetRecord(category=category, source_url=raw, status="failed", error=str(exc)))
                    continue
                references.setdefault((category, abs_url), []).append((tag, attr))

        keys = list(references)
        outcomes = await asyncio.gather(
            *(self.downloader.download(url, category) for category, url in keys),
            return_exceptions=True,
        )
        # Every download has settled here; surface the first hard failure.
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        records: list[AssetRecord] = []
        for key, record in zip(keys, outcomes):
            records.append(record)
            if not record.ok:
                continue
            for tag, attr in references[key]:
                tag[attr] = f"../{record.local_path}"
        records.extend(unresolved)

        logger.debug(
            "Processed %s: %d links, %d assets (%d failed)",
            page_url, len(links), len(records), sum(1 for r in records if not r.ok),
        )
        return ProcessedPage(html=str(soup), assets=records, links=links)

    def _collect_links(self, soup: BeautifulSoup, page_url: str) -> list[str]:
        links: dict[str, None] = {}
        for a in soup.find_all("a", href=True):
            href = a["href"].strip()
            if not href or href.lower().startswith(SKIPPED_LINK_PREFIXES):
                continue
            try:
                full_url = urljoin(page_url, href)
            except ValueError:
                continue
            if is_same_host(full_url, page_url):
                links[full_url] = None
        return list(links)
