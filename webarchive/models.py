from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime

ASSET_CATEGORIES = ("css", "js", "image")

# Subdirectory of the archive root that holds each asset category.
CATEGORY_DIRS = {"css": "css", "js": "js", "image": "images"}
PAGES_DIR = "pages"


@dataclass
class PageRecord:
    url: str
    filename: str
    size_bytes: int
    fetched_at: datetime

    def to_dict(self) -> dict:
        data = asdict(self)
        data["fetched_at"] = self.fetched_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> PageRecord:
        return cls(
            url=data["url"],
            filename=data["filename"],
            size_bytes=int(data["size_bytes"]),
            fetched_at=datetime.fromisoformat(data["fetched_at"]),
        )


@dataclass
class AssetRecord:
    category: str               # css | js | image
    source_url: str
    status: str                 # success | failed
    local_path: str | None = None  # relative to the archive root, e.g. "css/_site.css"
    size_bytes: int = 0
    content_type: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> AssetRecord:
        return cls(**data)


@dataclass
class CrawlResult:
    pages: list[PageRecord] = field(default_factory=list)
    assets: list[AssetRecord] = field(default_factory=list)


@dataclass
class Archive:
    id: str
    url: str
    created_at: datetime
    status: str = "completed"
    pages: list[PageRecord] = field(default_factory=list)
    assets: list[AssetRecord] = field(default_factory=list)
    total_size_bytes: int = 0

    @classmethod
    def from_crawl(cls, archive_id: str, url: str, created_at: datetime, result: CrawlResult) -> Archive:
        total = sum(p.size_bytes for p in result.pages)
        total += sum(a.size_bytes for a in result.assets if a.ok)
        return cls(
            id=archive_id,
            url=url,
            created_at=created_at,
            pages=list(result.pages),
            assets=list(result.assets),
            total_size_bytes=total,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "created_at": self.created_at.isoformat(),
            "status": self.status,
            "pages_archived": len(self.pages),
            "assets_archived": len(self.assets),
            "total_size_bytes": self.total_size_bytes,
            "pages": [p.to_dict() for p in self.pages],
            "assets": [a.to_dict() for a in self.assets],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Archive:
        return cls(
            id=data["id"],
            url=data["url"],
            created_at=datetime.fromisoformat(data["created_at"]),
            status=data.get("status", "completed"),
            pages=[PageRecord.from_dict(p) for p in data.get("pages", [])],
            assets=[AssetRecord.from_dict(a) for a in data.get("assets", [])],
            total_size_bytes=int(data.get("total_size_bytes", 0)),
        )
