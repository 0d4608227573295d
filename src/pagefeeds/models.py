from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 500
MAX_ARTICLES = 20

FEED_FORMATS = ("rss", "atom", "json")


@dataclass
class Article:
    title: str
    link: str
    description: str = ""
    pub_date: datetime | None = None
    image_url: str | None = None
    guid: str = ""
    reading_time: int | None = None
    categories: list[str] | None = None

    def __post_init__(self) -> None:
        if not self.guid:
            self.guid = self.link


@dataclass(frozen=True)
class SourceConfig:
    url: str
    extractor: str
    label: str


@dataclass(frozen=True)
class StoredArticle:
    description: str
    fetched_at: str
    reading_time: int | None = None


@dataclass(frozen=True)
class GeneratedFeeds:
    rss: str
    atom: str
    json: str

    def get(self, feed_format: str) -> str:
        if feed_format not in FEED_FORMATS:
            raise ValueError(f"unknown feed format: {feed_format}")
        return getattr(self, feed_format)

    def as_dict(self) -> dict[str, str]:
        return {"rss": self.rss, "atom": self.atom, "json": self.json}


@dataclass(frozen=True)
class FeedCacheEntry:
    feeds: GeneratedFeeds
    source_url: str
    article_count: int
    cached_at: str


@dataclass(frozen=True)
class EnrichmentResult:
    description: str | None = None
    reading_time: int | None = None

    def is_empty(self) -> bool:
        return not self.description and not self.reading_time


@dataclass
class ScrapeResult:
    articles: list[Article] = field(default_factory=list)
    page_title: str = ""


@dataclass(frozen=True)
class RefreshResult:
    url: str
    label: str | None
    status: str
    article_count: int = 0
    error: str | None = None
