from __future__ import annotations

import mimetypes
from datetime import datetime, timezone
from typing import Any, Iterable
from urllib.parse import quote, urlsplit

from feedgen.entry import FeedEntry
from feedgen.ext.base import BaseEntryExtension, BaseExtension
from feedgen.feed import FeedGenerator
from lxml import etree

from .config import DEFAULT_CONFIG
from .models import Article, GeneratedFeeds
from .utils import json_dumps, utc_now

GENERATOR_NAME = "pagefeeds"
JSON_FEED_VERSION = "https://jsonfeed.org/version/1"

# Downstream readers match on this prefix and URI exactly.
READING_TIME_PREFIX = "cn"
READING_TIME_NS = "https://claudenotes.co/rss-extensions"

CONTENT_TYPES = {
    "rss": "application/rss+xml; charset=utf-8",
    "atom": "application/atom+xml; charset=utf-8",
    "json": "application/feed+json; charset=utf-8",
}


class ReadingTimeExtension(BaseExtension):
    def extend_ns(self):
        return {READING_TIME_PREFIX: READING_TIME_NS}


class ReadingTimeEntryExtension(BaseEntryExtension):
    def __init__(self) -> None:
        self._minutes: int | None = None

    def reading_time(self, minutes: int | None = None) -> int | None:
        if minutes is not None:
            self._minutes = minutes
        return self._minutes

    def extend_rss(self, entry):
        if self._minutes:
            node = etree.SubElement(entry, f"{{{READING_TIME_NS}}}readingTime")
            node.text = str(self._minutes)
        return entry


def extract_site_name(url: str) -> str:
    hostname = urlsplit(url).hostname or ""
    parts = hostname.split(".")
    if len(parts) > 2:
        parts = parts[1:]
    name = parts[0] if parts else ""
    return name[:1].upper() + name[1:]


def find_favicon(articles: Iterable[Article]) -> str | None:
    for article in articles:
        if article.image_url:
            return article.image_url
    return None


def extract_categories(url: str) -> list[str]:
    segments = [segment for segment in urlsplit(url).path.split("/") if segment]
    return [
        " ".join(word[:1].upper() + word[1:] for word in segment.replace("-", " ").split(" "))
        for segment in segments
    ]


def get_content_type(feed_format: str) -> str:
    return CONTENT_TYPES.get(feed_format, CONTENT_TYPES["rss"])


def feed_links(base_url: str, source_url: str) -> dict[str, str]:
    feed_url = f"{base_url.rstrip('/')}/feed?url={quote(source_url, safe='')}"
    return {name: f"{feed_url}&format={name}" for name in CONTENT_TYPES}


def _image_type(image_url: str) -> str:
    guessed, _ = mimetypes.guess_type(urlsplit(image_url).path)
    if guessed and guessed.startswith("image/"):
        return guessed
    return "image/jpeg"


def _channel_links(source_url: str, self_href: str, feed_format: str) -> list[dict[str, str]]:
    # feedgen takes the channel <link> from the last entry in this list.
    return [
        {"href": self_href, "rel": "self", "type": CONTENT_TYPES[feed_format].split(";")[0]},
        {"href": source_url, "rel": "alternate"},
    ]


def _published(article: Article, now: datetime) -> datetime:
    if article.pub_date is None:
        return now
    if article.pub_date.tzinfo is None:
        return article.pub_date.replace(tzinfo=timezone.utc)
    return article.pub_date


def _populate_entry(entry: FeedEntry, article: Article, published: datetime) -> None:
    entry.id(article.guid or article.link)
    entry.title(article.title)
    entry.link(href=article.link, rel="alternate")
    entry.summary(article.description or article.title)
    entry.published(published)
    entry.updated(published)
    if article.image_url:
        entry.enclosure(article.image_url, "0", _image_type(article.image_url))
    if article.categories:
        entry.category([{"term": name} for name in article.categories])
    if article.reading_time and hasattr(entry, READING_TIME_PREFIX):
        getattr(entry, READING_TIME_PREFIX).reading_time(article.reading_time)


def _json_item(article: Article, published: datetime) -> dict[str, Any]:
    body = article.description or article.title
    item: dict[str, Any] = {
        "id": article.guid or article.link,
        "url": article.link,
        "title": article.title,
        "content_html": body,
        "summary": body,
        "date_published": published.isoformat(),
        "date_modified": published.isoformat(),
    }
    if article.image_url:
        item["image"] = article.image_url
    if article.categories:
        item["tags"] = list(article.categories)
    if article.reading_time:
        item[f"_{READING_TIME_PREFIX}"] = {"readingTime": article.reading_time}
    return item


def generate_feeds(
    source_url: str,
    articles: list[Article],
    page_title: str,
    base_url: str = DEFAULT_CONFIG["app"]["base_url"],
) -> GeneratedFeeds:
    """Render one article list as RSS 2.0, Atom 1.0 and JSON Feed 1.0 bodies."""
    now = utc_now()
    hostname = urlsplit(source_url).hostname or source_url
    site_name = extract_site_name(source_url)
    title = page_title or site_name
    description = f"Auto-generated feed from {hostname}"
    image = find_favicon(articles)
    links = feed_links(base_url, source_url)

    fg = FeedGenerator()
    fg.id(source_url)
    fg.title(title)
    fg.description(description)
    fg.language("en")
    fg.rights(f"{now.year} {site_name}")
    fg.generator(GENERATOR_NAME)
    for name in extract_categories(source_url):
        fg.category(term=name)
    fg.updated(now)
    if image:
        fg.logo(image)
    if any(article.reading_time for article in articles):
        fg.register_extension(
            READING_TIME_PREFIX,
            ReadingTimeExtension,
            ReadingTimeEntryExtension,
            atom=False,
            rss=True,
        )

    entries = [FeedEntry() for _ in articles]
    # entry() keeps list order and attaches registered extensions.
    fg.entry(entries)
    for entry, article in zip(entries, articles):
        _populate_entry(entry, article, _published(article, now))

    fg.link(_channel_links(source_url, links["rss"], "rss"), replace=True)
    rss = fg.rss_str(pretty=True).decode("utf-8")
    fg.link(_channel_links(source_url, links["atom"], "atom"), replace=True)
    atom = fg.atom_str(pretty=True).decode("utf-8")

    json_feed: dict[str, Any] = {
        "version": JSON_FEED_VERSION,
        "title": title,
        "home_page_url": source_url,
        "feed_url": links["json"],
        "description": description,
    }
    if image:
        json_feed["icon"] = image
    json_feed["items"] = [_json_item(article, _published(article, now)) for article in articles]

    return GeneratedFeeds(rss=rss, atom=atom, json=json_dumps(json_feed, indent=2))
