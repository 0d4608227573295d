from __future__ import annotations

import re
from typing import Iterable

from bs4 import BeautifulSoup, Tag

from ..models import (
    DESCRIPTION_MAX_LENGTH,
    MAX_ARTICLES,
    TITLE_MAX_LENGTH,
    Article,
    EnrichmentResult,
)
from ..utils import count_words, estimate_reading_time, normalize_text, parse_date, resolve_url

CATEGORY_LINK = re.compile(
    r"/(?:category|categories|tag|tags|topic|topics)/|[?&](?:category|tag|topic|filter)="
)

DESCRIPTION_SELECTORS = '[class*="excerpt"], [class*="summary"], [class*="description"], p'


class Extractor:
    """Turns one rendered listing page into articles.

    Subclasses implement ``extract``. Variants that can read a single
    article page also set ``supports_enrichment`` and implement
    ``enrich_article``.
    """

    name = "base"
    supports_enrichment = False

    def extract(self, soup: BeautifulSoup, base_url: str) -> list[Article]:
        raise NotImplementedError

    def enrich_article(self, soup: BeautifulSoup, page_url: str) -> EnrichmentResult:
        raise NotImplementedError(f"{self.name} does not enrich articles")


class ArticleCollector:
    """Accepts articles in discovery order, unique by link, up to ``limit``."""

    def __init__(self, limit: int = MAX_ARTICLES) -> None:
        self.limit = limit
        self.articles: list[Article] = []
        self._seen: set[str] = set()

    @property
    def full(self) -> bool:
        return len(self.articles) >= self.limit

    def seen(self, url: str) -> bool:
        return url in self._seen

    def add(self, article: Article) -> bool:
        if self.full or article.link in self._seen:
            return False
        article.title = article.title[:TITLE_MAX_LENGTH]
        article.description = article.description[:DESCRIPTION_MAX_LENGTH]
        self._seen.add(article.link)
        self.articles.append(article)
        return True


def text_of(element: Tag | None) -> str:
    if element is None:
        return ""
    return normalize_text(element.get_text(" "))


def first_text(scope: Tag, *selectors: str) -> str:
    for selector in selectors:
        for element in scope.select(selector):
            text = text_of(element)
            if text:
                return text
    return ""


def is_article_href(href: str | None, index_paths: Iterable[str] = ()) -> bool:
    if not href:
        return False
    href = href.strip()
    if not href or href.startswith("#") or href.lower().startswith("javascript:"):
        return False
    if href.lower().startswith(("mailto:", "tel:")):
        return False
    if href in index_paths:
        return False
    if CATEGORY_LINK.search(href):
        return False
    return True


def is_http_url(url: str | None) -> bool:
    return bool(url) and url.startswith(("http://", "https://"))


def find_date(scope: Tag, meta_selector: str | None = None):
    time_el = scope.select_one("time")
    if time_el is not None:
        parsed = parse_date(time_el.get("datetime")) or parse_date(text_of(time_el))
        if parsed:
            return parsed
    if meta_selector:
        meta_el = scope.select_one(meta_selector)
        if meta_el is not None:
            return parse_date(text_of(meta_el))
    return None


def find_image(scope: Tag, base_url: str, selector: str = "img") -> str | None:
    img = scope.select_one(selector)
    if img is None:
        return None
    return resolve_url(img.get("src") or img.get("data-src"), base_url)


def find_categories(scope: Tag, selector: str) -> list[str] | None:
    categories: list[str] = []
    for element in scope.select(selector):
        text = text_of(element)
        if text and text not in categories:
            categories.append(text)
    return categories or None


def meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    return normalize_text(tag.get("content"))


def enrich_from_page(
    soup: BeautifulSoup,
    body_selector: str,
    container_selector: str,
) -> EnrichmentResult:
    """Best-effort description and reading time for one article page.

    Words are counted from ``body_selector`` only; when that region is
    missing, paragraphs inside ``container_selector`` are used instead so
    navigation and footer text never inflate the estimate.
    """
    description = meta_content(soup, name="description") or meta_content(
        soup, property="og:description"
    )

    body = soup.select_one(body_selector)
    if body is not None:
        paragraphs = body.select("p")
        body_text = text_of(body)
    else:
        paragraphs = soup.select(", ".join(f"{part.strip()} p" for part in container_selector.split(",")))
        body_text = " ".join(text_of(p) for p in paragraphs)

    if not description:
        for paragraph in paragraphs:
            text = text_of(paragraph)
            if text:
                description = text
                break

    reading_time = estimate_reading_time(body_text) if count_words(body_text) else None
    return EnrichmentResult(
        description=description[:DESCRIPTION_MAX_LENGTH] or None,
        reading_time=reading_time,
    )
