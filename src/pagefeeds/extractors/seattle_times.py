from __future__ import annotations

from bs4 import BeautifulSoup

from ..models import Article
from ..utils import parse_date, resolve_url, utc_now
from .base import (
    ArticleCollector,
    Extractor,
    find_categories,
    find_image,
    first_text,
    is_article_href,
    is_http_url,
    text_of,
)

STORY_SELECTOR = ".results-story"
FALLBACK_SELECTOR = '[class*="results-story"], [class*="story-list"] article, article[class*="story"]'
CATEGORY_SELECTOR = '.results-story-label, [class*="kicker"], [class*="category"]'
MIN_TITLE_LENGTH = 5
MIN_FALLBACK_TITLE_LENGTH = 10


class SeattleTimesExtractor(Extractor):
    """Seattle Times section pages (``.results-story`` cards)."""

    name = "seattle-times"

    def extract(self, soup: BeautifulSoup, base_url: str) -> list[Article]:
        collector = ArticleCollector()
        self._extract_stories(soup, base_url, collector)
        if not collector.articles:
            self._extract_fallback(soup, base_url, collector)
        return collector.articles

    def _extract_stories(self, soup: BeautifulSoup, base_url: str, collector: ArticleCollector) -> None:
        for story in soup.select(STORY_SELECTOR):
            if collector.full:
                break
            link = story.select_one(".results-story-title a[href]")
            if link is None:
                continue
            href = link.get("href")
            title = text_of(link)
            if not is_article_href(href, (base_url,)) or len(title) < MIN_TITLE_LENGTH:
                continue
            full_url = resolve_url(href.strip(), base_url)
            if not is_http_url(full_url) or collector.seen(full_url):
                continue

            pub_date = None
            time_el = story.select_one(".results-story-date time")
            if time_el is not None:
                pub_date = parse_date(time_el.get("datetime"))
            if pub_date is None:
                pub_date = parse_date(text_of(story.select_one(".results-story-date")))

            collector.add(
                Article(
                    title=title,
                    link=full_url,
                    description=text_of(story.select_one(".results-story-excerpt")),
                    pub_date=pub_date,
                    image_url=find_image(story, base_url, ".results-story-image img"),
                    categories=find_categories(story, CATEGORY_SELECTOR),
                )
            )

    def _extract_fallback(self, soup: BeautifulSoup, base_url: str, collector: ArticleCollector) -> None:
        # Story URLs carry the publication year: /sports/mariners/2025/...
        year = utc_now().year
        link_selector = ", ".join(f'a[href*="/{y}/"]' for y in (year, year - 1, year - 2))

        for story in soup.select(FALLBACK_SELECTOR):
            if collector.full:
                break
            link = story.select_one(link_selector)
            if link is None:
                continue
            href = link.get("href")
            if not is_article_href(href, (base_url,)):
                continue
            full_url = resolve_url(href.strip(), base_url)
            if not is_http_url(full_url) or collector.seen(full_url):
                continue

            title = first_text(story, 'h2, h3, [class*="title"], [class*="headline"]') or text_of(link)
            if len(title) < MIN_FALLBACK_TITLE_LENGTH:
                continue

            pub_date = None
            date_el = story.select_one('time, [class*="date"]')
            if date_el is not None:
                pub_date = parse_date(date_el.get("datetime")) or parse_date(text_of(date_el))

            collector.add(
                Article(
                    title=title,
                    link=full_url,
                    description=first_text(story, '[class*="excerpt"], [class*="summary"], p'),
                    pub_date=pub_date,
                )
            )
