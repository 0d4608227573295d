from __future__ import annotations

from bs4 import BeautifulSoup

from ..models import Article, EnrichmentResult
from ..utils import resolve_url
from .base import (
    DESCRIPTION_SELECTORS,
    ArticleCollector,
    Extractor,
    enrich_from_page,
    find_categories,
    find_date,
    find_image,
    first_text,
    is_article_href,
    is_http_url,
    text_of,
)

SITE_URL = "https://www.anthropic.com"
INDEX_PATHS = ("/engineering", "/engineering/", f"{SITE_URL}/engineering", f"{SITE_URL}/engineering/")
CARD_SELECTOR = '[class*="card"], [class*="article"], [class*="post"], div'
TITLE_SELECTORS = 'h2, h3, h4, [class*="title"], [class*="heading"]'
DATE_SELECTOR = '[class*="date"], [class*="meta"], [class*="published"]'
CATEGORY_SELECTOR = '[class*="category"], [class*="topic"], .tag'
MIN_TITLE_LENGTH = 10

BODY_SELECTOR = '[class*="article-body"], [class*="post-body"], [class*="Body_body"], [class*="prose"]'
CONTENT_CONTAINERS = "article, main"


class AnthropicExtractor(Extractor):
    """Anthropic engineering index: cards linking to /engineering/<slug>."""

    name = "anthropic"
    supports_enrichment = True

    def extract(self, soup: BeautifulSoup, base_url: str) -> list[Article]:
        collector = ArticleCollector()

        for link in soup.select('a[href*="/engineering/"]'):
            if collector.full:
                break
            href = link.get("href")
            if not is_article_href(href, INDEX_PATHS):
                continue
            full_url = resolve_url(href.strip(), SITE_URL)
            if not is_http_url(full_url) or collector.seen(full_url):
                continue

            card = link.css.closest("article") or link.css.closest(CARD_SELECTOR)
            scope = card if card is not None else link

            title = first_text(scope, TITLE_SELECTORS) or text_of(link)
            if len(title) < MIN_TITLE_LENGTH:
                continue

            if card is None:
                collector.add(Article(title=title, link=full_url))
                continue

            collector.add(
                Article(
                    title=title,
                    link=full_url,
                    description=first_text(card, DESCRIPTION_SELECTORS),
                    pub_date=find_date(card, DATE_SELECTOR),
                    image_url=find_image(card, SITE_URL),
                    categories=find_categories(card, CATEGORY_SELECTOR),
                )
            )

        return collector.articles

    def enrich_article(self, soup: BeautifulSoup, page_url: str) -> EnrichmentResult:
        return enrich_from_page(soup, BODY_SELECTOR, CONTENT_CONTAINERS)
