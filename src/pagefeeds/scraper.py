from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from .enrichment import Renderer
from .extractors import extract_from_soup, parse_html
from .models import ScrapeResult, SourceConfig
from .utils import log_event, normalize_text, utc_now

DEFAULT_PAGE_TITLE = "RSS Feed"


def page_title(soup: BeautifulSoup) -> str:
    for selector in ("title", "h1"):
        node = soup.select_one(selector)
        text = normalize_text(node.get_text(" ")) if node else ""
        if text:
            return text
    return DEFAULT_PAGE_TITLE


def scrape_html(html: str, url: str, source: SourceConfig | None = None) -> ScrapeResult:
    """Extract articles and the page title from already rendered HTML.

    Articles whose date could not be read are stamped with the scrape time.
    """
    soup = parse_html(html)
    articles = extract_from_soup(soup, url, source) if html.strip() else []
    now = utc_now()
    for article in articles:
        if article.pub_date is None:
            article.pub_date = now
    return ScrapeResult(articles=articles, page_title=page_title(soup))


async def scrape_source(
    url: str,
    renderer: Renderer,
    source: SourceConfig | None = None,
    settle_ms: int = 2000,
    logger: logging.Logger | None = None,
) -> ScrapeResult:
    logger = logger or logging.getLogger("pagefeeds.scraper")
    html = await renderer.render(url, settle_ms=settle_ms)
    result = scrape_html(html, url, source)
    log_event(
        logger,
        logging.INFO,
        "source_scraped",
        url=url,
        articles=len(result.articles),
    )
    return result
