from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from ..models import Article
from ..utils import resolve_url
from .base import (
    DESCRIPTION_SELECTORS,
    ArticleCollector,
    Extractor,
    find_categories,
    find_date,
    find_image,
    first_text,
    is_article_href,
    is_http_url,
    text_of,
)

CONTAINER_SELECTOR = 'article, [class*="post"], [class*="entry"], [class*="article"]'
TITLE_SELECTORS = 'h2, h3, h4, [class*="title"], [class*="headline"]'
CATEGORY_SELECTOR = '[class*="category"], [rel="tag"], .tag'
MIN_TITLE_LENGTH = 10
# Bare link scanning has no container to vouch for the text, so the bar is
# higher: headlines are long, navigation labels are not.
MIN_LINK_TEXT_LENGTH = 25


class GenericExtractor(Extractor):
    """Fallback for sources without a dedicated extractor."""

    name = "generic"

    def extract(self, soup: BeautifulSoup, base_url: str) -> list[Article]:
        collector = ArticleCollector()
        index_paths = _index_paths(base_url)
        self._extract_containers(soup, base_url, index_paths, collector)
        if not collector.articles:
            self._extract_links(soup, base_url, index_paths, collector)
        return collector.articles

    def _extract_containers(
        self,
        soup: BeautifulSoup,
        base_url: str,
        index_paths: tuple[str, ...],
        collector: ArticleCollector,
    ) -> None:
        for item in soup.select(CONTAINER_SELECTOR):
            if collector.full:
                break
            link = item.select_one("a[href]")
            if link is None:
                continue
            href = link.get("href")
            if not is_article_href(href, index_paths):
                continue
            full_url = resolve_url(href.strip(), base_url)
            if not is_http_url(full_url) or full_url in index_paths or collector.seen(full_url):
                continue

            title = first_text(item, TITLE_SELECTORS) or text_of(link)
            if len(title) < MIN_TITLE_LENGTH:
                continue

            collector.add(
                Article(
                    title=title,
                    link=full_url,
                    description=first_text(item, DESCRIPTION_SELECTORS),
                    pub_date=find_date(item),
                    image_url=find_image(item, base_url),
                    categories=find_categories(item, CATEGORY_SELECTOR),
                )
            )

    def _extract_links(
        self,
        soup: BeautifulSoup,
        base_url: str,
        index_paths: tuple[str, ...],
        collector: ArticleCollector,
    ) -> None:
        for link in soup.select("a[href]"):
            if collector.full:
                break
            href = link.get("href")
            if not is_article_href(href, index_paths):
                continue
            full_url = resolve_url(href.strip(), base_url)
            if not is_http_url(full_url) or full_url in index_paths or collector.seen(full_url):
                continue

            title = text_of(link)
            if len(title) < MIN_LINK_TEXT_LENGTH:
                continue

            collector.add(
                Article(title=title, link=full_url, description=_sibling_description(link))
            )


def _index_paths(base_url: str) -> tuple[str, ...]:
    stripped = base_url.rstrip("/")
    return (base_url, stripped, stripped + "/")


def _sibling_description(link: Tag) -> str:
    for sibling in link.find_next_siblings("p", limit=1):
        text = text_of(sibling)
        if text:
            return text
    parent = link.parent
    if parent is None or parent.name in ("body", "html", "[document]"):
        return ""
    paragraph = parent.find("p")
    if paragraph is not None:
        return text_of(paragraph)
    return ""
