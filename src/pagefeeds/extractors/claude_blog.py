from __future__ import annotations

from bs4 import BeautifulSoup

from ..models import Article, EnrichmentResult
from ..utils import resolve_url
from .base import (
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

SITE_URL = "https://claude.com"
INDEX_PATHS = ("/blog", "/blog/", f"{SITE_URL}/blog", f"{SITE_URL}/blog/")
ITEM_SELECTOR = ".blog_cms_item, .w-dyn-item"
BLOG_LINK_SELECTOR = 'a[href*="/blog/"]'
META_SELECTOR = '.card_blog_list_meta, [class*="meta"], [class*="date"]'
DESCRIPTION_SELECTORS = '[class*="description"], [class*="excerpt"], [class*="summary"], p'
CATEGORY_SELECTOR = '[class*="category"], [class*="blog_tag"], .tag'
MIN_TITLE_LENGTH = 5
MIN_LINK_TEXT_LENGTH = 10

BODY_SELECTOR = '.u-rich-text, [class*="rich-text"], [class*="blog_post_content"]'
CONTENT_CONTAINERS = "article, main"


class ClaudeBlogExtractor(Extractor):
    """Claude blog: Webflow CMS collection items, with a link scan fallback."""

    name = "claude-blog"
    supports_enrichment = True

    def extract(self, soup: BeautifulSoup, base_url: str) -> list[Article]:
        collector = ArticleCollector()
        self._extract_cms_items(soup, collector)
        if not collector.articles:
            self._extract_blog_links(soup, collector)
        return collector.articles

    def _extract_cms_items(self, soup: BeautifulSoup, collector: ArticleCollector) -> None:
        for item in soup.select(ITEM_SELECTOR):
            if collector.full:
                break
            link = item.select_one(BLOG_LINK_SELECTOR)
            if link is None:
                continue
            href = link.get("href")
            if not is_article_href(href, INDEX_PATHS):
                continue
            full_url = resolve_url(href.strip(), SITE_URL)
            if not is_http_url(full_url) or collector.seen(full_url):
                continue

            title = first_text(item, ".card_blog_title", 'h2, h3, h4, [class*="title"]') or text_of(link)
            if len(title) < MIN_TITLE_LENGTH:
                continue

            collector.add(
                Article(
                    title=title,
                    link=full_url,
                    description=first_text(item, DESCRIPTION_SELECTORS),
                    pub_date=find_date(item, META_SELECTOR),
                    image_url=find_image(item, SITE_URL, ".card_blog_visual_wrap img, img"),
                    categories=find_categories(item, CATEGORY_SELECTOR),
                )
            )

    def _extract_blog_links(self, soup: BeautifulSoup, collector: ArticleCollector) -> None:
        for link in soup.select(BLOG_LINK_SELECTOR):
            if collector.full:
                break
            href = link.get("href")
            if not is_article_href(href, INDEX_PATHS):
                continue
            full_url = resolve_url(href.strip(), SITE_URL)
            if not is_http_url(full_url) or collector.seen(full_url):
                continue

            title = text_of(link)
            if len(title) < MIN_LINK_TEXT_LENGTH:
                continue

            description = ""
            parent = link.parent
            if parent is not None:
                description = first_text(parent, '[class*="description"], [class*="excerpt"], p')

            collector.add(Article(title=title, link=full_url, description=description))

    def enrich_article(self, soup: BeautifulSoup, page_url: str) -> EnrichmentResult:
        return enrich_from_page(soup, BODY_SELECTOR, CONTENT_CONTAINERS)
