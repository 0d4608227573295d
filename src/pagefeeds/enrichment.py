from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from .article_store import ArticleStore
from .extractors import Extractor, parse_html
from .models import Article
from .utils import log_event


class Renderer(Protocol):
    async def render(
        self,
        url: str,
        *,
        timeout_ms: int | None = None,
        wait_until: str | None = None,
        settle_ms: int = 0,
    ) -> str: ...


def _apply_cached(article: Article, store: ArticleStore) -> bool:
    cached = store.get_description(article.link)
    if not cached:
        return False
    if not article.description:
        article.description = cached
    if not article.reading_time:
        reading_time = store.get_reading_time(article.link)
        if reading_time:
            article.reading_time = reading_time
    return True


async def _enrich_one(
    article: Article,
    extractor: Extractor,
    store: ArticleStore,
    renderer: Renderer,
    settle_ms: int,
) -> bool:
    html = await renderer.render(article.link, settle_ms=settle_ms)
    result = extractor.enrich_article(parse_html(html), article.link)
    if result.is_empty():
        return False
    if result.description:
        store.set_article_data(article.link, result.description, result.reading_time)
        if not article.description:
            article.description = result.description
    if result.reading_time and not article.reading_time:
        article.reading_time = result.reading_time
    return True


async def enrich_articles(
    source_url: str,
    articles: list[Article],
    *,
    extractor: Extractor,
    store: ArticleStore,
    renderer: Renderer,
    delay_seconds: float = 1.5,
    settle_ms: int = 1000,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    logger: logging.Logger | None = None,
) -> int:
    """Fill missing descriptions and reading times from each article's own page.

    Articles are mutated in place and visited in order, one page at a time.
    Descriptions already held by ``store`` are applied without a fetch. A
    failed fetch leaves that article as it was and the batch moves on. The
    store is saved once at the end if anything was enriched.

    Returns the number of articles enriched by a fetch in this batch.
    """
    logger = logger or logging.getLogger("pagefeeds.enrichment")
    if not extractor.supports_enrichment:
        return 0

    enriched = 0
    for article in articles:
        if _apply_cached(article, store):
            continue
        try:
            if await _enrich_one(article, extractor, store, renderer, settle_ms):
                enriched += 1
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.WARNING,
                "enrichment_failed",
                url=article.link,
                error=str(exc),
            )
            continue
        if enriched > 0:
            await sleep(delay_seconds)

    if enriched > 0:
        store.save()
        log_event(
            logger,
            logging.INFO,
            "articles_enriched",
            source=source_url,
            count=enriched,
        )
    return enriched
