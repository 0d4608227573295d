"""Refresh orchestration and the serving read path.

Reads go memory -> disk -> fresh scrape. A refresh drops the memory entry
for one source, then rebuilds and repopulates both tiers. Until it finishes,
readers fall through to the previous disk entry or to a scrape of their own.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .article_store import ArticleStore
from .cache import MemoryCache, feed_key
from .config import Config
from .enrichment import Renderer, enrich_articles
from .extractors import EXTRACTORS, extractor_for
from .feed_generator import generate_feeds
from .feed_store import FeedStore, is_entry_stale
from .models import FEED_FORMATS, GeneratedFeeds, RefreshResult, SourceConfig
from .rendering import PageRenderer
from .scraper import scrape_source
from .sources import SourceRegistry, load_registry
from .utils import log_event, utc_now_iso

CACHE_HIT = "HIT"
CACHE_DISK = "DISK"
CACHE_MISS = "MISS"

DEFAULT_FORMAT = "rss"


class NoArticlesError(Exception):
    def __init__(self, url: str) -> None:
        super().__init__(f"No articles found at {url}")
        self.url = url


def parse_format(value: str | None) -> str:
    if value in FEED_FORMATS:
        return value
    return DEFAULT_FORMAT


class FeedPipeline:
    def __init__(
        self,
        config: Config,
        registry: SourceRegistry | None = None,
        renderer: Renderer | None = None,
        memory_cache: MemoryCache | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        if registry is None:
            registry = load_registry(config, set(EXTRACTORS))
        if memory_cache is None:
            memory_cache = MemoryCache(
                ttl_seconds=config.cache.ttl_seconds,
                check_period_seconds=config.cache.check_period_seconds,
                max_keys=config.cache.max_keys,
            )
        self.registry = registry
        self.renderer = renderer if renderer is not None else PageRenderer(config.render)
        self.memory = memory_cache
        self.article_store = ArticleStore(config.articles_path)
        self.feed_store = FeedStore(config.feeds_dir, self.registry)
        self._logger = logger or logging.getLogger("pagefeeds.pipeline")
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, url: str) -> asyncio.Lock:
        lock = self._locks.get(url)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[url] = lock
        return lock

    def list_sources(self) -> list[SourceConfig]:
        return list(self.registry)

    def add_source(self, source: SourceConfig) -> bool:
        return self.registry.add(source)

    def remove_source(self, url: str) -> bool:
        self.memory.delete(feed_key(url))
        return self.registry.remove(url)

    def clear_reading_times(self) -> int:
        cleared = self.article_store.clear_reading_times()
        self.article_store.save()
        log_event(self._logger, logging.INFO, "reading_times_cleared", count=cleared)
        return cleared

    async def _build(self, source: SourceConfig) -> tuple[GeneratedFeeds, int] | None:
        scraped = await scrape_source(
            source.url,
            self.renderer,
            source=source,
            settle_ms=self.config.render.page_settle_ms,
        )
        if not scraped.articles:
            return None
        await enrich_articles(
            source.url,
            scraped.articles,
            extractor=extractor_for(source),
            store=self.article_store,
            renderer=self.renderer,
            delay_seconds=self.config.enrichment.delay_seconds,
            settle_ms=self.config.render.article_settle_ms,
        )
        feeds = generate_feeds(
            source.url,
            scraped.articles,
            scraped.page_title,
            self.config.app.base_url,
        )
        self.memory.set(feed_key(source.url), feeds)
        self.feed_store.set(source.url, feeds, len(scraped.articles))
        return feeds, len(scraped.articles)

    async def refresh_source(self, url: str, force: bool = False) -> RefreshResult:
        """Rebuild one source's feeds and write them to both cache tiers.

        Raises:
            UnknownSourceError: ``url`` is not in the working registry.
        """
        source = self.registry.require(url)
        if force:
            self.clear_reading_times()
        async with self._lock_for(url):
            self.memory.delete(feed_key(url))
            built = await self._build(source)
        if built is None:
            log_event(self._logger, logging.WARNING, "source_empty", url=url)
            return RefreshResult(
                url=url, label=source.label, status="error", error="No articles found"
            )
        _, count = built
        log_event(
            self._logger,
            logging.INFO,
            "source_refreshed",
            url=url,
            label=source.label,
            articles=count,
        )
        return RefreshResult(url=url, label=source.label, status="success", article_count=count)

    async def refresh_all(self, force: bool = False) -> list[RefreshResult]:
        if force:
            self.clear_reading_times()
        results: list[RefreshResult] = []
        for source in self.list_sources():
            try:
                results.append(await self.refresh_source(source.url))
            except Exception as exc:  # noqa: BLE001
                log_event(
                    self._logger,
                    logging.WARNING,
                    "source_refresh_failed",
                    url=source.url,
                    error=str(exc),
                )
                results.append(
                    RefreshResult(
                        url=source.url, label=source.label, status="error", error=str(exc)
                    )
                )
        succeeded = sum(1 for result in results if result.status == "success")
        log_event(
            self._logger,
            logging.INFO,
            "refresh_complete",
            sources=len(results),
            succeeded=succeeded,
        )
        return results

    async def get_feed(self, url: str, feed_format: str = DEFAULT_FORMAT) -> tuple[str, str]:
        """Return ``(body, cache_state)`` for one source and format.

        Raises:
            UnknownSourceError: ``url`` is not in the working registry.
            NoArticlesError: a fresh scrape found nothing to publish.
        """
        source = self.registry.require(url)
        feed_format = parse_format(feed_format)
        key = feed_key(url)

        cached = self.memory.get(key)
        if cached is not None:
            return cached.get(feed_format), CACHE_HIT

        entry = self.feed_store.get(url)
        if entry is not None and not is_entry_stale(entry, self.config.cache.disk_max_age_seconds):
            self.memory.set(key, entry.feeds)
            return entry.feeds.get(feed_format), CACHE_DISK

        async with self._lock_for(url):
            # A concurrent request may have rebuilt it while we waited.
            cached = self.memory.get(key)
            if cached is not None:
                return cached.get(feed_format), CACHE_HIT
            built = await self._build(source)
        if built is None:
            raise NoArticlesError(url)
        feeds, _ = built
        return feeds.get(feed_format), CACHE_MISS

    def status(self) -> dict[str, Any]:
        feeds: list[dict[str, Any]] = []
        for source in self.list_sources():
            memory_cached = self.memory.has(feed_key(source.url))
            entry = self.feed_store.get(source.url)
            disk_stale = (
                is_entry_stale(entry, self.config.cache.disk_max_age_seconds)
                if entry is not None
                else None
            )
            feeds.append(
                {
                    "label": source.label,
                    "url": source.url,
                    "extractor": source.extractor,
                    "cached": memory_cached or (entry is not None and not disk_stale),
                    "memory": memory_cached,
                    "disk": entry is not None,
                    "diskStale": disk_stale,
                    "diskCachedAt": entry.cached_at if entry else None,
                    "diskArticleCount": entry.article_count if entry else None,
                }
            )
        healthy = all(item["cached"] for item in feeds)
        return {
            "status": "healthy" if healthy else "degraded",
            "timestamp": utc_now_iso(),
            "feeds": feeds,
        }

    async def close(self) -> None:
        close = getattr(self.renderer, "close", None)
        if close is not None:
            await close()
