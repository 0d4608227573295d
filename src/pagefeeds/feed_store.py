from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any

from .models import FEED_FORMATS, FeedCacheEntry, GeneratedFeeds
from .sources import SourceRegistry
from .utils import log_event, parse_iso, utc_now, utc_now_iso, write_json_atomic

DEFAULT_MAX_AGE_SECONDS = 86400


class FeedStore:
    """One JSON file of assembled feeds per source, named by source label.

    Sources missing from the registry have no file; every operation on them
    reports "absent" and writes nothing.
    """

    def __init__(
        self,
        feeds_dir: str,
        registry: SourceRegistry,
        logger: logging.Logger | None = None,
    ) -> None:
        self.feeds_dir = feeds_dir
        self._registry = registry
        self._logger = logger or logging.getLogger("pagefeeds.feed_store")
        self._lock = threading.RLock()

    def path_for(self, url: str) -> str | None:
        label = self._registry.get_label(url)
        if not label:
            return None
        return os.path.join(self.feeds_dir, f"{label}.json")

    def get(self, url: str) -> FeedCacheEntry | None:
        path = self.path_for(url)
        if path is None:
            return None
        with self._lock:
            try:
                with open(path, "r", encoding="utf-8") as handle:
                    raw = json.load(handle)
            except FileNotFoundError:
                return None
            except (OSError, ValueError) as exc:
                log_event(
                    self._logger,
                    logging.WARNING,
                    "feed_store_read_failed",
                    url=url,
                    error=str(exc),
                )
                return None
        entry = _entry_from_json(raw)
        if entry is None:
            log_event(self._logger, logging.WARNING, "feed_store_invalid_entry", url=url)
        return entry

    def set(self, url: str, feeds: GeneratedFeeds, article_count: int) -> None:
        path = self.path_for(url)
        if path is None:
            return
        payload = {
            "feeds": feeds.as_dict(),
            "sourceUrl": url,
            "articleCount": article_count,
            "cachedAt": utc_now_iso(),
        }
        with self._lock:
            write_json_atomic(path, payload)

    def has(self, url: str) -> bool:
        path = self.path_for(url)
        return path is not None and os.path.exists(path)

    def is_stale(self, url: str, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS) -> bool:
        return is_entry_stale(self.get(url), max_age_seconds)

    def get_metadata(self, url: str) -> dict[str, Any] | None:
        entry = self.get(url)
        if entry is None:
            return None
        return {"cachedAt": entry.cached_at, "articleCount": entry.article_count}


def _entry_from_json(raw: Any) -> FeedCacheEntry | None:
    if not isinstance(raw, dict):
        return None
    feeds = raw.get("feeds")
    if not isinstance(feeds, dict):
        return None
    bodies = {name: feeds.get(name) for name in FEED_FORMATS}
    if not all(isinstance(body, str) and body for body in bodies.values()):
        return None
    article_count = raw.get("articleCount")
    return FeedCacheEntry(
        feeds=GeneratedFeeds(**bodies),
        source_url=str(raw.get("sourceUrl") or ""),
        article_count=article_count if isinstance(article_count, int) else 0,
        cached_at=str(raw.get("cachedAt") or ""),
    )


def is_entry_stale(entry: FeedCacheEntry | None, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS) -> bool:
    if entry is None:
        return True
    cached_at = parse_iso(entry.cached_at)
    if cached_at is None:
        return True
    return (utc_now() - cached_at).total_seconds() >= max_age_seconds
