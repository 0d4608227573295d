from __future__ import annotations

import json
import logging
import threading
from typing import Any

from .models import StoredArticle
from .utils import log_event, utc_now_iso, write_json_atomic


class ArticleStore:
    """Durable ``article url -> {description, readingTime, fetchedAt}`` map.

    The file is read on first access; afterwards the in-memory map is the
    source of truth and doubles as the write buffer until :meth:`save`.
    """

    def __init__(self, path: str, logger: logging.Logger | None = None) -> None:
        self.path = path
        self._logger = logger or logging.getLogger("pagefeeds.article_store")
        self._lock = threading.RLock()
        self._data: dict[str, dict[str, Any]] | None = None

    @property
    def loaded(self) -> bool:
        return self._data is not None

    def _ensure_loaded(self) -> dict[str, dict[str, Any]]:
        if self._data is not None:
            return self._data
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
            if not isinstance(raw, dict):
                raise ValueError("article store root must be an object")
            self._data = {
                str(url): entry for url, entry in raw.items() if isinstance(entry, dict)
            }
        except FileNotFoundError:
            self._data = {}
        except (OSError, ValueError) as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "article_store_load_failed",
                path=self.path,
                error=str(exc),
            )
            self._data = {}
        return self._data

    def get(self, url: str) -> StoredArticle | None:
        with self._lock:
            entry = self._ensure_loaded().get(url)
            if entry is None:
                return None
            return StoredArticle(
                description=str(entry.get("description") or ""),
                fetched_at=str(entry.get("fetchedAt") or ""),
                reading_time=_as_reading_time(entry.get("readingTime")),
            )

    def get_description(self, url: str) -> str | None:
        with self._lock:
            entry = self._ensure_loaded().get(url)
            if entry is None:
                return None
            description = entry.get("description")
            return None if description is None else str(description)

    def has_description(self, url: str) -> bool:
        return bool(self.get_description(url))

    def get_reading_time(self, url: str) -> int | None:
        with self._lock:
            entry = self._ensure_loaded().get(url)
            if entry is None:
                return None
            return _as_reading_time(entry.get("readingTime"))

    def set_description(self, url: str, description: str) -> None:
        with self._lock:
            data = self._ensure_loaded()
            entry = dict(data.get(url) or {})
            entry["description"] = description
            entry["fetchedAt"] = utc_now_iso()
            data[url] = entry

    def set_article_data(self, url: str, description: str, reading_time: int | None = None) -> None:
        with self._lock:
            entry: dict[str, Any] = {"description": description, "fetchedAt": utc_now_iso()}
            if reading_time is not None:
                entry["readingTime"] = reading_time
            self._ensure_loaded()[url] = entry

    def clear_reading_times(self) -> int:
        """Remove ``readingTime`` from every entry; returns how many were cleared."""
        with self._lock:
            cleared = 0
            for entry in self._ensure_loaded().values():
                if "readingTime" in entry:
                    del entry["readingTime"]
                    cleared += 1
            return cleared

    def save(self) -> None:
        with self._lock:
            write_json_atomic(self.path, self._ensure_loaded())

    def reset(self) -> None:
        with self._lock:
            self._data = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._ensure_loaded())


def _as_reading_time(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    minutes = int(value)
    return minutes if minutes >= 1 else None
