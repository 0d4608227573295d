"""Configured page sources and the per-process working registry."""

from __future__ import annotations

import logging

from .config import Config, ConfigError, load_sources_file, validate_sources
from .models import SourceConfig
from .utils import log_event

DEFAULT_SOURCES: tuple[SourceConfig, ...] = (
    SourceConfig(
        url="https://www.seattletimes.com/sports/washington-huskies-football/",
        extractor="seattle-times",
        label="huskies",
    ),
    SourceConfig(
        url="https://www.seattletimes.com/sports/mariners/",
        extractor="seattle-times",
        label="mariners",
    ),
    SourceConfig(
        url="https://www.anthropic.com/engineering",
        extractor="anthropic",
        label="anthropic-engineering",
    ),
    SourceConfig(
        url="https://claude.com/blog",
        extractor="claude-blog",
        label="claude-blog",
    ),
)


class UnknownSourceError(KeyError):
    pass


class SourceRegistry:
    """Ordered url -> source mapping.

    The registry is built once at start-up. ``add`` and ``remove`` only touch
    this in-memory copy; nothing here is ever written back to disk.
    """

    def __init__(self, sources: list[SourceConfig] | tuple[SourceConfig, ...] | None = None) -> None:
        items = list(DEFAULT_SOURCES if sources is None else sources)
        validate_sources(items)
        self._sources: dict[str, SourceConfig] = {source.url: source for source in items}
        self._logger = logging.getLogger("pagefeeds.sources")

    def __iter__(self):
        return iter(list(self._sources.values()))

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, url: object) -> bool:
        return url in self._sources

    def urls(self) -> list[str]:
        return list(self._sources.keys())

    def get(self, url: str) -> SourceConfig | None:
        return self._sources.get(url)

    def require(self, url: str) -> SourceConfig:
        source = self._sources.get(url)
        if source is None:
            raise UnknownSourceError(url)
        return source

    def get_extractor_name(self, url: str) -> str | None:
        source = self._sources.get(url)
        return source.extractor if source else None

    def get_label(self, url: str) -> str | None:
        source = self._sources.get(url)
        return source.label if source else None

    def add(self, source: SourceConfig) -> bool:
        if source.url in self._sources:
            return False
        validate_sources([*self._sources.values(), source])
        self._sources[source.url] = source
        log_event(self._logger, logging.INFO, "source_added", url=source.url, label=source.label)
        return True

    def remove(self, url: str) -> bool:
        if self._sources.pop(url, None) is None:
            return False
        log_event(self._logger, logging.INFO, "source_removed", url=url)
        return True


def load_registry(config: Config, known_extractors: set[str] | None = None) -> SourceRegistry:
    if not config.paths.sources_file:
        return SourceRegistry()
    sources = load_sources_file(config.paths.sources_file, known_extractors)
    if not sources:
        raise ConfigError(f"no sources defined in {config.paths.sources_file}")
    return SourceRegistry(sources)
