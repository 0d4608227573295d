from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from ..models import Article, SourceConfig
from ..utils import log_event
from .anthropic import AnthropicExtractor
from .base import Extractor
from .claude_blog import ClaudeBlogExtractor
from .generic import GenericExtractor
from .seattle_times import SeattleTimesExtractor

DEFAULT_EXTRACTOR = "generic"

EXTRACTORS: dict[str, Extractor] = {
    extractor.name: extractor
    for extractor in (
        SeattleTimesExtractor(),
        AnthropicExtractor(),
        ClaudeBlogExtractor(),
        GenericExtractor(),
    )
}

_logger = logging.getLogger("pagefeeds.extractors")


def get_extractor(name: str | None) -> Extractor:
    return EXTRACTORS.get(name or DEFAULT_EXTRACTOR) or EXTRACTORS[DEFAULT_EXTRACTOR]


def extractor_for(source: SourceConfig | None) -> Extractor:
    return get_extractor(source.extractor if source else None)


def parse_html(html: str | None) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def extract_articles(html: str | None, base_url: str, source: SourceConfig | None = None) -> list[Article]:
    if not html or not html.strip():
        return []
    return extract_from_soup(parse_html(html), base_url, source)


def extract_from_soup(
    soup: BeautifulSoup, base_url: str, source: SourceConfig | None = None
) -> list[Article]:
    """Run the source's extractor; any failure yields an empty list."""
    extractor = extractor_for(source)
    try:
        return extractor.extract(soup, base_url)
    except Exception as exc:  # noqa: BLE001
        log_event(
            _logger,
            logging.WARNING,
            "extract_failed",
            url=base_url,
            extractor=extractor.name,
            error=str(exc),
        )
        return []


__all__ = [
    "DEFAULT_EXTRACTOR",
    "EXTRACTORS",
    "Extractor",
    "extract_articles",
    "extract_from_soup",
    "extractor_for",
    "get_extractor",
    "parse_html",
]
