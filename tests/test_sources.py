import pytest

from pagefeeds.config import ConfigError, load_config
from pagefeeds.extractors import EXTRACTORS
from pagefeeds.models import SourceConfig
from pagefeeds.sources import DEFAULT_SOURCES, SourceRegistry, UnknownSourceError, load_registry


def test_default_registry_order():
    registry = SourceRegistry()
    assert registry.urls() == [source.url for source in DEFAULT_SOURCES]
    assert len(registry) == 4
    assert registry.get_extractor_name("https://claude.com/blog") == "claude-blog"
    assert registry.get_label("https://www.anthropic.com/engineering") == "anthropic-engineering"


def test_default_extractors_are_known():
    for source in DEFAULT_SOURCES:
        assert source.extractor in EXTRACTORS


def test_require_unknown_source():
    registry = SourceRegistry()
    assert "https://unknown.test/" not in registry
    assert registry.get_label("https://unknown.test/") is None
    with pytest.raises(UnknownSourceError):
        registry.require("https://unknown.test/")


def test_add_and_remove_only_touch_memory():
    registry = SourceRegistry([])
    source = SourceConfig(url="https://example.com/news/", extractor="generic", label="news")
    assert registry.add(source) is True
    assert registry.add(source) is False
    assert registry.require(source.url) == source
    assert registry.remove(source.url) is True
    assert registry.remove(source.url) is False
    assert len(registry) == 0


def test_add_rejects_duplicate_label():
    registry = SourceRegistry([SourceConfig("https://a.test/", "generic", "news")])
    with pytest.raises(ConfigError):
        registry.add(SourceConfig("https://b.test/", "generic", "news"))
    assert registry.urls() == ["https://a.test/"]


def test_load_registry_from_sources_file(tmp_path, clean_env):
    sources = tmp_path / "sources.yml"
    sources.write_text("- {url: 'https://a.test/', extractor: generic, label: a}\n", encoding="utf-8")
    clean_env.setenv("PF_SOURCES_FILE", str(sources))

    registry = load_registry(load_config(), set(EXTRACTORS))
    assert registry.urls() == ["https://a.test/"]


def test_load_registry_rejects_empty_file(tmp_path, clean_env):
    sources = tmp_path / "sources.yml"
    sources.write_text("sources: []\n", encoding="utf-8")
    clean_env.setenv("PF_SOURCES_FILE", str(sources))
    with pytest.raises(ConfigError):
        load_registry(load_config())
