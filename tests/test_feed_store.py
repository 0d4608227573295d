import json
import os

from pagefeeds.feed_store import FeedStore
from pagefeeds.models import GeneratedFeeds, SourceConfig
from pagefeeds.sources import SourceRegistry

SOURCE = SourceConfig(url="https://example.com/news/", extractor="generic", label="example-news")
FEEDS = GeneratedFeeds(rss="<rss/>", atom="<feed/>", json='{"items": []}')


def _store(tmp_path) -> FeedStore:
    return FeedStore(str(tmp_path / "feeds"), SourceRegistry([SOURCE]))


def test_set_then_get(tmp_path):
    store = _store(tmp_path)
    assert store.get(SOURCE.url) is None
    assert not store.has(SOURCE.url)

    store.set(SOURCE.url, FEEDS, 12)
    entry = store.get(SOURCE.url)
    assert entry.feeds == FEEDS
    assert entry.article_count == 12
    assert entry.source_url == SOURCE.url
    assert store.has(SOURCE.url)
    assert os.listdir(tmp_path / "feeds") == ["example-news.json"]


def test_staleness_right_after_set(tmp_path):
    store = _store(tmp_path)
    assert store.is_stale(SOURCE.url)

    store.set(SOURCE.url, FEEDS, 1)
    assert store.is_stale(SOURCE.url) is False
    assert store.is_stale(SOURCE.url, max_age_seconds=0) is True


def test_old_entries_are_stale(tmp_path):
    store = _store(tmp_path)
    store.set(SOURCE.url, FEEDS, 1)
    path = store.path_for(SOURCE.url)
    raw = json.loads(open(path, encoding="utf-8").read())
    raw["cachedAt"] = "2020-01-01T00:00:00+00:00"
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(raw, handle)
    assert store.is_stale(SOURCE.url)


def test_entry_missing_a_format_is_absent(tmp_path):
    store = _store(tmp_path)
    store.set(SOURCE.url, FEEDS, 1)
    path = store.path_for(SOURCE.url)
    raw = json.loads(open(path, encoding="utf-8").read())
    del raw["feeds"]["atom"]
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(raw, handle)

    assert store.get(SOURCE.url) is None
    assert store.get_metadata(SOURCE.url) is None
    assert store.is_stale(SOURCE.url)


def test_corrupt_file_is_absent(tmp_path):
    store = _store(tmp_path)
    os.makedirs(tmp_path / "feeds")
    (tmp_path / "feeds" / "example-news.json").write_text("{", encoding="utf-8")
    assert store.get(SOURCE.url) is None


def test_unknown_source_is_never_written(tmp_path):
    store = _store(tmp_path)
    store.set("https://unknown.test/", FEEDS, 3)
    assert store.get("https://unknown.test/") is None
    assert store.is_stale("https://unknown.test/")
    assert not os.path.exists(tmp_path / "feeds")


def test_metadata(tmp_path):
    store = _store(tmp_path)
    store.set(SOURCE.url, FEEDS, 7)
    metadata = store.get_metadata(SOURCE.url)
    assert metadata["articleCount"] == 7
    assert metadata["cachedAt"]
    assert not any(name.endswith(".tmp") for name in os.listdir(tmp_path / "feeds"))
