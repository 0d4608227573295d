import json
import logging
import os

import pytest

from pagefeeds.article_store import ArticleStore


def test_description_round_trip_through_fresh_instance(tmp_path):
    path = tmp_path / "articles.json"
    store = ArticleStore(str(path))
    store.set_description("https://claude.com/blog/one", "A cached description")
    store.save()

    fresh = ArticleStore(str(path))
    assert fresh.get_description("https://claude.com/blog/one") == "A cached description"
    assert fresh.has_description("https://claude.com/blog/one")
    assert fresh.get_description("https://claude.com/blog/two") is None


def test_article_data_layout_on_disk(tmp_path):
    path = tmp_path / "articles.json"
    store = ArticleStore(str(path))
    store.set_article_data("https://a.test/1", "First", 3)
    store.set_article_data("https://a.test/2", "Second")
    store.save()

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["https://a.test/1"]["description"] == "First"
    assert raw["https://a.test/1"]["readingTime"] == 3
    assert "fetchedAt" in raw["https://a.test/1"]
    assert "readingTime" not in raw["https://a.test/2"]
    assert os.listdir(tmp_path) == ["articles.json"]

    entry = ArticleStore(str(path)).get("https://a.test/1")
    assert entry.reading_time == 3
    assert entry.fetched_at == raw["https://a.test/1"]["fetchedAt"]


def test_corrupt_file_starts_empty_and_is_overwritten(tmp_path, caplog):
    path = tmp_path / "articles.json"
    path.write_text("{not json", encoding="utf-8")
    store = ArticleStore(str(path))

    with caplog.at_level(logging.WARNING):
        assert store.get_description("https://a.test/1") is None
    assert "event=article_store_load_failed" in caplog.text
    assert len(store) == 0

    store.set_description("https://a.test/1", "Recovered")
    store.save()
    assert json.loads(path.read_text(encoding="utf-8"))["https://a.test/1"]["description"] == "Recovered"


def test_clear_reading_times_keeps_descriptions(tmp_path):
    path = tmp_path / "articles.json"
    store = ArticleStore(str(path))
    store.set_article_data("https://a.test/1", "First", 3)
    store.set_article_data("https://a.test/2", "Second", 7)
    store.set_article_data("https://a.test/3", "Third")

    assert store.clear_reading_times() == 2
    store.save()

    fresh = ArticleStore(str(path))
    assert fresh.get_reading_time("https://a.test/1") is None
    assert fresh.get_reading_time("https://a.test/2") is None
    assert fresh.get_description("https://a.test/2") == "Second"


def test_invalid_reading_times_are_ignored(tmp_path):
    path = tmp_path / "articles.json"
    path.write_text(
        json.dumps(
            {
                "https://a.test/1": {"description": "x", "readingTime": "5"},
                "https://a.test/2": {"description": "y", "readingTime": 0},
                "https://a.test/3": {"description": "z", "readingTime": 4},
            }
        ),
        encoding="utf-8",
    )
    store = ArticleStore(str(path))
    assert store.get_reading_time("https://a.test/1") is None
    assert store.get_reading_time("https://a.test/2") is None
    assert store.get_reading_time("https://a.test/3") == 4


def test_failed_save_leaves_no_temp_file(tmp_path):
    path = tmp_path / "articles.json"
    path.mkdir()
    store = ArticleStore(str(path))
    store.set_description("https://a.test/1", "First")

    with pytest.raises(OSError):
        store.save()

    assert os.listdir(tmp_path) == ["articles.json"]


def test_non_string_descriptions_are_coerced(tmp_path):
    path = tmp_path / "articles.json"
    path.write_text(
        json.dumps({"https://a.test/1": {"description": 123}, "https://a.test/2": {}}),
        encoding="utf-8",
    )
    store = ArticleStore(str(path))

    assert store.get_description("https://a.test/1") == "123"
    assert store.get_description("https://a.test/2") is None
    assert not store.has_description("https://a.test/2")
