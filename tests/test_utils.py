import json
import os
from datetime import datetime, timezone

import pytest

from pagefeeds.utils import (
    estimate_reading_time,
    json_dumps,
    normalize_text,
    parse_date,
    parse_iso,
    resolve_url,
    write_json_atomic,
)


def _words(count: int) -> str:
    return " ".join(["word"] * count)


def test_reading_time_examples():
    assert estimate_reading_time(_words(238)) == 1
    assert estimate_reading_time(_words(476)) == 2
    assert estimate_reading_time(_words(1000)) == 4


def test_reading_time_floor_and_half_minutes():
    assert estimate_reading_time("") == 1
    assert estimate_reading_time(None) == 1
    assert estimate_reading_time("one") == 1
    assert estimate_reading_time(_words(357)) == 2


def test_reading_time_non_decreasing():
    previous = 0
    for count in range(0, 2000, 37):
        current = estimate_reading_time(_words(count))
        assert current >= previous
        previous = current


def test_resolve_url_keeps_absolute_urls():
    url = "https://www.example.com/a/b?c=1"
    assert resolve_url(url, "https://other.test/") == url


def test_resolve_url_relative_and_empty():
    assert resolve_url("/news/story", "https://example.com/section/") == "https://example.com/news/story"
    assert resolve_url("story", "https://example.com/section/") == "https://example.com/section/story"
    assert resolve_url("", "https://example.com/") is None
    assert resolve_url(None, "https://example.com/") is None


def test_parse_date_normalizes_to_utc():
    assert parse_date("2025-01-15") == datetime(2025, 1, 15, tzinfo=timezone.utc)
    parsed = parse_date("2025-01-15T10:00:00-08:00")
    assert parsed == datetime(2025, 1, 15, 18, 0, tzinfo=timezone.utc)


def test_parse_date_rejects_garbage():
    assert parse_date("not a date") is None
    assert parse_date("   ") is None
    assert parse_date(None) is None
    assert parse_iso("yesterday") is None


def test_normalize_text_collapses_whitespace():
    assert normalize_text("  Mariners \n\t win  ") == "Mariners win"
    assert normalize_text(None) == ""


def test_json_dumps_handles_datetimes():
    payload = {"at": datetime(2025, 1, 1, tzinfo=timezone.utc), "tags": ("a", "b")}
    assert json.loads(json_dumps(payload)) == {
        "at": "2025-01-01T00:00:00+00:00",
        "tags": ["a", "b"],
    }


def test_write_json_atomic_leaves_no_temp_file(tmp_path):
    target = tmp_path / "nested" / "store.json"
    write_json_atomic(str(target), {"a": 1})
    write_json_atomic(str(target), {"a": 2})

    assert json.loads(target.read_text(encoding="utf-8")) == {"a": 2}
    assert os.listdir(target.parent) == ["store.json"]


def test_write_json_atomic_removes_temp_file_when_replace_fails(tmp_path, monkeypatch):
    target = tmp_path / "store.json"
    write_json_atomic(str(target), {"a": 1})

    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", fail_replace)
    with pytest.raises(OSError):
        write_json_atomic(str(target), {"a": 2})

    assert os.listdir(tmp_path) == ["store.json"]
    assert json.loads(target.read_text(encoding="utf-8")) == {"a": 1}
