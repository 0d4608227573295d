import dataclasses

import pytest
from fastapi.testclient import TestClient

from pagefeeds.api import app, get_pipeline
from pagefeeds.config import ApiConfig
from pagefeeds.models import SourceConfig
from pagefeeds.pipeline import FeedPipeline
from pagefeeds.sources import SourceRegistry

NEWS = SourceConfig(url="https://example.com/news/", extractor="generic", label="example-news")
SPORTS = SourceConfig(url="https://example.com/sports/", extractor="generic", label="example-sports")

LISTING = """
<html><head><title>Example News</title></head><body>
  <article><h2>First headline about things</h2><a href="/news/first">Read</a></article>
  <article><h2>Second headline about stuff</h2><a href="/news/second">Read</a></article>
</body></html>
"""


@pytest.fixture
def pipeline(config, make_renderer):
    renderer = make_renderer({NEWS.url: LISTING, SPORTS.url: "<html></html>"})
    return FeedPipeline(config, registry=SourceRegistry([NEWS, SPORTS]), renderer=renderer)


@pytest.fixture
def client(pipeline):
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["has_api_key"] is True


def test_root_lists_allowed_feeds(client):
    payload = client.get("/").json()
    assert payload["allowed_feeds"] == [NEWS.url, SPORTS.url]
    assert payload["examples"]["example-news"] == f"/feed?url={NEWS.url}"


def test_feed_requires_url(client):
    response = client.get("/feed")
    assert response.status_code == 400
    assert response.json()["error"] == "URL parameter is required"


def test_feed_rejects_unknown_source(client):
    response = client.get("/feed", params={"url": "https://evil.test/"})
    assert response.status_code == 403
    assert response.json()["allowed_feeds"] == [NEWS.url, SPORTS.url]


def test_feed_formats_and_cache_header(client):
    response = client.get("/feed", params={"url": NEWS.url})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/rss+xml; charset=utf-8"
    assert response.headers["x-cache"] == "MISS"
    assert "First headline about things" in response.text

    response = client.get("/feed", params={"url": NEWS.url, "format": "json"})
    assert response.headers["content-type"] == "application/feed+json; charset=utf-8"
    assert response.headers["x-cache"] == "HIT"
    assert response.json()["items"][0]["title"] == "First headline about things"

    response = client.get("/feed", params={"url": NEWS.url, "format": "atom"})
    assert response.headers["content-type"] == "application/atom+xml; charset=utf-8"

    response = client.get("/feed", params={"url": NEWS.url, "format": "yaml"})
    assert response.headers["content-type"] == "application/rss+xml; charset=utf-8"


def test_feed_without_articles(client):
    response = client.get("/feed", params={"url": SPORTS.url})
    assert response.status_code == 404


def test_feed_render_failure(client, pipeline):
    pipeline.renderer.failing.add(NEWS.url)
    response = client.get("/feed", params={"url": NEWS.url})
    assert response.status_code == 500
    assert response.json()["error"] == "Failed to generate feed"


def test_status(client):
    payload = client.get("/status").json()
    assert payload["status"] == "degraded"
    assert [item["label"] for item in payload["feeds"]] == ["example-news", "example-sports"]


def test_refresh_requires_api_key(client):
    assert client.post("/refresh").status_code == 401
    assert client.post("/refresh", headers={"api_key": "wrong"}).status_code == 401


def test_refresh_single_source(client, pipeline):
    response = client.post(
        "/refresh", json={"url": NEWS.url}, headers={"api_key": "secret-key"}
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "success"
    assert payload["articles_count"] == 2
    assert payload["cached_until"]
    assert pipeline.feed_store.has(NEWS.url)


def test_refresh_unknown_and_empty_sources(client):
    headers = {"api_key": "secret-key"}
    assert client.post("/refresh", json={"url": "https://evil.test/"}, headers=headers).status_code == 403
    assert client.post("/refresh", json={"url": SPORTS.url}, headers=headers).status_code == 404


def test_refresh_all(client):
    response = client.post("/refresh", headers={"api_key": "secret-key"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "All feeds refreshed"
    assert payload["results"] == [
        {"url": NEWS.url, "status": "success", "articles_count": 2},
        {"url": SPORTS.url, "status": "error", "message": "No articles found"},
    ]


def test_refresh_disabled_without_configured_key(config, make_renderer):
    keyless = dataclasses.replace(config, api=ApiConfig(api_key=""))
    pipeline = FeedPipeline(keyless, registry=SourceRegistry([NEWS]), renderer=make_renderer())
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    try:
        client = TestClient(app)
        assert client.post("/refresh", headers={"api_key": ""}).status_code == 401
        assert client.get("/health").json()["has_api_key"] is False
    finally:
        app.dependency_overrides.clear()
