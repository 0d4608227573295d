from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .config import load_config
from .feed_generator import get_content_type
from .pipeline import FeedPipeline, NoArticlesError, parse_format
from .sources import UnknownSourceError
from .utils import configure_logging, log_event, utc_now, utc_now_iso

app = FastAPI(title="PageFeeds")

API_KEY_HEADER = "api_key"


class RefreshRequest(BaseModel):
    url: str | None = None
    force: bool = False


def get_pipeline(request: Request) -> FeedPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        configure_logging("pagefeeds.api")
        pipeline = FeedPipeline(load_config())
        request.app.state.pipeline = pipeline
    return pipeline


def _cached_until(pipeline: FeedPipeline) -> str:
    return (utc_now() + timedelta(seconds=pipeline.config.cache.ttl_seconds)).isoformat()


def _not_allowed(pipeline: FeedPipeline) -> JSONResponse:
    return JSONResponse(
        {"error": "This feed URL is not allowed", "allowed_feeds": pipeline.registry.urls()},
        status_code=403,
    )


@app.on_event("shutdown")
async def _shutdown() -> None:
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is not None:
        await pipeline.close()


@app.get("/")
def root(pipeline: FeedPipeline = Depends(get_pipeline)) -> dict[str, object]:
    return {
        "service": pipeline.config.app.name,
        "endpoints": {
            "/feed": "Get feed (query params: url, format=rss|atom|json)",
            "/health": "Health check",
            "/status": "Per-feed cache status",
            "/refresh": "Manual refresh (POST, requires api_key header)",
        },
        "allowed_feeds": pipeline.registry.urls(),
        "formats": {"rss": "RSS 2.0 (default)", "atom": "Atom 1.0", "json": "JSON Feed 1.0"},
        "examples": {
            source.label: f"/feed?url={source.url}" for source in pipeline.list_sources()
        },
    }


@app.get("/health")
def health(pipeline: FeedPipeline = Depends(get_pipeline)) -> dict[str, object]:
    return {
        "status": "ok",
        "timestamp": utc_now_iso(),
        "has_api_key": bool(pipeline.config.api.api_key),
    }


@app.get("/status")
def status(pipeline: FeedPipeline = Depends(get_pipeline)) -> dict[str, object]:
    return pipeline.status()


@app.get("/feed")
async def feed(
    url: str | None = None,
    requested_format: str | None = Query(None, alias="format"),
    pipeline: FeedPipeline = Depends(get_pipeline),
):
    if not url:
        return JSONResponse(
            {
                "error": "URL parameter is required",
                "example": "/feed?url=https://www.seattletimes.com/sports/mariners/",
                "formats": "rss (default), atom, json",
            },
            status_code=400,
        )
    feed_format = parse_format(requested_format)
    try:
        body, cache_state = await pipeline.get_feed(url, feed_format)
    except UnknownSourceError:
        return _not_allowed(pipeline)
    except NoArticlesError:
        return JSONResponse(
            {"error": "No articles found at the specified URL", "url": url}, status_code=404
        )
    except Exception as exc:  # noqa: BLE001
        log_event(
            logging.getLogger("pagefeeds.api"),
            logging.ERROR,
            "feed_failed",
            url=url,
            error=str(exc),
        )
        return JSONResponse(
            {"error": "Failed to generate feed", "message": str(exc)}, status_code=500
        )
    return Response(
        content=body,
        media_type=get_content_type(feed_format),
        headers={"X-Cache": cache_state},
    )


@app.post("/refresh")
async def refresh(
    request: Request,
    payload: RefreshRequest | None = None,
    pipeline: FeedPipeline = Depends(get_pipeline),
):
    expected = pipeline.config.api.api_key
    if not expected or request.headers.get(API_KEY_HEADER) != expected:
        return JSONResponse(
            {"error": "Invalid or missing API key", "hint": f"Include {API_KEY_HEADER} in headers"},
            status_code=401,
        )
    payload = payload or RefreshRequest()
    logger = logging.getLogger("pagefeeds.api")
    try:
        if payload.url:
            if payload.url not in pipeline.registry:
                return _not_allowed(pipeline)
            result = await pipeline.refresh_source(payload.url, force=payload.force)
            if result.status != "success":
                return JSONResponse(
                    {"error": result.error or "No articles found", "url": payload.url},
                    status_code=404,
                )
            return {
                "status": "success",
                "message": f"Feed refreshed: {payload.url}",
                "articles_count": result.article_count,
                "cached_until": _cached_until(pipeline),
            }

        results = await pipeline.refresh_all(force=payload.force)
    except Exception as exc:  # noqa: BLE001
        log_event(logger, logging.ERROR, "refresh_failed", error=str(exc))
        return JSONResponse(
            {"error": "Failed to refresh feed", "message": str(exc)}, status_code=500
        )
    rows: list[dict[str, object]] = []
    for result in results:
        row: dict[str, object] = {"url": result.url, "status": result.status}
        if result.status == "success":
            row["articles_count"] = result.article_count
        else:
            row["message"] = result.error
        rows.append(row)
    return {
        "status": "success",
        "message": "All feeds refreshed",
        "results": rows,
        "cached_until": _cached_until(pipeline),
    }
