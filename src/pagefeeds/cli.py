from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import urllib.error
import urllib.request

import uvicorn

from .config import Config, ConfigError, load_config
from .pipeline import FeedPipeline
from .sources import UnknownSourceError
from .utils import configure_logging, log_event


def _load(args: argparse.Namespace, logger: logging.Logger) -> Config | None:
    try:
        return load_config(args.config)
    except ConfigError as exc:
        log_event(logger, logging.ERROR, "config_error", error=str(exc))
        return None


def _pipeline(args: argparse.Namespace, logger: logging.Logger) -> FeedPipeline | None:
    config = _load(args, logger)
    if config is None:
        return None
    try:
        return FeedPipeline(config)
    except ConfigError as exc:
        log_event(logger, logging.ERROR, "config_error", error=str(exc))
        return None


async def _refresh(pipeline: FeedPipeline, url: str | None, force: bool):
    try:
        if url:
            return [await pipeline.refresh_source(url, force=force)]
        return await pipeline.refresh_all(force=force)
    finally:
        await pipeline.close()


def _cmd_refresh(args: argparse.Namespace, logger: logging.Logger) -> int:
    pipeline = _pipeline(args, logger)
    if pipeline is None:
        return 1
    try:
        results = asyncio.run(_refresh(pipeline, args.url, args.force))
    except UnknownSourceError:
        log_event(logger, logging.ERROR, "unknown_source", url=args.url)
        return 1

    for result in results:
        log_event(
            logger,
            logging.INFO if result.status == "success" else logging.WARNING,
            "refresh_result",
            url=result.url,
            status=result.status,
            articles=result.article_count,
            error=result.error or "",
        )
    return 0 if all(result.status == "success" for result in results) else 1


def _cmd_status(args: argparse.Namespace, logger: logging.Logger) -> int:
    pipeline = _pipeline(args, logger)
    if pipeline is None:
        return 1
    report = pipeline.status()
    for item in report["feeds"]:
        log_event(
            logger,
            logging.INFO,
            "feed_status",
            label=item["label"],
            disk=item["disk"],
            stale=item["diskStale"],
            cached_at=item["diskCachedAt"] or "",
            articles=item["diskArticleCount"] or 0,
        )
    log_event(logger, logging.INFO, "status", status=report["status"])
    return 0


def _cmd_clear_reading_times(args: argparse.Namespace, logger: logging.Logger) -> int:
    pipeline = _pipeline(args, logger)
    if pipeline is None:
        return 1
    pipeline.clear_reading_times()
    return 0


def _cmd_trigger_refresh(args: argparse.Namespace, logger: logging.Logger) -> int:
    config = _load(args, logger)
    if config is None:
        return 1
    if not config.api.api_key:
        log_event(logger, logging.ERROR, "api_key_missing", hint="Set PF_API_KEY")
        return 1
    payload: dict[str, object] = {"force": bool(args.force)}
    if args.url:
        payload["url"] = args.url
    request = urllib.request.Request(
        f"{config.app.base_url}/refresh",
        data=json.dumps(payload).encode("utf-8"),
        method="POST",
        headers={"Content-Type": "application/json", "api_key": config.api.api_key},
    )
    try:
        with urllib.request.urlopen(request, timeout=args.timeout) as response:
            body = json.loads(response.read().decode("utf-8"))
    except urllib.error.HTTPError as exc:
        log_event(
            logger, logging.ERROR, "trigger_refresh_failed", status=exc.code, error=str(exc)
        )
        return 1
    except (urllib.error.URLError, OSError, ValueError) as exc:
        log_event(logger, logging.ERROR, "trigger_refresh_failed", error=str(exc))
        return 1
    log_event(logger, logging.INFO, "trigger_refresh_done", status=body.get("status", ""))
    return 0


def _cmd_serve(args: argparse.Namespace, logger: logging.Logger) -> int:
    if args.config:
        os.environ["PF_CONFIG_PATH"] = args.config
    log_event(logger, logging.INFO, "server_starting", host=args.host, port=args.port)
    uvicorn.run("pagefeeds.api:app", host=args.host, port=args.port, log_level="info")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pagefeeds", description="PageFeeds CLI")
    parser.add_argument(
        "--config",
        dest="config",
        default=None,
        help="Path to config.yml (defaults to PF_CONFIG_PATH or built-in defaults)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh_parser = subparsers.add_parser("refresh", help="Re-scrape sources and rebuild feeds")
    refresh_parser.add_argument("--url", help="Refresh a single configured source")
    refresh_parser.add_argument(
        "--force",
        action="store_true",
        help="Clear cached reading times before refreshing",
    )
    refresh_parser.set_defaults(func=_cmd_refresh)

    status_parser = subparsers.add_parser("status", help="Show per-source cache status")
    status_parser.set_defaults(func=_cmd_status)

    clear_parser = subparsers.add_parser(
        "clear-reading-times", help="Drop cached reading times from the article store"
    )
    clear_parser.set_defaults(func=_cmd_clear_reading_times)

    trigger_parser = subparsers.add_parser(
        "trigger-refresh", help="Ask a running server to refresh (for cron)"
    )
    trigger_parser.add_argument("--url", help="Refresh a single configured source")
    trigger_parser.add_argument("--force", action="store_true", help="Force re-enrichment")
    trigger_parser.add_argument("--timeout", type=int, default=600, help="Request timeout seconds")
    trigger_parser.set_defaults(func=_cmd_trigger_refresh)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=3000)
    serve_parser.set_defaults(func=_cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = configure_logging("pagefeeds")
    return args.func(args, logger)


if __name__ == "__main__":
    raise SystemExit(main())
