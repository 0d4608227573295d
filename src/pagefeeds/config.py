from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from typing import Any

import yaml

from .models import SourceConfig


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class AppConfig:
    name: str
    base_url: str


@dataclass(frozen=True)
class PathsConfig:
    data_dir: str
    sources_file: str


@dataclass(frozen=True)
class RenderConfig:
    timeout_ms: int
    wait_until: str
    page_settle_ms: int
    article_settle_ms: int
    user_agent: str
    executable_path: str
    launch_args: list[str]


@dataclass(frozen=True)
class EnrichmentConfig:
    delay_seconds: float


@dataclass(frozen=True)
class CacheConfig:
    ttl_seconds: int
    check_period_seconds: int
    max_keys: int
    disk_max_age_seconds: int


@dataclass(frozen=True)
class ApiConfig:
    api_key: str


@dataclass(frozen=True)
class Config:
    app: AppConfig
    paths: PathsConfig
    render: RenderConfig
    enrichment: EnrichmentConfig
    cache: CacheConfig
    api: ApiConfig

    @property
    def articles_path(self) -> str:
        return os.path.join(self.paths.data_dir, "articles.json")

    @property
    def feeds_dir(self) -> str:
        return os.path.join(self.paths.data_dir, "feeds")


DEFAULT_CONFIG: dict[str, Any] = {
    "app": {
        "name": "PageFeeds",
        "base_url": "http://localhost:3000",
    },
    "paths": {
        "data_dir": "./data",
        "sources_file": "",
    },
    "render": {
        "timeout_ms": 30000,
        "wait_until": "networkidle",
        "page_settle_ms": 2000,
        "article_settle_ms": 1000,
        "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        "executable_path": "",
        "launch_args": [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
            "--no-zygote",
        ],
    },
    "enrichment": {
        "delay_seconds": 1.5,
    },
    "cache": {
        "ttl_seconds": 86400,
        "check_period_seconds": 3600,
        "max_keys": 100,
        "disk_max_age_seconds": 86400,
    },
    "api": {
        "api_key": "",
    },
}

_LABEL_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")

WAIT_POLICIES = ("load", "domcontentloaded", "networkidle", "commit")

_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PF_DATA_DIR": ("paths", "data_dir"),
    "PF_SOURCES_FILE": ("paths", "sources_file"),
    "PF_BASE_URL": ("app", "base_url"),
    "PF_API_KEY": ("api", "api_key"),
    "PF_CHROMIUM_PATH": ("render", "executable_path"),
}


def load_config(path: str | None = None) -> Config:
    cfg = _deep_copy(DEFAULT_CONFIG)
    config_path = path or os.environ.get("PF_CONFIG_PATH")
    if config_path:
        _merge(cfg, _read_yaml(config_path))
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            cfg[section][key] = value
    errors = validate_config(cfg)
    if errors:
        raise ConfigError("Invalid config: " + "; ".join(errors))
    return _build_config(cfg)


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse config {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a mapping")
    return data


def _merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


def validate_config(cfg: dict[str, Any]) -> list[str]:
    errors: list[str] = []
    _validate_dict(cfg, DEFAULT_CONFIG, "config", errors)
    if not errors:
        wait_until = cfg["render"]["wait_until"]
        if wait_until not in WAIT_POLICIES:
            errors.append(f"config.render.wait_until must be one of {', '.join(WAIT_POLICIES)}")
        if cfg["cache"]["max_keys"] < 1:
            errors.append("config.cache.max_keys must be positive")
    return errors


def _validate_dict(value: dict[str, Any], schema: dict[str, Any], path: str, errors: list[str]) -> None:
    if not isinstance(value, dict):
        errors.append(f"{path} must be an object")
        return
    for key in schema.keys():
        if key not in value:
            errors.append(f"missing {path}.{key}")
    for key in value.keys():
        if key not in schema:
            errors.append(f"unknown {path}.{key}")
    for key, default in schema.items():
        if key not in value:
            continue
        _validate_value(value[key], default, f"{path}.{key}", errors)


def _validate_value(value: Any, default: Any, path: str, errors: list[str]) -> None:
    if isinstance(default, dict):
        if not isinstance(value, dict):
            errors.append(f"{path} must be an object")
            return
        _validate_dict(value, default, path, errors)
        return
    if isinstance(default, list):
        if not isinstance(value, list):
            errors.append(f"{path} must be a list")
            return
        for item in value:
            if not isinstance(item, str):
                errors.append(f"{path} must be a list of strings")
                break
        return
    if isinstance(default, bool):
        if not isinstance(value, bool):
            errors.append(f"{path} must be a boolean")
        return
    if isinstance(default, int):
        if not isinstance(value, int) or isinstance(value, bool):
            errors.append(f"{path} must be an integer")
        return
    if isinstance(default, float):
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            errors.append(f"{path} must be a number")
        return
    if isinstance(default, str):
        if not isinstance(value, str):
            errors.append(f"{path} must be a string")
        return


def _build_config(cfg: dict[str, Any]) -> Config:
    app_cfg = cfg["app"]
    paths_cfg = cfg["paths"]
    render_cfg = cfg["render"]
    cache_cfg = cfg["cache"]

    app = AppConfig(
        name=str(app_cfg["name"]),
        base_url=str(app_cfg["base_url"]).rstrip("/"),
    )
    paths = PathsConfig(
        data_dir=str(paths_cfg["data_dir"]),
        sources_file=str(paths_cfg["sources_file"]),
    )
    render = RenderConfig(
        timeout_ms=int(render_cfg["timeout_ms"]),
        wait_until=str(render_cfg["wait_until"]),
        page_settle_ms=int(render_cfg["page_settle_ms"]),
        article_settle_ms=int(render_cfg["article_settle_ms"]),
        user_agent=str(render_cfg["user_agent"]),
        executable_path=str(render_cfg["executable_path"]),
        launch_args=list(render_cfg["launch_args"]),
    )
    enrichment = EnrichmentConfig(
        delay_seconds=float(cfg["enrichment"]["delay_seconds"]),
    )
    cache = CacheConfig(
        ttl_seconds=int(cache_cfg["ttl_seconds"]),
        check_period_seconds=int(cache_cfg["check_period_seconds"]),
        max_keys=int(cache_cfg["max_keys"]),
        disk_max_age_seconds=int(cache_cfg["disk_max_age_seconds"]),
    )
    return Config(
        app=app,
        paths=paths,
        render=render,
        enrichment=enrichment,
        cache=cache,
        api=ApiConfig(api_key=str(cfg["api"]["api_key"])),
    )


def load_sources_file(path: str, known_extractors: set[str] | None = None) -> list[SourceConfig]:
    data = _read_yaml_list(path)
    sources: list[SourceConfig] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ConfigError(f"sources[{index}] must be an object")
        missing = [key for key in ("url", "extractor", "label") if not item.get(key)]
        if missing:
            raise ConfigError(f"sources[{index}] missing {', '.join(missing)}")
        sources.append(
            SourceConfig(
                url=str(item["url"]),
                extractor=str(item["extractor"]),
                label=str(item["label"]),
            )
        )
    validate_sources(sources, known_extractors)
    return sources


def _read_yaml_list(path: str) -> list[Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"cannot read sources {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse sources {path}: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("sources")
    if not isinstance(data, list):
        raise ConfigError(f"sources {path} must be a list")
    return data


def validate_sources(sources: list[SourceConfig], known_extractors: set[str] | None = None) -> None:
    seen_urls: set[str] = set()
    seen_labels: set[str] = set()
    for source in sources:
        if source.url in seen_urls:
            raise ConfigError(f"duplicate source url: {source.url}")
        if source.label in seen_labels:
            raise ConfigError(f"duplicate source label: {source.label}")
        if not _LABEL_PATTERN.match(source.label):
            raise ConfigError(f"invalid source label: {source.label}")
        if known_extractors is not None and source.extractor not in known_extractors:
            raise ConfigError(f"unknown extractor {source.extractor} for {source.url}")
        seen_urls.add(source.url)
        seen_labels.add(source.label)


def _deep_copy(value: dict[str, Any]) -> dict[str, Any]:
    return json.loads(json.dumps(value))
