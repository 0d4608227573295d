from __future__ import annotations

import pytest

from pagefeeds.config import load_config
from pagefeeds.rendering import RenderError

_ENV_VARS = (
    "PF_CONFIG_PATH",
    "PF_DATA_DIR",
    "PF_SOURCES_FILE",
    "PF_BASE_URL",
    "PF_API_KEY",
    "PF_CHROMIUM_PATH",
)


class FakeRenderer:
    """Serves canned HTML per URL and records every render request."""

    def __init__(self, pages: dict[str, str] | None = None, failing: tuple[str, ...] = ()) -> None:
        self.pages = dict(pages or {})
        self.failing = set(failing)
        self.calls: list[str] = []
        self.closed = False

    async def render(self, url, *, timeout_ms=None, wait_until=None, settle_ms=0) -> str:
        self.calls.append(url)
        if url in self.failing:
            raise RenderError(url, "Timeout 30000ms exceeded")
        return self.pages.get(url, "")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def config(tmp_path, clean_env):
    config_path = tmp_path / "config.yml"
    config_path.write_text(
        "\n".join(
            [
                "app:",
                "  base_url: http://feeds.test",
                "paths:",
                f"  data_dir: {tmp_path / 'data'}",
                "enrichment:",
                "  delay_seconds: 0",
                "api:",
                "  api_key: secret-key",
            ]
        ),
        encoding="utf-8",
    )
    return load_config(str(config_path))


@pytest.fixture
def make_renderer():
    return FakeRenderer
