"""Headless Chromium page rendering via Playwright.

One browser is launched lazily and shared by every caller; each render
opens its own page and closes it before returning, whatever the outcome.
The browser itself is only closed by :meth:`PageRenderer.close`.

Playwright needs its browser binaries; either point ``PF_CHROMIUM_PATH`` at
a system Chromium or install the bundled one::

    playwright install chromium
"""

from __future__ import annotations

import asyncio
import logging
import os

from playwright.async_api import Browser, Playwright, async_playwright

from .config import RenderConfig
from .utils import log_event

CHROMIUM_PATHS = (
    "/root/.nix-profile/bin/chromium",
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/bin/google-chrome-stable",
    "/usr/bin/google-chrome",
)


class RenderError(Exception):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"render failed for {url}: {reason}")
        self.url = url
        self.reason = reason


def find_system_chromium() -> str | None:
    for path in CHROMIUM_PATHS:
        if os.path.exists(path):
            return path
    return None


class PageRenderer:
    def __init__(self, config: RenderConfig, logger: logging.Logger | None = None) -> None:
        self._config = config
        self._logger = logger or logging.getLogger("pagefeeds.rendering")
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def started(self) -> bool:
        return self._browser is not None

    async def _ensure_browser(self) -> Browser:
        async with self._lock:
            if self._browser is None:
                executable_path = self._config.executable_path or find_system_chromium()
                self._playwright = await async_playwright().start()
                try:
                    self._browser = await self._playwright.chromium.launch(
                        headless=True,
                        executable_path=executable_path,
                        args=list(self._config.launch_args),
                    )
                except Exception:
                    await self._playwright.stop()
                    self._playwright = None
                    raise
                log_event(
                    self._logger,
                    logging.INFO,
                    "browser_started",
                    executable=executable_path or "bundled",
                )
            return self._browser

    async def render(
        self,
        url: str,
        *,
        timeout_ms: int | None = None,
        wait_until: str | None = None,
        settle_ms: int = 0,
    ) -> str:
        """Return the final HTML of ``url`` after scripts have run.

        Raises:
            RenderError: on launch, navigation, timeout or content failures.
        """
        try:
            browser = await self._ensure_browser()
            page = await browser.new_page(user_agent=self._config.user_agent)
        except Exception as exc:  # noqa: BLE001
            raise RenderError(url, str(exc)) from exc

        try:
            await page.goto(
                url,
                timeout=timeout_ms or self._config.timeout_ms,
                wait_until=wait_until or self._config.wait_until,
            )
            if settle_ms > 0:
                await page.wait_for_timeout(settle_ms)
            return await page.content()
        except Exception as exc:  # noqa: BLE001
            raise RenderError(url, str(exc)) from exc
        finally:
            await page.close()

    async def close(self) -> None:
        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
