from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from domain.errors import RenderError, RenderTimeoutError

CHROMIUM_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
)
DEFAULT_VIEWPORT = {"width": 1280, "height": 720}


class PlaywrightRenderSurface:
    """One Playwright page; implements ``RenderSurfacePort``."""

    def __init__(self, page: Any) -> None:
        self._page = page

    async def navigate(self, url: str, *, timeout_ms: int) -> None:
        try:
            await self._page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise RenderTimeoutError(f"navigation to {url} timed out after {timeout_ms} ms") from exc
        except PlaywrightError as exc:
            raise RenderError(f"navigation to {url} failed: {exc.message}") from exc

    async def screenshot(self, path: Path, *, full_page: bool) -> None:
        try:
            await self._page.screenshot(path=str(path), full_page=full_page, type="png")
        except PlaywrightError as exc:
            raise RenderError(f"screenshot failed: {exc.message}") from exc


class PlaywrightRenderEngine:
    """
    Playwright-backed implementation of ``RenderEnginePort``.

    Requires ``playwright`` to be installed and browsers set up via
    ``playwright install chromium``. One Chromium instance is shared by
    every capture; each surface is a fresh page that is closed when its
    ``async with`` block exits.
    """

    def __init__(
        self,
        *,
        executable_path: str | None = None,
        headless: bool = True,
        viewport: dict[str, int] | None = None,
        browser: Any = None,
    ) -> None:
        self._executable_path = executable_path
        self._headless = headless
        self._viewport = dict(viewport or DEFAULT_VIEWPORT)
        self._playwright: Any = None
        self._browser: Any = browser

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def launch(self) -> None:
        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                executable_path=self._executable_path,
                args=list(CHROMIUM_ARGS),
            )
        except PlaywrightError:
            await self._playwright.stop()
            self._playwright = None
            raise

    async def close(self) -> None:
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @asynccontextmanager
    async def open_surface(self) -> AsyncIterator[PlaywrightRenderSurface]:
        if self._browser is None:
            raise RenderError("Browser not launched. Call launch() first.")
        try:
            page = await self._browser.new_page(viewport=self._viewport)
        except PlaywrightError as exc:
            raise RenderError(f"cannot open page: {exc.message}") from exc
        try:
            yield PlaywrightRenderSurface(page)
        finally:
            await page.close()
