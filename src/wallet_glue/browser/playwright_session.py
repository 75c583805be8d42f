"""Playwright-powered automation session with the wallet extension loaded."""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from playwright.async_api import BrowserContext, Error, Page, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import BrowserConfig
from .base import AutomationError, AutomationSession, ElementTimeout, WindowNotFound

LOGGER = logging.getLogger(__name__)


class PlaywrightAutomationSession(AutomationSession):
    """Automation session backed by a persistent Playwright Chromium context.

    Every page of the context is a window. Handles come from a counter that
    only grows, so a closed window's handle is never handed out again.
    """

    def __init__(self, config: Optional[BrowserConfig] = None) -> None:
        self._config = config or BrowserConfig()
        self._playwright: Optional[Playwright] = None
        self._context: Optional[BrowserContext] = None
        self._pages: dict[str, Page] = {}
        self._handles: dict[int, str] = {}
        self._counter = 0
        self._current: Optional[Page] = None
        self._temp_profile: Optional[Path] = None
        self._implicit_wait_ms = 10_000

    async def start(self) -> None:
        extension = self._config.extension_path
        if extension is None:
            raise AutomationError("An extension path is required to launch the wallet")
        extension = extension.resolve()
        user_data_dir = self._config.profile_path
        if user_data_dir:
            user_data_dir.mkdir(parents=True, exist_ok=True)
        else:
            self._temp_profile = Path(tempfile.mkdtemp(prefix="wallet-glue-"))
            user_data_dir = self._temp_profile
        LOGGER.debug("Starting Chromium with extension %s", extension)
        try:
            self._playwright = await async_playwright().start()
            self._context = await self._playwright.chromium.launch_persistent_context(
                str(user_data_dir),
                headless=self._config.headless,
                channel=self._config.channel,
                viewport={
                    "width": self._config.viewport_width,
                    "height": self._config.viewport_height,
                },
                args=[
                    "--no-first-run",
                    "--no-default-browser-check",
                    f"--disable-extensions-except={extension}",
                    f"--load-extension={extension}",
                ],
            )
        except Error as exc:
            LOGGER.error("Failed to launch Chromium: %s", exc)
            await self.quit()
            raise AutomationError(f"Failed to launch Chromium: {exc}") from exc
        self._context.on("page", self._register)
        for page in self._context.pages:
            self._register(page)
        pages = self._open_pages()
        self._current = pages[0][1] if pages else None

    async def quit(self) -> None:
        LOGGER.debug("Stopping Playwright automation session")
        try:
            if self._context:
                await self._context.close()
        finally:
            if self._playwright:
                await self._playwright.stop()
            if self._temp_profile:
                shutil.rmtree(self._temp_profile, ignore_errors=True)
        self._context = None
        self._playwright = None
        self._current = None
        self._temp_profile = None

    async def window_handles(self) -> list[str]:
        return [handle for handle, _ in self._open_pages()]

    async def current_window(self) -> Optional[str]:
        if self._current is None or self._current.is_closed():
            return None
        return self._handles.get(id(self._current))

    async def switch_to(self, handle: str) -> None:
        page = self._pages.get(handle)
        if page is None or page.is_closed():
            raise WindowNotFound(f"no such window: {handle}")
        self._current = page
        with self._translate(page):
            await page.bring_to_front()

    async def new_window(self) -> str:
        context = self._require_context()
        page = await context.new_page()
        handle = self._register(page)
        self._current = page
        return handle

    async def navigate(self, url: str) -> None:
        page = self._page()
        with self._translate(page):
            await page.goto(url, wait_until="load")

    async def current_url(self) -> str:
        return self._page().url

    async def title(self) -> str:
        page = self._page()
        with self._translate(page):
            return await page.title()

    async def count(self, selector: str) -> int:
        page = self._page()
        locator = page.locator(selector)
        with self._translate(page):
            try:
                await locator.first.wait_for(state="attached", timeout=self._implicit_wait_ms)
            except PlaywrightTimeoutError:
                return 0
            return await locator.count()

    async def wait_visible(self, selector: str, timeout: float) -> None:
        page = self._page()
        with self._translate(page):
            await page.wait_for_selector(selector, state="visible", timeout=timeout * 1000)

    async def text(self, selector: str) -> str:
        page = self._page()
        with self._translate(page):
            return await page.locator(selector).first.inner_text(timeout=self._implicit_wait_ms)

    async def attribute(self, selector: str, name: str) -> Optional[str]:
        page = self._page()
        with self._translate(page):
            return await page.locator(selector).first.get_attribute(
                name, timeout=self._implicit_wait_ms
            )

    async def click(self, selector: str, timeout: float) -> None:
        page = self._page()
        with self._translate(page):
            await page.locator(selector).first.click(timeout=timeout * 1000)

    async def type_text(self, selector: str, text: str, timeout: float) -> None:
        page = self._page()
        with self._translate(page):
            await page.locator(selector).first.fill(text, timeout=timeout * 1000)

    async def close_window(self) -> None:
        page = self._page()
        with self._translate(page):
            await page.close()
        self._current = None

    async def execute_script(self, script: str) -> Any:
        page = self._page()
        with self._translate(page):
            return await page.evaluate(script)

    async def set_implicit_wait(self, seconds: float) -> None:
        self._implicit_wait_ms = int(seconds * 1000)
        self._require_context().set_default_timeout(self._implicit_wait_ms)

    def _register(self, page: Page) -> str:
        key = id(page)
        if key not in self._handles:
            self._counter += 1
            handle = f"w{self._counter}"
            self._handles[key] = handle
            self._pages[handle] = page
            LOGGER.debug("Registered window %s", handle)
        return self._handles[key]

    def _open_pages(self) -> list[tuple[str, Page]]:
        if self._context is not None:
            for page in self._context.pages:
                self._register(page)
        for handle, page in list(self._pages.items()):
            if page.is_closed():
                del self._pages[handle]
                self._handles.pop(id(page), None)
        return list(self._pages.items())

    def _page(self) -> Page:
        if self._current is None or self._current.is_closed():
            raise WindowNotFound("no window is focused")
        return self._current

    def _require_context(self) -> BrowserContext:
        if self._context is None:
            raise AutomationError("Browser session is not started")
        return self._context

    @contextmanager
    def _translate(self, page: Page) -> Iterator[None]:
        try:
            yield
        except PlaywrightTimeoutError as exc:
            raise ElementTimeout(str(exc)) from exc
        except Error as exc:
            if page.is_closed():
                raise WindowNotFound(str(exc)) from exc
            raise AutomationError(str(exc)) from exc
