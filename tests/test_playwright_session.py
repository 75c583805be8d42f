import asyncio
from pathlib import Path

import pytest
from playwright.async_api import Error
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from wallet_glue.browser import playwright_session
from wallet_glue.browser.base import AutomationError, ElementTimeout, WindowNotFound
from wallet_glue.browser.playwright_session import PlaywrightAutomationSession
from wallet_glue.config import BrowserConfig


class StubLocator:
    def __init__(self, page: "StubPage", selector: str) -> None:
        self._page = page
        self._selector = selector

    @property
    def first(self) -> "StubLocator":
        return self

    async def wait_for(self, state: str, timeout: float) -> None:
        self._page.waits.append((self._selector, state, timeout))
        if self._selector not in self._page.selectors:
            raise PlaywrightTimeoutError(f"waiting for {self._selector}")

    async def count(self) -> int:
        return 1 if self._selector in self._page.selectors else 0

    async def click(self, timeout: float) -> None:
        raise PlaywrightTimeoutError(f"{self._selector} not clickable after {timeout}ms")


class StubPage:
    def __init__(self, url: str = "about:blank", selectors: tuple[str, ...] = ()) -> None:
        self.url = url
        self.selectors = set(selectors)
        self.closed = False
        self.crash_on_focus = False
        self.waits: list[tuple[str, str, float]] = []

    def is_closed(self) -> bool:
        return self.closed

    async def bring_to_front(self) -> None:
        if self.crash_on_focus:
            self.closed = True
            raise Error("Target page, context or browser has been closed")

    def locator(self, selector: str) -> StubLocator:
        return StubLocator(self, selector)


class StubContext:
    def __init__(self, pages: list[StubPage]) -> None:
        self.pages = list(pages)
        self.handlers: dict[str, object] = {}
        self.default_timeout: float | None = None
        self.closed = False

    def on(self, event: str, handler) -> None:  # type: ignore[no-untyped-def]
        self.handlers[event] = handler

    async def new_page(self) -> StubPage:
        page = StubPage()
        self.pages.append(page)
        return page

    def set_default_timeout(self, timeout: float) -> None:
        self.default_timeout = timeout

    async def close(self) -> None:
        self.closed = True

    def close_page(self, page: StubPage) -> None:
        page.closed = True
        self.pages.remove(page)


class StubPlaywright:
    def __init__(self, context: StubContext | None = None, failure: Exception | None = None) -> None:
        self.chromium = self
        self._context = context
        self._failure = failure
        self.launches: list[tuple[str, dict[str, object]]] = []
        self.stopped = False

    async def launch_persistent_context(self, user_data_dir: str, **kwargs: object) -> StubContext:
        self.launches.append((user_data_dir, kwargs))
        if self._failure is not None:
            raise self._failure
        assert self._context is not None
        return self._context

    async def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def install_playwright(monkeypatch):
    def _install(stub: StubPlaywright) -> StubPlaywright:
        class _Starter:
            async def start(self) -> StubPlaywright:
                return stub

        monkeypatch.setattr(playwright_session, "async_playwright", lambda: _Starter())
        return stub

    return _install


def build_session(tmp_path: Path) -> PlaywrightAutomationSession:
    return PlaywrightAutomationSession(BrowserConfig(extension_path=tmp_path, headless=True))


def test_start_loads_extension_into_persistent_context(tmp_path, install_playwright):
    blank = StubPage()
    stub = install_playwright(StubPlaywright(StubContext([blank])))
    session = build_session(tmp_path)

    async def scenario():
        await session.start()
        try:
            return await session.window_handles(), await session.current_window()
        finally:
            await session.quit()

    handles, current = asyncio.run(scenario())

    assert handles == ["w1"]
    assert current == "w1"
    _, kwargs = stub.launches[0]
    assert kwargs["headless"] is True
    assert f"--load-extension={tmp_path.resolve()}" in kwargs["args"]
    assert f"--disable-extensions-except={tmp_path.resolve()}" in kwargs["args"]


def test_launch_failure_is_reported_as_automation_error(tmp_path, install_playwright):
    stub = install_playwright(
        StubPlaywright(failure=Error("Chromium distribution 'chrome' is not found"))
    )
    session = build_session(tmp_path)

    with pytest.raises(AutomationError, match="Failed to launch Chromium"):
        asyncio.run(session.start())

    profile_dir, _ = stub.launches[0]
    assert stub.stopped is True
    assert not Path(profile_dir).exists()


def test_handles_are_never_reused_and_closed_pages_are_pruned(tmp_path, install_playwright):
    first, second = StubPage(), StubPage()
    context = StubContext([first, second])
    install_playwright(StubPlaywright(context))
    session = build_session(tmp_path)

    async def scenario():
        await session.start()
        initial = await session.window_handles()
        context.close_page(first)
        after_close = await session.window_handles()
        context.pages.append(StubPage("chrome-extension://id/popup.html"))
        after_popup = await session.window_handles()
        opened = await session.new_window()
        current = await session.current_window()
        await session.quit()
        return initial, after_close, after_popup, opened, current

    initial, after_close, after_popup, opened, current = asyncio.run(scenario())

    assert initial == ["w1", "w2"]
    assert after_close == ["w2"]
    assert after_popup == ["w2", "w3"]
    assert opened == "w4"
    assert current == "w4"


def test_count_waits_for_a_first_match_within_implicit_wait(tmp_path, install_playwright):
    page = StubPage(selectors=("[data-broadcast-on-sign]",))
    context = StubContext([page])
    install_playwright(StubPlaywright(context))
    session = build_session(tmp_path)

    async def scenario():
        await session.start()
        await session.set_implicit_wait(0.25)
        present = await session.count("[data-broadcast-on-sign]")
        missing = await session.count("#missing")
        await session.quit()
        return present, missing

    present, missing = asyncio.run(scenario())

    assert (present, missing) == (1, 0)
    assert context.default_timeout == 250
    assert page.waits == [
        ("[data-broadcast-on-sign]", "attached", 250),
        ("#missing", "attached", 250),
    ]


def test_playwright_errors_are_translated(tmp_path, install_playwright):
    page = StubPage()
    install_playwright(StubPlaywright(StubContext([page])))
    session = build_session(tmp_path)

    async def scenario():
        await session.start()
        with pytest.raises(ElementTimeout):
            await session.click("#confirm", timeout=0.1)
        page.crash_on_focus = True
        with pytest.raises(WindowNotFound):
            await session.switch_to("w1")
        with pytest.raises(WindowNotFound):
            await session.switch_to("w9")
        await session.quit()

    asyncio.run(scenario())
