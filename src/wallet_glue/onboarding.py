"""One-time wallet setup: locate the extension and import the test wallet."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .browser.base import AutomationSession, WindowNotFound
from .config import SelectorConfig, TimingConfig, WalletConfig
from .errors import StartupFailure

LOGGER = logging.getLogger(__name__)

EXTENSION_MARKER = "-extension://"


def extension_base_url(url: str) -> str:
    """Return the popup URL of the extension that served ``url``."""

    base = url.split("#", 1)[0]
    base = base[: base.rfind("/")]
    return base + "/popup.html"


class WalletOnboarding:
    """Import an existing wallet through the extension's onboarding tab."""

    def __init__(
        self,
        selectors: SelectorConfig,
        wallet: WalletConfig,
        timing: TimingConfig,
    ) -> None:
        self._selectors = selectors
        self._wallet = wallet
        self._timing = timing

    async def run(self, session: AutomationSession) -> str:
        """Perform the setup sequence and return the extension popup URL."""

        location = await self.find_extension_window(session)
        extension_url = extension_base_url(location)
        LOGGER.info("Found extension at %s", extension_url)
        await self._import_wallet(session)
        return extension_url

    async def find_extension_window(self, session: AutomationSession) -> str:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timing.discovery_timeout
        while True:
            location = await self._scan(session)
            if location is not None:
                return location
            if loop.time() >= deadline:
                raise StartupFailure("Failed to find extension window.")
            await asyncio.sleep(0.25)

    async def _scan(self, session: AutomationSession) -> Optional[str]:
        for handle in await session.window_handles():
            try:
                await session.switch_to(handle)
            except WindowNotFound:
                continue
            url = await session.current_url()
            if EXTENSION_MARKER in url:
                return url
        return None

    async def _import_wallet(self, session: AutomationSession) -> None:
        selectors = self._selectors
        timeout = self._timing.ui_timeout

        await self._press(session, selectors.import_existing)
        await self._press(session, selectors.import_by_phrase)

        await session.wait_visible(selectors.password, timeout)
        await session.type_text(selectors.password, self._wallet.password, timeout)
        await session.wait_visible(selectors.password_confirm, timeout)
        await session.type_text(selectors.password_confirm, self._wallet.password, timeout)
        await self._press(session, selectors.password_continue)

        await session.wait_visible(selectors.recovery_phrase, timeout)
        await session.type_text(selectors.recovery_phrase, self._wallet.recovery_phrase, timeout)
        await self._press(session, selectors.import_wallet)

        await session.wait_visible(selectors.import_done, timeout)
        LOGGER.debug("Wallet imported; closing onboarding tab")
        await session.close_window()
        handles = await session.window_handles()
        if handles:
            await session.switch_to(handles[0])

    async def _press(self, session: AutomationSession, selector: str) -> None:
        await session.wait_visible(selector, self._timing.ui_timeout)
        await session.click(selector, self._timing.ui_timeout)
