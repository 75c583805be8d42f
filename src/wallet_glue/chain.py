"""Scripted chain activation through a secondary dapp window."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Collection

from .browser.base import AutomationSession, WindowTimeout, restore_focus
from .config import ChainConfig, SelectorConfig
from .models import ActivateChain
from .session import SerializedSession

LOGGER = logging.getLogger(__name__)

REQUEST_ACCOUNTS_SCRIPT = 'ethereum.request({method:"eth_requestAccounts"});'


def add_chain_script(action: ActivateChain, chain: ChainConfig) -> str:
    """Build the ``wallet_addEthereumChain`` request run in the dapp page."""

    request = {
        "method": "wallet_addEthereumChain",
        "params": [
            {
                "chainId": action.chain_id,
                "chainName": chain.chain_name,
                "nativeCurrency": {
                    "name": chain.currency_name,
                    "symbol": chain.currency_symbol,
                    "decimals": chain.currency_decimals,
                },
                "rpcUrls": [action.rpc_url],
                "blockExplorerUrls": chain.block_explorer_urls,
            },
            chain.requester,
            chain.requester_name,
        ],
    }
    return f"ethereum.request({json.dumps(request)});"


async def wait_for_new_window(
    session: AutomationSession,
    baseline: Collection[str],
    timeout: float,
    poll_interval: float = 0.1,
) -> str:
    """Poll until a window outside ``baseline`` opens and return its handle."""

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        for handle in await session.window_handles():
            if handle not in baseline:
                return handle
        if loop.time() >= deadline:
            raise WindowTimeout(f"no new window opened within {timeout} seconds")
        await asyncio.sleep(poll_interval)


class ChainActivator:
    """Add a chain to the wallet by driving a dapp page and its popups."""

    def __init__(
        self,
        session: SerializedSession[AutomationSession],
        selectors: SelectorConfig,
        chain: ChainConfig,
        *,
        ui_timeout: float = 2.0,
        window_timeout: float = 10.0,
    ) -> None:
        self._session = session
        self._selectors = selectors
        self._chain = chain
        self._ui_timeout = ui_timeout
        self._window_timeout = window_timeout

    async def activate(self, action: ActivateChain) -> None:
        await self._session.acquire(lambda session: self._activate(session, action))

    async def _activate(self, session: AutomationSession, action: ActivateChain) -> None:
        LOGGER.info("Activating chain %s via %s", action.chain_id, action.rpc_url)
        origin = await session.current_window()
        try:
            chain_list = await session.new_window()
            await session.navigate(self._chain.chain_list_url)
            known = set(await session.window_handles())

            await session.execute_script(REQUEST_ACCOUNTS_SCRIPT)
            popup = await wait_for_new_window(session, known, self._window_timeout)
            known.add(popup)
            await session.switch_to(popup)
            await self._press(session, self._selectors.dismiss_overlay)
            await self._press(session, self._selectors.grant_permission)

            await session.switch_to(chain_list)
            await session.execute_script(add_chain_script(action, self._chain))
            add_chain = await wait_for_new_window(session, known, self._window_timeout)
            await session.switch_to(add_chain)
            await self._press(session, self._selectors.add_chain)

            await session.switch_to(chain_list)
            await session.close_window()
        finally:
            await restore_focus(session, origin)

    async def _press(self, session: AutomationSession, selector: str) -> None:
        await session.wait_visible(selector, self._ui_timeout)
        await session.click(selector, self._ui_timeout)
