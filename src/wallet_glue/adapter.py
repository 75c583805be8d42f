"""Protocol-facing lifecycle that ties the session, watcher and dispatcher together."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Generic, Optional, TypeVar, Union

from .browser.base import AutomationSession
from .browser.display import VirtualDisplayManager
from .chain import ChainActivator
from .classifier import EventClassifier
from .config import GlueConfig
from .dispatcher import ActionDispatcher, DispatchOutcome, build_control_tables
from .errors import GlueError, TerminatedSession, Unimplemented
from .events import EventSubscriber
from .models import ActivateChain, AdapterState, Decision, Report, RequestKind
from .onboarding import WalletOnboarding
from .session import SerializedSession
from .watcher import WindowWatcher

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class Completion(Generic[T]):
    """Single-assignment completion signal.

    The first :meth:`set` stores the value and wakes every waiter; later
    calls return False and leave the stored value untouched.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._value: Optional[T] = None
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def set(self, value: T) -> bool:
        if self._done:
            return False
        self._value = value
        self._done = True
        self._event.set()
        return True

    def result(self) -> T:
        if not self._done:
            raise RuntimeError("completion has not been set")
        return self._value  # type: ignore[return-value]

    async def wait(self) -> T:
        await self._event.wait()
        return self.result()


class ProtocolAdapter:
    """Wallet implementation exposed to the test harness protocol."""

    def __init__(
        self,
        config: GlueConfig,
        session: AutomationSession,
        subscriber: EventSubscriber,
        display: Optional[VirtualDisplayManager] = None,
    ) -> None:
        self._config = config
        self._automation = session
        self._display = display
        self._session: SerializedSession[AutomationSession] = SerializedSession(
            session,
            max_pending=config.max_pending_acquisitions,
        )
        self.state = AdapterState.INITIALIZING
        self.extension_url: Optional[str] = None
        self.report_ready: Completion[Report] = Completion()

        timing = config.timing
        selectors = config.selectors
        self._classifier = EventClassifier(
            selectors,
            subscriber,
            amount_unit=config.chain.currency_symbol,
            amount_decimals=config.chain.currency_decimals,
        )
        self._watcher = WindowWatcher(self._session, self._classifier, timing.poll_interval)
        self._dispatcher = ActionDispatcher(
            self._session,
            build_control_tables(selectors),
            timeout=timing.ui_timeout,
        )
        self._chains = ChainActivator(
            self._session,
            selectors,
            config.chain,
            ui_timeout=timing.ui_timeout,
            window_timeout=timing.window_timeout,
        )
        self._onboarding = WalletOnboarding(selectors, config.wallet, timing)

    @classmethod
    async def create(
        cls,
        config: GlueConfig,
        session: AutomationSession,
        subscriber: EventSubscriber,
        display: Optional[VirtualDisplayManager] = None,
    ) -> "ProtocolAdapter":
        adapter = cls(config, session, subscriber, display)
        await adapter.start()
        return adapter

    @property
    def session(self) -> SerializedSession[AutomationSession]:
        return self._session

    async def start(self) -> None:
        """Launch the browser, import the wallet and begin watching windows."""

        if self.state is not AdapterState.INITIALIZING:
            raise GlueError(f"adapter cannot start from state {self.state.value}")
        LOGGER.info("Starting wallet session")
        try:
            if self._display:
                self._display.start()
            await self._automation.start()
            await self._session.acquire(self._setup)
        except Exception:
            self.state = AdapterState.TERMINATED
            await self._shutdown()
            raise
        self.state = AdapterState.READY
        await self._watcher.start()
        self.state = AdapterState.ACTIVE
        LOGGER.info("Wallet session active")

    async def launch(self, url: str) -> None:
        self._ensure_active()
        await self._session.acquire(lambda session: self._launch(session, url))

    async def activate_chain(self, chain_id: str, rpc_url: str) -> None:
        self._ensure_active()
        await self._chains.activate(ActivateChain(chain_id=chain_id, rpc_url=rpc_url))

    async def request_accounts(
        self, window_id: str, decision: Union[Decision, str]
    ) -> DispatchOutcome:
        return await self._dispatch(window_id, RequestKind.REQUEST_ACCOUNTS, decision)

    async def sign_message(self, window_id: str, decision: Union[Decision, str]) -> DispatchOutcome:
        return await self._dispatch(window_id, RequestKind.SIGN_MESSAGE, decision)

    async def send_transaction(
        self, window_id: str, decision: Union[Decision, str]
    ) -> DispatchOutcome:
        return await self._dispatch(window_id, RequestKind.SEND_TRANSACTION, decision)

    async def sign_transaction(
        self, window_id: str, decision: Union[Decision, str]
    ) -> DispatchOutcome:
        return await self._dispatch(window_id, RequestKind.SIGN_TRANSACTION, decision)

    async def switch_ethereum_chain(self, *args: Any, **kwargs: Any) -> None:
        self._ensure_active()
        raise Unimplemented("switchEthereumChain is not implemented")

    async def report(self, value: Any) -> None:
        """Deliver the terminal report, stop watching and close the browser."""

        if self.state is AdapterState.TERMINATED or self.report_ready.done:
            raise TerminatedSession("report has already been delivered")
        self.state = AdapterState.TERMINATED
        try:
            await self._shutdown()
        finally:
            self.report_ready.set(Report(value=value))

    async def close(self) -> None:
        """Tear the session down without a report, e.g. after a fatal error."""

        if self.state is AdapterState.TERMINATED:
            return
        self.state = AdapterState.TERMINATED
        await self._shutdown()

    async def _dispatch(
        self,
        window_id: str,
        request_kind: RequestKind,
        decision: Union[Decision, str],
    ) -> DispatchOutcome:
        self._ensure_active()
        return await self._dispatcher.dispatch(window_id, request_kind, decision)

    def _ensure_active(self) -> None:
        if self.state is AdapterState.TERMINATED:
            raise TerminatedSession("the wallet session has been terminated")
        if self.state is not AdapterState.ACTIVE:
            raise GlueError(f"the wallet session is not ready ({self.state.value})")

    async def _setup(self, session: AutomationSession) -> None:
        await session.set_implicit_wait(self._config.timing.implicit_wait)
        self.extension_url = await self._onboarding.run(session)

    async def _launch(self, session: AutomationSession, url: str) -> None:
        LOGGER.info("Opening test harness %s", url)
        await session.navigate(url)
        connect = self._config.selectors.connect_button
        await session.wait_visible(connect, self._config.timing.ui_timeout)
        await session.click(connect, self._config.timing.ui_timeout)

    async def _shutdown(self) -> None:
        self._watcher.stop()
        try:
            await self._session.acquire(self._quit)
            await self._watcher.join()
        finally:
            if self._display:
                self._display.stop()

    @staticmethod
    async def _quit(session: AutomationSession) -> None:
        LOGGER.info("Closing wallet session")
        await session.quit()
