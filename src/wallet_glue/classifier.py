"""Classification of newly opened wallet popups into semantic events."""

from __future__ import annotations

import enum
import logging
from typing import Iterable, Optional
from urllib.parse import parse_qs, urlsplit

from .browser.base import (
    AutomationError,
    AutomationSession,
    WindowNotFound,
    restore_focus,
    window_exists,
)
from .config import RouteConfig, SelectorConfig
from .errors import WindowVanished
from .events import EventSubscriber
from .models import (
    RequestAccountsEvent,
    RequestAccountsPayload,
    SemanticEvent,
    SendTransactionEvent,
    SignMessageEvent,
    SignMessagePayload,
    SignTransactionEvent,
    TransactionPayload,
)
from .units import ETHER_DECIMALS, parse_amount

LOGGER = logging.getLogger(__name__)


class PopupRoute(str, enum.Enum):
    """Page kinds the wallet opens in response to dapp requests."""

    REQUEST_ACCOUNTS = "request_accounts"
    TRANSACTION = "transaction"
    SIGN_MESSAGE = "sign_message"


def classify_url(url: str, routes: RouteConfig) -> Optional[PopupRoute]:
    """Map a popup URL onto the page kind it shows, or ``None`` if unknown."""

    values = parse_qs(urlsplit(url).query).get(routes.query_param)
    if not values:
        return None
    page = values[0]
    if page == routes.request_accounts:
        return PopupRoute.REQUEST_ACCOUNTS
    if page == routes.transaction:
        return PopupRoute.TRANSACTION
    if page == routes.sign_message:
        return PopupRoute.SIGN_MESSAGE
    return None


class EventClassifier:
    """Turn popup windows into semantic events for the protocol subscriber."""

    def __init__(
        self,
        selectors: SelectorConfig,
        subscriber: EventSubscriber,
        *,
        amount_unit: str = "BNB",
        amount_decimals: int = ETHER_DECIMALS,
        known_accounts: Iterable[str] = (),
    ) -> None:
        self._selectors = selectors
        self._subscriber = subscriber
        self._amount_unit = amount_unit
        self._amount_decimals = amount_decimals
        self._known_accounts = list(known_accounts)

    async def classify_batch(
        self,
        session: AutomationSession,
        handles: Iterable[str],
    ) -> list[SemanticEvent]:
        """Classify ``handles`` and emit one event per recognised window.

        Must run while holding exclusive access to ``session``. Windows that
        close before or during classification are skipped. Focus returns to
        the previously focused window when it still exists.
        """

        origin: Optional[str] = None
        try:
            origin = await session.current_window()
        except AutomationError:
            LOGGER.debug("No focused window before classification")

        emitted: list[SemanticEvent] = []
        try:
            for handle in handles:
                try:
                    event = await self.classify_window(session, handle)
                except WindowVanished:
                    LOGGER.debug("Window %s disappeared", handle)
                    continue
                if event is None:
                    continue
                self._subscriber.emit(event)
                emitted.append(event)
        finally:
            await restore_focus(session, origin)
        return emitted

    async def classify_window(
        self,
        session: AutomationSession,
        handle: str,
    ) -> Optional[SemanticEvent]:
        """Classify one window; raise :class:`WindowVanished` if it closes first."""

        try:
            return await self._classify(session, handle)
        except WindowNotFound as exc:
            raise WindowVanished(f"window {handle} closed") from exc
        except AutomationError:
            if await window_exists(session, handle):
                raise
            raise WindowVanished(f"window {handle} closed") from None

    async def _classify(self, session: AutomationSession, handle: str) -> Optional[SemanticEvent]:
        LOGGER.debug("Processing window %s", handle)
        await session.switch_to(handle)

        location = await session.current_url()
        route = classify_url(location, self._selectors.routes)

        if route is PopupRoute.REQUEST_ACCOUNTS:
            LOGGER.debug("Emitting requestaccounts")
            return RequestAccountsEvent(
                window_id=handle,
                payload=RequestAccountsPayload(accounts=list(self._known_accounts)),
            )

        if route is PopupRoute.SIGN_MESSAGE:
            LOGGER.debug("Emitting signmessage")
            message = await session.text(self._selectors.message_content)
            return SignMessageEvent(
                window_id=handle,
                payload=SignMessagePayload(message=message),
            )

        if route is PopupRoute.TRANSACTION:
            marker = self._selectors.broadcast_marker
            if await session.count(marker) == 0:
                LOGGER.info("Transaction window %s has no broadcast marker", handle)
                return None
            broadcast = await session.attribute(marker, self._selectors.broadcast_attribute)
            payload = await self._read_transaction(session)
            if broadcast == "true":
                LOGGER.debug("Emitting sendtransaction")
                return SendTransactionEvent(window_id=handle, payload=payload)
            LOGGER.debug("Emitting signtransaction")
            return SignTransactionEvent(window_id=handle, payload=payload)

        title = await session.title()
        LOGGER.warning("Unknown event from window %s @ %s (%s)", title, location, handle)
        return None

    async def _read_transaction(self, session: AutomationSession) -> TransactionPayload:
        recipient = await session.attribute(self._selectors.recipient, "title") or ""
        sender = await session.attribute(self._selectors.sender, "title") or ""
        spend = await session.text(self._selectors.spend_amount)
        return TransactionPayload(
            from_=sender,
            to=recipient.split(":", 1)[-1].strip(),
            data="",
            value=parse_amount(spend, self._amount_unit, self._amount_decimals),
        )
