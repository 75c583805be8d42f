"""Approve/reject dispatch against wallet popup windows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from .browser.base import AutomationSession, restore_focus
from .config import ControlPair, SelectorConfig
from .errors import ErrorKind, GlueError, InvalidAction
from .models import Decision, RequestKind
from .session import SerializedSession

LOGGER = logging.getLogger(__name__)

ControlTable = Mapping[Decision, str]


def build_control_tables(selectors: SelectorConfig) -> dict[RequestKind, ControlTable]:
    """Return the per-request-kind lookup of decision to control selector."""

    def table(pair: ControlPair) -> ControlTable:
        return {Decision.APPROVE: pair.approve, Decision.REJECT: pair.reject}

    return {
        RequestKind.REQUEST_ACCOUNTS: table(selectors.request_accounts),
        RequestKind.SIGN_MESSAGE: table(selectors.sign_message),
        RequestKind.SEND_TRANSACTION: table(selectors.send_transaction),
        RequestKind.SIGN_TRANSACTION: table(selectors.sign_transaction),
    }


@dataclass
class DispatchOutcome:
    """Result of one dispatch; ``error`` is set when it failed."""

    window: str
    request_kind: RequestKind
    decision: Union[Decision, str]
    control: Optional[str] = None
    error: Optional[GlueError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> None:
        if self.error is not None:
            raise self.error


class ActionDispatcher:
    """Locate and activate the control answering a popup request."""

    def __init__(
        self,
        session: SerializedSession[AutomationSession],
        tables: Mapping[RequestKind, ControlTable],
        timeout: float = 2.0,
    ) -> None:
        self._session = session
        self._tables = dict(tables)
        self._timeout = timeout

    def resolve(self, request_kind: RequestKind, decision: Union[Decision, str]) -> str:
        """Return the control selector for ``decision`` or raise :class:`InvalidAction`."""

        try:
            key = Decision(decision)
        except ValueError:
            raise InvalidAction(decision, request_kind.value) from None
        control = self._tables.get(request_kind, {}).get(key)
        if control is None:
            raise InvalidAction(decision, request_kind.value)
        return control

    async def try_dispatch(
        self,
        window: str,
        request_kind: RequestKind,
        decision: Union[Decision, str],
    ) -> DispatchOutcome:
        outcome = DispatchOutcome(window=window, request_kind=request_kind, decision=decision)
        try:
            outcome.control = self.resolve(request_kind, decision)
        except InvalidAction as exc:
            LOGGER.warning("Rejected %s for window %s: %s", request_kind.value, window, exc)
            outcome.error = exc
            return outcome
        try:
            await self._session.acquire(
                lambda session: self._activate(session, window, outcome.control or "")
            )
        except GlueError as exc:
            LOGGER.warning(
                "Dispatching %s %s to window %s failed: %s",
                decision,
                request_kind.value,
                window,
                exc,
            )
            outcome.error = exc
        return outcome

    async def dispatch(
        self,
        window: str,
        request_kind: RequestKind,
        decision: Union[Decision, str],
    ) -> DispatchOutcome:
        """Activate the control for ``decision``; raise the failure if there is one."""

        outcome = await self.try_dispatch(window, request_kind, decision)
        outcome.unwrap()
        return outcome

    async def _activate(self, session: AutomationSession, window: str, control: str) -> None:
        origin = await session.current_window()
        try:
            await session.switch_to(window)
            await session.wait_visible(control, self._timeout)
            LOGGER.debug("Clicking %s in window %s", control, window)
            await session.click(control, self._timeout)
        finally:
            await restore_focus(session, origin)
