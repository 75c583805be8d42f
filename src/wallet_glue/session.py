"""Exclusive, first-come first-served access to the shared automation session."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Deque, Generic, Optional, TypeVar

from .errors import SessionBusy

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class SerializedSession(Generic[T]):
    """Async mutex with a FIFO queue around one session object.

    Only one callback holds the session at a time. When a holder finishes,
    whatever the outcome, the session is handed straight to the oldest
    waiter, so queued acquisitions run in submission order and a failing
    callback cannot stall the ones behind it.
    """

    def __init__(self, session: T, max_pending: Optional[int] = None) -> None:
        self._session = session
        self._max_pending = max_pending
        self._locked = False
        self._waiters: Deque[asyncio.Future[None]] = deque()

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def pending(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    def peek(self) -> T:
        """Return the session without locking, for read-only polling only."""

        return self._session

    async def acquire(self, callback: Callable[[T], Awaitable[R]]) -> R:
        """Run ``callback`` with exclusive access and return its outcome."""

        async with self.exclusive() as session:
            return await callback(session)

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[T]:
        await self._lock()
        try:
            yield self._session
        finally:
            self._release()

    async def _lock(self) -> None:
        if not self._locked:
            LOGGER.debug("Locking")
            self._locked = True
            return
        if self._max_pending is not None and self.pending >= self._max_pending:
            raise SessionBusy(f"{self.pending} acquisitions already queued")
        LOGGER.debug("Queuing")
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Ownership was handed over just before the cancellation landed.
                self._release()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                LOGGER.debug("Running next queued task")
                waiter.set_result(None)
                return
        LOGGER.debug("Unlocking")
        self._locked = False
