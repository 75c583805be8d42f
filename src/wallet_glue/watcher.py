"""Background polling loop that discovers newly opened windows.

Every ``interval`` seconds the watcher enumerates the open windows through
the unlocked peek view, diffs the result against the previous snapshot and
hands the new handles to the classifier in a single exclusive acquisition.
Detection is eventual: a popup is seen at the first tick after it opens.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from .browser.base import AutomationSession
from .classifier import EventClassifier
from .models import SemanticEvent
from .session import SerializedSession

LOGGER = logging.getLogger(__name__)


def diff_snapshots(previous: Iterable[str], current: Iterable[str]) -> list[str]:
    """Return handles of ``current`` missing from ``previous``, in ``current`` order."""

    seen = set(previous)
    return [handle for handle in current if handle not in seen]


class WindowWatcher:
    """Detect popup windows and feed them to the :class:`EventClassifier`."""

    def __init__(
        self,
        session: SerializedSession[AutomationSession],
        classifier: EventClassifier,
        interval: float = 0.5,
    ) -> None:
        self._session = session
        self._classifier = classifier
        self._interval = interval
        self._previous: Optional[set[str]] = None
        self._pending: list[str] = []
        self._running = False
        self._stopped = False
        self._wake = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._task is not None:
            return
        await self.prime()
        self._running = True
        self._wake.clear()
        self._task = asyncio.create_task(self._run(), name="window-watcher")

    async def prime(self) -> None:
        """Record the current windows so that only later ones count as new."""

        self._previous = set(await self._session.peek().window_handles())

    def stop(self) -> None:
        """Stop future ticks; a tick already in progress runs to completion."""

        self._running = False
        self._stopped = True
        self._wake.set()

    async def join(self) -> None:
        if self._task is not None:
            await self._task

    async def tick(self) -> list[SemanticEvent]:
        """Classify windows opened since the last tick.

        Windows whose batch could not acquire the session (e.g. because the
        queue bound was hit) stay pending and are retried on the next tick.
        """

        current = await self._session.peek().window_handles()
        previous = self._previous if self._previous is not None else set()
        created = diff_snapshots(previous, current)
        self._previous = set(current)
        if self._stopped:
            return []
        if created:
            LOGGER.debug("Found windows %s", created)
            self._pending.extend(created)
        if not self._pending:
            return []
        return await self._session.acquire(self._process_pending)

    async def _process_pending(self, session: AutomationSession) -> list[SemanticEvent]:
        if self._stopped:
            return []
        popped, self._pending = self._pending, []
        return await self._classifier.classify_batch(session, popped)

    async def _run(self) -> None:
        while self._running:
            try:
                await self.tick()
            except Exception:
                LOGGER.exception("Window watcher tick failed")
            if not self._running:
                break
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
