"""UI automation capability consumed by the wallet glue."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..errors import ErrorKind, GlueError

LOGGER = logging.getLogger(__name__)


class AutomationError(GlueError):
    """Raised when a browser automation call fails."""

    kind = ErrorKind.AUTOMATION


class WindowNotFound(AutomationError):
    """Raised when a window handle does not refer to an open window."""

    kind = ErrorKind.WINDOW_NOT_FOUND


class ElementTimeout(AutomationError):
    """Raised when a control does not become visible in time."""

    kind = ErrorKind.ELEMENT_TIMEOUT


class WindowTimeout(ElementTimeout):
    """Raised when an expected popup window never opens."""

    kind = ErrorKind.WINDOW_TIMEOUT


class AutomationSession(ABC):
    """Interface for the single shared browser automation session.

    Window handles are opaque strings. Element lookups are selector based;
    which selectors to use is configuration, not part of this interface.
    """

    @abstractmethod
    async def start(self) -> None:
        """Launch the browser with the wallet extension loaded."""

    @abstractmethod
    async def quit(self) -> None:
        """Terminate the browser session."""

    @abstractmethod
    async def window_handles(self) -> list[str]:
        """Return the handles of all open windows."""

    @abstractmethod
    async def current_window(self) -> Optional[str]:
        """Return the focused window, or ``None`` if it has been closed."""

    @abstractmethod
    async def switch_to(self, handle: str) -> None:
        """Focus ``handle``; raise :class:`WindowNotFound` if it is gone."""

    @abstractmethod
    async def new_window(self) -> str:
        """Open and focus a blank window, returning its handle."""

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Load ``url`` in the focused window."""

    @abstractmethod
    async def current_url(self) -> str:
        """Return the URL of the focused window."""

    @abstractmethod
    async def title(self) -> str:
        """Return the document title of the focused window."""

    @abstractmethod
    async def count(self, selector: str) -> int:
        """Return how many elements match ``selector``.

        Like a find-all lookup under an implicit wait, this waits up to the
        session-wide implicit wait for a first match and returns 0 only once
        that wait has run out.
        """

    @abstractmethod
    async def wait_visible(self, selector: str, timeout: float) -> None:
        """Wait until ``selector`` is visible; raise :class:`ElementTimeout`."""

    @abstractmethod
    async def text(self, selector: str) -> str:
        """Return the visible text of the first element matching ``selector``."""

    @abstractmethod
    async def attribute(self, selector: str, name: str) -> Optional[str]:
        """Return attribute ``name`` of the first element matching ``selector``."""

    @abstractmethod
    async def click(self, selector: str, timeout: float) -> None:
        """Click the first element matching ``selector`` once."""

    @abstractmethod
    async def type_text(self, selector: str, text: str, timeout: float) -> None:
        """Type ``text`` into the element matching ``selector``."""

    @abstractmethod
    async def close_window(self) -> None:
        """Close the focused window."""

    @abstractmethod
    async def execute_script(self, script: str) -> Any:
        """Run ``script`` in the page context of the focused window."""

    @abstractmethod
    async def set_implicit_wait(self, seconds: float) -> None:
        """Set the session-wide default wait for element lookups."""


async def window_exists(session: AutomationSession, handle: Optional[str]) -> bool:
    """Return True when ``handle`` is still among the open windows."""

    if handle is None:
        return False
    return handle in await session.window_handles()


async def restore_focus(session: AutomationSession, origin: Optional[str]) -> None:
    """Switch back to ``origin`` if that window still exists."""

    if origin is None or not await window_exists(session, origin):
        return
    try:
        await session.switch_to(origin)
    except WindowNotFound:
        LOGGER.debug("Window %s closed before focus could be restored", origin)
