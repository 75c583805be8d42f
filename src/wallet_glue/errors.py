"""Error kinds raised by the wallet glue."""

from __future__ import annotations

import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    """Classification attached to every glue failure."""

    STARTUP_FAILURE = "startup_failure"
    ELEMENT_TIMEOUT = "element_timeout"
    WINDOW_TIMEOUT = "window_timeout"
    INVALID_ACTION = "invalid_action"
    WINDOW_VANISHED = "window_vanished"
    WINDOW_NOT_FOUND = "window_not_found"
    UNIMPLEMENTED = "unimplemented"
    TERMINATED_SESSION = "terminated_session"
    SESSION_BUSY = "session_busy"
    AUTOMATION = "automation"


class GlueError(RuntimeError):
    """Base class for failures surfaced to the protocol caller."""

    kind: ErrorKind = ErrorKind.AUTOMATION


class StartupFailure(GlueError):
    """Raised when the extension window cannot be discovered during setup."""

    kind = ErrorKind.STARTUP_FAILURE


class InvalidAction(GlueError):
    """Raised when a decision has no control mapped for the request kind."""

    kind = ErrorKind.INVALID_ACTION

    def __init__(self, decision: object, request_kind: Optional[str] = None) -> None:
        self.decision = decision
        self.request_kind = request_kind
        where = f" for {request_kind}" if request_kind else ""
        super().__init__(f"unsupported action {decision!r}{where}")


class WindowVanished(GlueError):
    """A pending window closed before it could be classified."""

    kind = ErrorKind.WINDOW_VANISHED


class Unimplemented(GlueError):
    """Raised by protocol operations the wallet glue does not support."""

    kind = ErrorKind.UNIMPLEMENTED


class TerminatedSession(GlueError):
    """Raised when an operation is attempted after the terminal report."""

    kind = ErrorKind.TERMINATED_SESSION


class SessionBusy(GlueError):
    """Raised when the session queue is at its configured bound."""

    kind = ErrorKind.SESSION_BUSY
