"""Subscribers that receive classified wallet requests."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Iterable

from rich.console import Console

from .models import SemanticEvent


class EventSubscriber(ABC):
    """Interface for the protocol side that consumes semantic events."""

    @abstractmethod
    def emit(self, event: SemanticEvent) -> None:
        """Deliver one classified wallet request."""


class ConsoleSubscriber(EventSubscriber):
    """Print events to the console using Rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def emit(self, event: SemanticEvent) -> None:
        self._console.print(f"[{event.type.value.upper()}] window {event.window_id}", style="cyan")
        self._console.print(event.payload.model_dump(by_alias=True), style="dim")


class CallbackSubscriber(EventSubscriber):
    """Forward events to a plain callable, e.g. a transport's send function."""

    def __init__(self, callback: Callable[[SemanticEvent], None]) -> None:
        self._callback = callback

    def emit(self, event: SemanticEvent) -> None:
        self._callback(event)


class CompositeSubscriber(EventSubscriber):
    """Fan-out subscriber that propagates events to multiple subscribers."""

    def __init__(self, subscribers: Iterable[EventSubscriber]) -> None:
        self._subscribers = list(subscribers)

    def emit(self, event: SemanticEvent) -> None:
        for subscriber in self._subscribers:
            subscriber.emit(event)
