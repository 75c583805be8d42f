"""Factories for constructing components from configuration."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from .browser.display import VirtualDisplayManager
from .browser.playwright_session import PlaywrightAutomationSession
from .config import BrowserConfig, HarnessConfig
from .events import ConsoleSubscriber, EventSubscriber


def build_session(config: BrowserConfig) -> PlaywrightAutomationSession:
    return PlaywrightAutomationSession(config)


def build_display(config: BrowserConfig) -> VirtualDisplayManager:
    return VirtualDisplayManager(
        enabled=config.virtual_display,
        width=config.viewport_width,
        height=config.viewport_height,
    )


def build_subscriber() -> EventSubscriber:
    return ConsoleSubscriber()


def build_test_url(config: HarnessConfig) -> str:
    """Return the harness URL, pointing it at the glue transport when one is set."""

    if not config.glue_url:
        return config.test_url
    parts = urlsplit(config.test_url)
    return urlunsplit(parts._replace(fragment=f"glue={config.glue_url}"))
