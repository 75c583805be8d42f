"""Virtual X display for running the headed, extension-enabled browser."""

from __future__ import annotations

import logging
import os
import shutil
from typing import Optional

from pyvirtualdisplay import Display

LOGGER = logging.getLogger(__name__)


class VirtualDisplayManager:
    """Manage an Xvfb display lifecycle around the browser session."""

    def __init__(self, enabled: bool = True, width: int = 1920, height: int = 1080) -> None:
        self.enabled = enabled
        self._width = width
        self._height = height
        self._display: Optional[Display] = None

    def __enter__(self) -> Optional[str]:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def start(self) -> Optional[str]:
        if not self.enabled:
            LOGGER.debug("Virtual display disabled; using the current display")
            return None
        if shutil.which("Xvfb") is None:
            LOGGER.warning("Xvfb not found; continuing without a virtual display")
            self.enabled = False
            return None
        LOGGER.debug("Starting virtual display %sx%s", self._width, self._height)
        self._display = Display(visible=False, size=(self._width, self._height))
        self._display.start()
        display_var = os.environ.get("DISPLAY")
        if not display_var:
            raise RuntimeError(
                "DISPLAY environment variable missing after starting virtual display"
            )
        return display_var

    def stop(self) -> None:
        if self._display:
            LOGGER.debug("Stopping virtual display")
            self._display.stop()
        self._display = None
