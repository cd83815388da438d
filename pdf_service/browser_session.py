"""
Shared Chromium session.

One Playwright Chromium instance serves every conversion in the process. It is
launched lazily on first use, relaunched after it disconnects, and closed on
shutdown. Concurrent callers that arrive while a launch is in progress await
that same launch instead of starting their own.
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable, Optional

from playwright.async_api import async_playwright

from .config import get_settings
from .errors import BrowserLaunchError
from .models import SessionState

if TYPE_CHECKING:
    from playwright.async_api import Browser, Playwright

logger = logging.getLogger(__name__)

# Chosen for headless-server stability; the sandbox is disabled.
CHROMIUM_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-software-rasterizer",
    "--disable-extensions",
    "--disable-background-networking",
    "--disable-default-apps",
    "--disable-sync",
    "--disable-translate",
    "--hide-scrollbars",
    "--metrics-recording-only",
    "--mute-audio",
    "--no-first-run",
    "--safebrowsing-disable-auto-update",
]


class BrowserSession:
    """Owns the shared browser handle and its lifecycle state."""

    def __init__(
        self,
        headless: bool = True,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        self.headless = headless
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch_task: Optional[asyncio.Task] = None
        self._state = SessionState.UNSTARTED
        self.launch_count = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return (
            self._state is SessionState.READY
            and self._browser is not None
            and self._browser.is_connected()
        )

    async def acquire(self) -> Browser:
        """
        Return a connected browser, launching one if needed.

        Raises:
            BrowserLaunchError: if the launch fails. The session stays
                retryable and the next call starts a fresh launch.
        """
        if self.is_ready:
            return self._browser

        if self._launch_task is None or self._launch_task.done():
            self._state = SessionState.LAUNCHING
            self._launch_task = asyncio.ensure_future(self._launch())

        task = self._launch_task
        try:
            # Shielded so a cancelled caller does not abort the shared launch
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # The launch itself was cancelled by shutdown(), not this caller
            if task.cancelled() and not asyncio.current_task().cancelling():
                raise BrowserLaunchError("Chromium launch cancelled by shutdown") from None
            raise
        finally:
            if self._launch_task is task and task.done():
                self._launch_task = None

    async def _launch(self) -> Browser:
        self.launch_count += 1
        logger.info(f"Launching Chromium (launch #{self.launch_count}, headless={self.headless})")
        try:
            if self._playwright is None:
                self._playwright = await self._playwright_factory().start()
            browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=CHROMIUM_LAUNCH_ARGS,
            )
        except Exception as e:
            self._state = SessionState.UNSTARTED
            self._browser = None
            logger.error(f"Chromium launch failed: {e}")
            raise BrowserLaunchError(f"Failed to launch Chromium: {e}") from e

        browser.on("disconnected", self._on_disconnected)
        self._browser = browser
        self._state = SessionState.READY
        logger.info("Chromium ready")
        return browser

    def _on_disconnected(self, browser: Browser) -> None:
        # Ignore stale handles and our own shutdown
        if browser is not self._browser:
            return
        logger.warning("Chromium disconnected; it will be relaunched on next use")
        self._browser = None
        self._state = SessionState.CRASHED

    async def shutdown(self) -> None:
        """Close the browser and the Playwright driver. Errors are logged, not raised."""
        if self._launch_task is not None and not self._launch_task.done():
            self._launch_task.cancel()
        self._launch_task = None

        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        self._state = SessionState.UNSTARTED

        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")

        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright: {e}")

        if browser is not None:
            logger.info("Chromium session shut down")


@lru_cache()
def get_browser_session() -> BrowserSession:
    """Process-wide browser session."""
    return BrowserSession(headless=get_settings().browser_headless)


async def shutdown_browser_session() -> None:
    """Tear down the process-wide session if it was ever created."""
    if get_browser_session.cache_info().currsize:
        await get_browser_session().shutdown()
