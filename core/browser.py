"""
Browser manager for DevWebFeed prerendering
Owns the headless Chromium used for rendering and the shared instance
that is kept alive across renders when reuse is enabled.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from playwright.async_api import Browser, Page, async_playwright

from config import settings
from core.errors import BrowserLaunchError

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--disable-dev-shm-usage",  # Prevents memory issues in Docker
]


@dataclass
class ProcessHandle:
    """A browser handed out for one render."""

    browser: Browser
    shared: bool = False
    external: bool = False


class BrowserManager:
    """
    Hands out browsers for renders.

    At most one browser is tracked as the shared default. It is only used by
    callers asking for reuse and is dropped as soon as a render on it fails.
    """

    def __init__(
        self,
        launch_timeout_ms: int = settings.BROWSER_LAUNCH_TIMEOUT_MS,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        """
        Initialize the browser manager.

        Args:
            launch_timeout_ms: Max time to wait for Chromium to start
            playwright_factory: Returns a Playwright context manager (async_playwright)
        """
        self.launch_timeout_ms = launch_timeout_ms
        self._playwright_factory = playwright_factory
        self._playwright = None
        self._shared: Optional[Browser] = None
        self._shared_since: Optional[datetime] = None
        self._lock = asyncio.Lock()
        self._start_lock = asyncio.Lock()
        self.launch_count = 0

    @property
    def shared_browser(self) -> Optional[Browser]:
        return self._shared

    async def _ensure_playwright(self):
        async with self._start_lock:
            if self._playwright is None:
                self._playwright = await self._playwright_factory().start()
        return self._playwright

    async def _launch(self, headless: bool) -> Browser:
        """Start a new Chromium process"""
        try:
            playwright = await self._ensure_playwright()
            browser = await playwright.chromium.launch(
                headless=headless,
                args=LAUNCH_ARGS,
                timeout=self.launch_timeout_ms,
            )
        except Exception as e:
            logger.error(f"❌ Browser launch failed: {str(e)}")
            raise BrowserLaunchError(f"Failed to launch browser: {str(e)}") from e

        self.launch_count += 1
        logger.info(f"🚀 Launched headless={headless} Chromium (#{self.launch_count})")
        return browser

    async def acquire(
        self,
        existing_browser: Optional[Browser] = None,
        reuse: bool = False,
        headless: bool = True,
    ) -> ProcessHandle:
        """
        Get a browser for one render.

        Args:
            existing_browser: Caller owned browser. Used as is and never closed here.
            reuse: Reuse (or become) the shared default browser
            headless: Display mode for a newly launched browser

        Returns:
            ProcessHandle for the render

        Raises:
            BrowserLaunchError: If a new browser could not be started
        """
        if existing_browser is not None:
            logger.info("Connecting to provided chrome instance.")
            return ProcessHandle(browser=existing_browser, external=True)

        if not reuse:
            return ProcessHandle(browser=await self._launch(headless))

        async with self._lock:
            if self._shared is not None and self._shared.is_connected():
                logger.info("Reusing previously launched chrome instance.")
                return ProcessHandle(browser=self._shared, shared=True)

            if self._shared is not None:
                logger.warning("⚠️  Shared chrome instance disconnected, launching a new one")
                self._shared = None

            browser = await self._launch(headless)
            self._shared = browser
            self._shared_since = datetime.now()
            return ProcessHandle(browser=browser, shared=True)

    async def release(self, handle: ProcessHandle, page: Optional[Page] = None):
        """
        Return a browser after a successful render.

        Shared and caller owned browsers stay alive, only the page is closed.
        Browsers launched for this render alone are closed.
        """
        if handle.shared or handle.external:
            await self._close_page(page)
            return

        await self._close_browser(handle.browser)

    async def invalidate(self, handle: Optional[ProcessHandle] = None, page: Optional[Page] = None):
        """
        Drop a browser that failed a render.

        The shared default is forgotten (when it is the failing browser, or
        unconditionally without a handle) so the next acquire launches fresh.
        Whatever this manager opened for the render is closed.
        """
        to_close: Optional[Browser] = None

        async with self._lock:
            if handle is None:
                to_close = self._shared
                self._shared = None
            elif handle.shared and self._shared is handle.browser:
                self._shared = None
                self._shared_since = None
                logger.warning("♻️  Cleared shared chrome instance after failed render")

        if handle is not None:
            if handle.external:
                await self._close_page(page)
                return
            to_close = handle.browser

        await self._close_browser(to_close)

    async def _close_page(self, page: Optional[Page]):
        if page is None:
            return
        try:
            await page.close()
        except Exception as e:
            logger.warning(f"⚠️  Error closing page: {str(e)}")

    async def _close_browser(self, browser: Optional[Browser]):
        if browser is None:
            return
        try:
            await browser.close()
        except Exception as e:
            logger.warning(f"⚠️  Error closing browser: {str(e)}")

    def status(self) -> dict:
        """
        Describe the shared browser (for monitoring).

        Returns:
            Dictionary with browser status
        """
        shared = self._shared
        age = (
            (datetime.now() - self._shared_since).total_seconds()
            if shared is not None and self._shared_since
            else None
        )
        return {
            "shared_browser": "connected" if shared is not None and shared.is_connected()
            else ("disconnected" if shared is not None else "none"),
            "shared_age_seconds": round(age, 2) if age is not None else None,
            "launch_count": self.launch_count,
        }

    async def shutdown(self):
        """Close the shared browser and stop Playwright"""
        logger.info("🧹 Shutting down browser manager...")

        async with self._lock:
            shared, self._shared = self._shared, None
            self._shared_since = None

        await self._close_browser(shared)

        if self._playwright is not None:
            with contextlib.suppress(Exception):
                await self._playwright.stop()
            self._playwright = None

        logger.info("✅ Browser manager shut down")
