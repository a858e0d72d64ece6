"""
Server-side rendering of the site with headless Chromium.

The Renderer is created once per process and owns the render cache and the
browser manager. A render checks the cache, loads the page in Chromium with
request interception and asset inlining, waits until the post list is in the
DOM, serializes it and caches the result.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from config import settings
from core.browser import BrowserManager
from core.errors import NavigationTimeoutError, RenderError
from core.inliner import ResourceInliner
from core.interceptor import RequestInterceptor, StylesheetOverride
from core.render_cache import RenderCache
from utils.urls import origin_of, with_query_param

logger = logging.getLogger(__name__)


@dataclass
class RenderOptions:
    """
    Options for one render.

    use_cache: Consult the cache. A render with use_cache=False still stores its result.
    only_critical_requests: Abort requests that cannot change the DOM (images, media, fonts).
    inline_styles: Inline same-origin stylesheets.
    inline_scripts: Inline same-origin scripts.
    reuse_chrome: Keep one browser alive across renders.
    headless: Display mode of a newly launched browser. No effect on a reused one.
    existing_browser: Caller owned browser. reuse_chrome and headless are ignored.
    """

    use_cache: bool = True
    only_critical_requests: bool = True
    inline_styles: bool = True
    inline_scripts: bool = True
    reuse_chrome: bool = settings.SSR_REUSE_CHROME
    headless: bool = True
    existing_browser: Optional[Any] = None

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "RenderOptions":
        """
        Build options from request query toggles.

        The presence of nocache, noinline, noreduce, reusechrome or noheadless
        flips the matching option away from its default.
        """
        options = cls()
        if "nocache" in params:
            options.use_cache = False
        if "noinline" in params:
            options.inline_styles = False
            options.inline_scripts = False
        if "noreduce" in params:
            options.only_critical_requests = False
        if "reusechrome" in params:
            options.reuse_chrome = not cls.reuse_chrome
        if "noheadless" in params:
            options.headless = False
        return options


class Renderer:
    """Prerenders pages and keeps the results cached."""

    def __init__(
        self,
        browser_manager: Optional[BrowserManager] = None,
        cache: Optional[RenderCache] = None,
        navigation_timeout_ms: int = settings.SSR_NAVIGATION_TIMEOUT_MS,
        ready_selector: str = settings.SSR_READY_SELECTOR,
        marker_param: str = settings.SSR_MARKER_PARAM,
        blocked_patterns=None,
        stylesheet_override: Optional[StylesheetOverride] = None,
    ):
        self.browser_manager = browser_manager or BrowserManager()
        self.cache = cache if cache is not None else RenderCache()
        self.navigation_timeout_ms = navigation_timeout_ms
        self.ready_selector = ready_selector
        self.marker_param = marker_param
        self.blocked_patterns = (
            list(blocked_patterns)
            if blocked_patterns is not None
            else list(settings.SSR_BLOCKED_URL_PATTERNS)
        )
        self.stylesheet_override = stylesheet_override or StylesheetOverride(
            settings.SSR_PRIMARY_STYLESHEET, settings.SSR_STYLESHEET_OVERRIDE_PATH
        )
        self._inflight: Dict[str, asyncio.Future] = {}
        self.render_count = 0

    async def render(self, url: str, options: Optional[RenderOptions] = None) -> str:
        """
        Render a URL and return the serialized page.

        Args:
            url: Fully qualified URL to prerender (also the cache key)
            options: RenderOptions, defaults when omitted

        Returns:
            Serialized page output as an html string

        Raises:
            RenderError: If the browser failed to launch or the page never became ready
        """
        options = options or RenderOptions()

        if not options.use_cache:
            return await self._render(url, options)

        cached = self.cache.get(url)
        if cached is not None:
            return cached

        # Concurrent misses for the same URL share one render
        inflight = self._inflight.get(url)
        if inflight is not None:
            logger.info(f"Waiting for in-flight render of {url}")
            return await asyncio.shield(inflight)

        future = asyncio.get_running_loop().create_future()
        self._inflight[url] = future
        try:
            html = await self._render(url, options)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unawaited failure is not reported at GC
            future.exception()
            raise
        else:
            future.set_result(html)
            return html
        finally:
            self._inflight.pop(url, None)

    async def _render(self, url: str, options: RenderOptions) -> str:
        tic = time.monotonic()
        generation = self.cache.generation

        handle = await self.browser_manager.acquire(
            existing_browser=options.existing_browser,
            reuse=options.reuse_chrome,
            headless=options.headless,
        )

        page = None
        inliner = ResourceInliner(url, options.inline_styles, options.inline_scripts)
        interceptor = RequestInterceptor(
            only_critical_requests=options.only_critical_requests,
            inline_styles=options.inline_styles,
            blocked_patterns=self.blocked_patterns,
            stylesheet_override=self.stylesheet_override,
        )

        # Tell the page it is being rendered by headless on the server
        url_to_fetch = with_query_param(url, self.marker_param, "")

        try:
            page = await handle.browser.new_page()
            await page.route("**/*", interceptor.handle)
            if inliner.enabled:
                inliner.attach(page)

            await page.goto(
                url_to_fetch, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms
            )
            await page.wait_for_selector(
                self.ready_selector, state="attached", timeout=self.navigation_timeout_ms
            )
        except asyncio.CancelledError:
            await self.browser_manager.release(handle, page)
            raise
        except Exception as e:
            logger.error(f"❌ Render of {url} failed before the page was ready: {str(e)}")
            await self.browser_manager.invalidate(handle, page)
            raise NavigationTimeoutError(
                f"page.goto/wait_for_selector failed for {url}: {str(e)}"
            ) from e

        try:
            if inliner.enabled:
                await inliner.inline(page)
            html = await page.content()
        except asyncio.CancelledError:
            await self.browser_manager.release(handle, page)
            raise
        except Exception as e:
            logger.error(f"❌ Serializing {url} failed: {str(e)}")
            await self.browser_manager.invalidate(handle, page)
            raise RenderError(f"Failed to serialize {url}: {str(e)}") from e

        await self.browser_manager.release(handle, page)

        self.render_count += 1
        self.cache.set(url, html, generation=generation)

        logger.info(f"Headless rendered {url} in: {(time.monotonic() - tic) * 1000:.0f}ms")
        return html

    def invalidate(self, url: str) -> bool:
        return self.cache.delete(url)

    def invalidate_origin(self, origin: str) -> int:
        count = self.cache.delete_by_origin(origin)
        logger.info(f"🧹 Dropped {count} cached render(s) for {origin}")
        return count

    def invalidate_all(self) -> int:
        count = self.cache.clear()
        logger.info(f"🧹 Cleared render cache ({count} entries)")
        return count

    async def refresh(self, url: str, options: Optional[RenderOptions] = None) -> Optional[str]:
        """
        Drop every cached variant of the URL's origin and render the URL again.

        Used after post changes so the next visitor gets a warm cache.
        Failures are logged and not raised, the next request renders on demand.
        """
        self.invalidate_origin(origin_of(url))

        options = options or RenderOptions()
        options.use_cache = False
        try:
            return await self.render(url, options)
        except RenderError as e:
            logger.error(f"❌ Cache warming for {url} failed: {str(e)}")
            return None

    def status(self) -> dict:
        return {
            "cached_pages": len(self.cache),
            "cache_generation": self.cache.generation,
            "renders": self.render_count,
            "in_flight": len(self._inflight),
            "browser": self.browser_manager.status(),
        }

    async def shutdown(self):
        await self.browser_manager.shutdown()
