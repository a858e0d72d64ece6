"""
Inlines same-origin stylesheets and scripts into the prerendered page.

Response bodies are captured while the page loads. Once the page is ready,
<link rel=stylesheet> and <script src> elements with captured content are
swapped for inline <style>/<script> elements, so a client loading the
snapshot does not need another round trip for them.
"""

import asyncio
import logging
from typing import Dict, Set

from playwright.async_api import Page, Response

from utils.urls import is_same_origin

logger = logging.getLogger(__name__)

INLINE_STYLESHEETS_JS = """(links, contents) => {
  links.forEach(link => {
    const css = contents[link.href];
    if (css) {
      const style = document.createElement('style');
      style.textContent = css;
      link.replaceWith(style);
    }
  });
}"""

# textContent rather than text: the snapshot only needs the source, the
# script already ran during page load.
INLINE_SCRIPTS_JS = """(scripts, contents) => {
  scripts.forEach(script => {
    const js = contents[script.src];
    if (js) {
      const s = document.createElement('script');
      s.textContent = js;
      const type = script.getAttribute('type');
      if (type !== null) {
        s.setAttribute('type', type);
      }
      script.replaceWith(s);
    }
  });
}"""


class ResourceInliner:
    """Captures and inlines local assets for one render."""

    def __init__(self, target_url: str, inline_styles: bool = True, inline_scripts: bool = True):
        self.target_url = target_url
        self.inline_styles = inline_styles
        self.inline_scripts = inline_scripts
        self.stylesheets: Dict[str, str] = {}
        self.scripts: Dict[str, str] = {}
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.inline_styles or self.inline_scripts

    def attach(self, page: Page):
        """Start listening for responses. Must happen before navigation."""
        page.on("response", self.on_response)

    def on_response(self, response: Response):
        task = asyncio.ensure_future(self.capture(response))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def capture(self, response: Response):
        href = response.url
        if not is_same_origin(href, self.target_url):
            return

        resource_type = response.request.resource_type
        if resource_type == "stylesheet" and self.inline_styles:
            bucket = self.stylesheets
        elif resource_type == "script" and self.inline_scripts:
            bucket = self.scripts
        else:
            return

        try:
            bucket[href] = await response.text()
        except Exception as e:
            # Aborted or failed responses have no body; the element stays external
            logger.debug(f"Could not read body of {href}: {str(e)}")

    async def drain(self):
        """Wait until every captured response body has been read."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def inline(self, page: Page) -> int:
        """
        Replace external stylesheets/scripts with their captured contents.

        Returns:
            Number of captured resources available for inlining
        """
        await self.drain()

        count = 0
        if self.inline_styles and self.stylesheets:
            await page.eval_on_selector_all(
                'link[rel="stylesheet"]', INLINE_STYLESHEETS_JS, self.stylesheets
            )
            count += len(self.stylesheets)

        if self.inline_scripts and self.scripts:
            await page.eval_on_selector_all("script[src]", INLINE_SCRIPTS_JS, self.scripts)
            count += len(self.scripts)

        return count
