"""
Request interception for prerendering.

Every sub-resource request made by the page is classified before it reaches
the network: analytics and other blocked URLs are aborted, the site
stylesheet is answered from a local minified copy, and when only critical
requests are wanted anything that cannot change the DOM (images, media,
fonts) is aborted.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import urlsplit

from playwright.async_api import Route

logger = logging.getLogger(__name__)

CRITICAL_RESOURCE_TYPES = ("document", "script", "xhr", "fetch", "websocket")


class Disposition(str, Enum):
    ABORT = "abort"
    FULFILL = "fulfill"
    CONTINUE = "continue"


@dataclass(frozen=True)
class InterceptedRequest:
    url: str
    resource_type: str


class StylesheetOverride:
    """Local replacement for the site's primary stylesheet."""

    def __init__(self, name: str, path: str):
        self.name = name
        self.path = Path(path)
        self._body: Optional[str] = None
        self._unavailable = False

    def matches(self, url: str) -> bool:
        return urlsplit(url).path.endswith(self.name)

    def body(self) -> Optional[str]:
        """Contents of the local copy, or None when it cannot be read."""
        if self._body is None and not self._unavailable:
            try:
                self._body = self.path.read_text(encoding="utf-8")
            except OSError as e:
                # Not retried, the stylesheet is loaded from the network instead
                self._unavailable = True
                logger.warning(f"⚠️  Stylesheet override {self.path} unavailable: {str(e)}")
        return self._body


class RequestInterceptor:
    """Decides what happens to each request of one render."""

    def __init__(
        self,
        only_critical_requests: bool = True,
        inline_styles: bool = True,
        blocked_patterns: Iterable[str] = (),
        stylesheet_override: Optional[StylesheetOverride] = None,
    ):
        self.only_critical_requests = only_critical_requests
        self.inline_styles = inline_styles
        self.blocked_patterns = [re.compile(p) for p in blocked_patterns]
        self.stylesheet_override = stylesheet_override

        allowed = list(CRITICAL_RESOURCE_TYPES)
        # Stylesheet responses are needed when they get inlined
        if inline_styles:
            allowed.append("stylesheet")
        self.allowed_types = frozenset(allowed)

    def classify(self, request: InterceptedRequest) -> Disposition:
        if any(p.search(request.url) for p in self.blocked_patterns):
            return Disposition.ABORT

        if (
            self.inline_styles
            and self.stylesheet_override is not None
            and self.stylesheet_override.matches(request.url)
            and self.stylesheet_override.body() is not None
        ):
            return Disposition.FULFILL

        if self.only_critical_requests and request.resource_type not in self.allowed_types:
            return Disposition.ABORT

        return Disposition.CONTINUE

    async def handle(self, route: Route):
        """Playwright route handler (page.route("**/*", interceptor.handle))"""
        request = route.request
        disposition = self.classify(
            InterceptedRequest(url=request.url, resource_type=request.resource_type)
        )

        if disposition is Disposition.ABORT:
            await route.abort()
        elif disposition is Disposition.FULFILL:
            await route.fulfill(
                status=200,
                content_type="text/css",
                body=self.stylesheet_override.body(),
            )
        else:
            await route.continue_()
