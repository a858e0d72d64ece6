"""
Exceptions raised by the prerender pipeline
"""


class RenderError(Exception):
    """Base class for failures that abort a render"""

    pass


class BrowserLaunchError(RenderError):
    """Raised when the headless browser cannot be started"""

    pass


class NavigationTimeoutError(RenderError):
    """Raised when the page never loads or never becomes ready"""

    pass
