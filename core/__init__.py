# Core package - Prerendering and infrastructure components
from .errors import RenderError, BrowserLaunchError, NavigationTimeoutError
from .browser import BrowserManager, ProcessHandle
from .render_cache import RenderCache
from .interceptor import RequestInterceptor, Disposition, InterceptedRequest
from .inliner import ResourceInliner
from .renderer import Renderer, RenderOptions
from .redis_client import RedisClient, get_redis_client, close_redis_client
from .posts import PostStore
from .celery import celery_app

__all__ = [
    # Prerendering
    "Renderer",
    "RenderOptions",
    "RenderCache",
    "BrowserManager",
    "ProcessHandle",
    "RequestInterceptor",
    "Disposition",
    "InterceptedRequest",
    "ResourceInliner",
    # Errors
    "RenderError",
    "BrowserLaunchError",
    "NavigationTimeoutError",
    # Redis/Posts
    "RedisClient",
    "get_redis_client",
    "close_redis_client",
    "PostStore",
    # Celery
    "celery_app",
]
