# Tasks package - Celery background tasks
from .refresh import (
    update_rss_feeds,
    rebuild_render_cache,
    CallbackTask,
)

__all__ = [
    "update_rss_feeds",
    "rebuild_render_cache",
    "CallbackTask",
]
