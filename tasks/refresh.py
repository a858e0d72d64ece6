"""
Celery background tasks for DevWebFeed
Scheduled RSS refresh and render cache rebuild
"""

import logging

import requests
from celery import Task

from config import get_public_origin
from core.celery import celery_app
from core.feeds import update_feeds

logger = logging.getLogger(__name__)

REBUILD_PATH = "/admin/_rebuildcache"
REBUILD_TIMEOUT = 120


class CallbackTask(Task):
    """
    Custom Celery task class with callbacks.
    """

    def on_success(self, retval, task_id, args, kwargs):
        logger.info(f"✅ Task {task_id} completed successfully")

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"❌ Task {task_id} failed: {str(exc)}")


@celery_app.task(base=CallbackTask, name="tasks.update_rss_feeds")
def update_rss_feeds() -> dict:
    """
    Refresh the cached RSS posts (daily).
    """
    posts = update_feeds()
    return {"posts": len(posts)}


@celery_app.task(
    bind=True,
    base=CallbackTask,
    name="tasks.rebuild_render_cache",
    max_retries=3,
    default_retry_delay=60,
)
def rebuild_render_cache(self) -> dict:
    """
    Ask the web process to drop and re-render its prerendered pages.

    The render cache lives in the web process memory, so the rebuild goes
    through its admin endpoint.
    """
    url = f"{get_public_origin()}{REBUILD_PATH}"
    try:
        response = requests.get(url, timeout=REBUILD_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"⚠️  Render cache rebuild via {url} failed: {str(e)}")
        raise self.retry(exc=e)

    return response.json()
