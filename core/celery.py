"""
Celery application configuration for DevWebFeed
Runs the scheduled feed refresh and render cache rebuild with Redis as broker
"""

import logging

from celery import Celery
from celery.signals import (
    task_failure,
    task_postrun,
    task_prerun,
    task_retry,
    worker_ready,
    worker_shutdown,
)

from config import settings

logger = logging.getLogger(__name__)

# Create Celery application
celery_app = Celery(
    "devwebfeed",
    broker=settings.celery_broker,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["tasks.refresh"],  # Auto-discover tasks from tasks/refresh.py
)

# Celery Configuration
celery_app.conf.update(
    # Task Settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task Execution
    task_acks_late=True,  # Acknowledge task after completion (ensures no lost tasks)
    task_track_started=True,
    # Result Backend Settings
    result_expires=settings.CELERY_RESULT_EXPIRES,
    # Worker Settings
    worker_prefetch_multiplier=settings.WORKER_PREFETCH_MULTIPLIER,
    worker_max_tasks_per_child=settings.WORKER_MAX_TASKS_PER_CHILD,
    # Optimization
    broker_connection_retry_on_startup=True,
    # Periodic jobs (run with: celery -A core.celery beat)
    beat_schedule={
        "update-rss-feeds": {
            "task": "tasks.update_rss_feeds",
            "schedule": settings.FEEDS_REFRESH_HOURS * 3600.0,
        },
        "rebuild-render-cache": {
            "task": "tasks.rebuild_render_cache",
            "schedule": settings.CACHE_REBUILD_MINUTES * 60.0,
        },
    },
)


# Celery Signals for Logging and Monitoring

@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    """Called when worker starts"""
    logger.info("🚀 Celery worker is ready and waiting for tasks")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    """Called when worker shuts down"""
    logger.info("🛑 Celery worker is shutting down")


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, **kwargs):
    logger.info(f"⏳ Starting task: {task.name} [ID: {task_id}]")


@task_postrun.connect
def task_postrun_handler(
    sender=None, task_id=None, task=None, retval=None, state=None, **kwargs
):
    logger.info(f"✅ Completed task: {task.name} [ID: {task_id}] [State: {state}]")


@task_failure.connect
def task_failure_handler(
    sender=None, task_id=None, exception=None, traceback=None, **kwargs
):
    logger.error(
        f"❌ Task failed: {sender.name} [ID: {task_id}] [Error: {str(exception)}]"
    )


@task_retry.connect
def task_retry_handler(sender=None, task_id=None, reason=None, **kwargs):
    logger.warning(
        f"🔄 Retrying task: {sender.name} [ID: {task_id}] [Reason: {reason}]"
    )


if __name__ == "__main__":
    # Start worker with: celery -A core.celery worker --beat --loglevel=info
    celery_app.start()
