"""
DevWebFeed - Main Application

A FastAPI service that merges blog RSS feeds and submitted links into a dated
post feed, and serves a headless Chromium prerendered ("SSR") version of the
site that is kept warm by invalidating on post changes.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.routes import page_url, router
from config import settings
from core.posts import PostStore
from core.redis_client import close_redis_client, get_redis_client
from core.renderer import Renderer

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def make_change_handler(renderer: Renderer, loop: asyncio.AbstractEventLoop, url: str):
    """
    Build the post change callback.

    It runs on the Redis listener thread and hands the cache refresh to the
    application's event loop.
    """
    def _log_failure(future):
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"❌ Refresh of {url} failed: {str(future.exception())}")

    def _on_change(changes):
        logger.info(f"🔔 {len(changes)} post change(s), refreshing {url}")
        future = asyncio.run_coroutine_threadsafe(renderer.refresh(url), loop)
        future.add_done_callback(_log_failure)
        return future

    return _on_change


@asynccontextmanager
async def lifespan(app: FastAPI):
    renderer = Renderer()
    app.state.renderer = renderer
    app.state.post_store = None

    try:
        store = PostStore(get_redis_client())
    except RuntimeError as e:
        logger.warning(f"⚠️  Post store disabled: {str(e)}")
    else:
        app.state.post_store = store
        # TODO: also monitor the new year when the server runs across New Year.
        current_year = str(datetime.now(timezone.utc).year)
        home = page_url({})
        store.monitor_changes(
            current_year,
            make_change_handler(renderer, asyncio.get_running_loop(), home),
        )

    yield

    if app.state.post_store is not None:
        app.state.post_store.stop_monitoring()
    await renderer.shutdown()
    close_redis_client()


def create_app() -> FastAPI:
    app = FastAPI(title="DevWebFeed", lifespan=lifespan)

    # Configure CORS (the browser extension posts submissions cross-origin)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["Content-Type"],
    )

    # Include all routes from api/routes.py
    app.include_router(router)

    # Client-rendered site, mounted last so API routes win
    app.mount(
        "/",
        StaticFiles(directory=settings.PUBLIC_DIR, html=True, check_dir=False),
        name="public",
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, timeout_keep_alive=60)
