import logging
from typing import List, Mapping, Optional

import redis
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from api.models import CacheClearResponse, Post, PostSubmission, RebuildResponse
from config import get_public_origin, settings
from core.errors import RenderError
from core.feeds import collect_feeds, update_feeds
from core.posts import PostStore
from core.renderer import Renderer, RenderOptions
from utils.urls import build_page_url

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


def get_renderer(request: Request) -> Renderer:
    return request.app.state.renderer


def get_post_store(request: Request) -> PostStore:
    store = getattr(request.app.state, "post_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Post store unavailable")
    return store


def page_url(params: Mapping[str, str]) -> str:
    """
    Rendered URL (and cache key) of the home page for the given query.

    Always built on the public origin, the same URL post change refreshes use.
    """
    return build_page_url(get_public_origin(), params, settings.SSR_PAGE_PARAMS)


@router.get("/ssr", response_class=HTMLResponse)
async def server_side_render(request: Request, renderer: Renderer = Depends(get_renderer)):
    """
    Prerendered version of the home page (for crawlers and first loads).

    Only the query parameters that change the page (year, tweets) become part
    of the rendered URL. Render toggles:
    - nocache: ignore the cached copy (the fresh render is cached)
    - noinline: do not inline stylesheets and scripts
    - noreduce: let the browser load every resource
    - reusechrome: keep one browser alive across renders
    - noheadless: launch a visible browser
    """
    url = page_url(request.query_params)
    options = RenderOptions.from_query(request.query_params)

    try:
        html = await renderer.render(url, options)
    except RenderError as e:
        logger.error(f"ERROR: Render failed for {url}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Render failed: {str(e)}")

    return HTMLResponse(html)


@router.get("/posts")
def posts_without_year():
    raise HTTPException(status_code=400, detail="No year specified.")


@router.get("/posts/{year}", response_model=List[Post])
@router.get("/posts/{year}/{month}", response_model=List[Post])
@router.get("/posts/{year}/{month}/{day}", response_model=List[Post])
def list_posts(
    year: str,
    month: Optional[str] = None,
    day: Optional[str] = None,
    maxresults: Optional[int] = None,
    store: PostStore = Depends(get_post_store),
):
    """
    Posts of a year, month or day (newest first), merged with RSS posts.
    """
    for value in (year, month, day):
        if value is not None and not value.isdigit():
            raise HTTPException(status_code=400, detail=f"Invalid date component: {value}")

    # Pad values if missing leading '0'.
    month = month.zfill(2) if month else None
    day = day.zfill(2) if day else None

    try:
        rss_posts = collect_feeds()
    except Exception as e:
        logger.warning(f"⚠️  RSS posts unavailable, serving stored posts only: {str(e)}")
        rss_posts = []

    try:
        return store.get_posts(year, month, day, rss_posts, maxresults)
    except redis.RedisError as e:
        raise HTTPException(status_code=503, detail=f"Post store unavailable: {str(e)}")


@router.post("/posts", response_class=PlainTextResponse)
def submit_post(submission: PostSubmission, store: PostStore = Depends(get_post_store)):
    try:
        store.new_post(submission.model_dump(mode="json"))
    except redis.RedisError as e:
        raise HTTPException(status_code=503, detail=f"Post store unavailable: {str(e)}")
    return "Success!"


@router.delete("/posts/{year}/{month}")
def delete_post(year: str, month: str, url: str, store: PostStore = Depends(get_post_store)):
    try:
        deleted = store.delete_post(year, month.zfill(2), url)
    except redis.RedisError as e:
        raise HTTPException(status_code=503, detail=f"Post store unavailable: {str(e)}")
    if not deleted:
        raise HTTPException(status_code=404, detail=f"No post for {url} in {year}/{month}")
    return {"deleted": True, "url": url}


@router.get("/admin/_updaterss", response_model=List[Post])
def update_rss():
    return update_feeds()


@router.get("/admin/_rebuildcache", response_model=RebuildResponse)
async def rebuild_render_cache(renderer: Renderer = Depends(get_renderer)):
    """
    Drop every prerendered page and render the home page again.
    """
    cleared = renderer.invalidate_all()
    url = page_url({})

    try:
        await renderer.render(url, RenderOptions(use_cache=False))
    except RenderError as e:
        raise HTTPException(status_code=500, detail=f"Render failed: {str(e)}")

    return RebuildResponse(cleared=cleared, warmed=[url])


@router.delete("/cache/render", response_model=CacheClearResponse)
async def clear_render_cache(renderer: Renderer = Depends(get_renderer)):
    cleared = renderer.invalidate_all()
    return CacheClearResponse(cleared=cleared, message="Render cache cleared")


@router.delete("/cache/render/{url:path}", response_model=CacheClearResponse)
async def clear_rendered_page(
    url: str, request: Request, renderer: Renderer = Depends(get_renderer)
):
    """
    Drop one prerendered page.

    Args:
        url: The exact rendered URL, query string included
    """
    if request.url.query:
        url = f"{url}?{request.url.query}"
    cleared = renderer.invalidate(url)
    return CacheClearResponse(
        cleared=int(cleared),
        message="Rendered page removed" if cleared else "Cache entry not found",
    )


@router.get("/health")
async def health_check():
    return {"status": "healthy"}


@router.get("/status/detailed")
async def detailed_status_check(request: Request, renderer: Renderer = Depends(get_renderer)):
    """
    Status of Redis, the post store, the browser and the render cache.
    """
    status_info = {
        "api": "healthy",
        "redis": "unknown",
        "post_store": "connected" if getattr(request.app.state, "post_store", None) else "unavailable",
        "renderer": renderer.status(),
    }

    try:
        from core.redis_client import get_redis_client

        redis_client = get_redis_client()
        if redis_client.ping():
            status_info["redis"] = "connected"
            status_info["redis_stats"] = redis_client.get_stats()
        else:
            status_info["redis"] = "disconnected"
    except Exception as e:
        status_info["redis"] = f"error: {str(e)}"

    if status_info["redis"] != "connected":
        status_info["overall_status"] = "degraded"
    else:
        status_info["overall_status"] = "healthy"

    return status_info
