"""
RSS feed collection for DevWebFeed
Fetches the configured blog feeds and turns their entries into posts.
Results are cached in Redis and refreshed daily by the Celery beat schedule.
"""

import logging
import time
from calendar import timegm
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlsplit

import feedparser
import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from config import settings
from core.redis_client import RedisClient, get_redis_client
from utils.urls import strip_tracking_params

logger = logging.getLogger(__name__)

FEEDS_CACHE_KEY = "cache:feeds"

RSS_SUBMITTER = {
    "name": "RSS bot",
    "email": "",
    "picture": "img/rss_icon_24px.svg",
    "bot": True,
}


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
    reraise=True,
)
def fetch_feed(url: str) -> feedparser.FeedParserDict:
    """Download and parse one feed, retrying transient network failures."""
    response = requests.get(url, timeout=settings.FEED_FETCH_TIMEOUT)
    response.raise_for_status()
    return feedparser.parse(response.content)


def _entry_timestamp(entry) -> Optional[str]:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    submitted = datetime.fromtimestamp(timegm(parsed), tz=timezone.utc)
    return submitted.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def feed_to_posts(feed) -> List[dict]:
    """
    Map parsed feed entries to post dictionaries.

    An entry author overrides the feed author. Entries without a link or a
    date are skipped.
    """
    feed_author = feed.feed.get("author", "")

    posts = []
    for entry in feed.entries:
        link = entry.get("link")
        submitted = _entry_timestamp(entry)
        if not link or not submitted:
            continue

        link = strip_tracking_params(link)
        posts.append({
            "title": entry.get("title", ""),
            "url": link,
            "domain": urlsplit(link).netloc,
            "submitted": submitted,
            "submitter": dict(RSS_SUBMITTER),
            "author": entry.get("author") or feed_author,
        })
    return posts


def update_feeds(redis_client: Optional[RedisClient] = None) -> List[dict]:
    """
    Fetch every configured feed and cache the resulting posts.

    A feed that fails is logged and skipped.

    Returns:
        All posts collected
    """
    logger.info("Updating RSS feeds...")
    tic = time.monotonic()

    posts: List[dict] = []
    for url in settings.RSS_FEEDS:
        try:
            posts.extend(feed_to_posts(fetch_feed(url)))
        except Exception as e:
            logger.warning(f"⚠️  Feed {url} failed: {str(e)}")

    try:
        client = redis_client or get_redis_client()
        client.set_json(FEEDS_CACHE_KEY, posts, ttl=settings.FEEDS_CACHE_TTL)
    except RuntimeError as e:
        logger.warning(f"⚠️  Feed posts not cached: {str(e)}")

    logger.info(f"Feed update took {time.monotonic() - tic:.2f}s ({len(posts)} posts)")
    return posts


def collect_feeds(redis_client: Optional[RedisClient] = None) -> List[dict]:
    """Cached feed posts, fetching them when the cache is empty."""
    try:
        client = redis_client or get_redis_client()
        cached = client.get_json(FEEDS_CACHE_KEY)
    except RuntimeError as e:
        logger.warning(f"⚠️  Feed cache unavailable: {str(e)}")
        client, cached = None, None

    if cached:
        return cached
    return update_feeds(client)
