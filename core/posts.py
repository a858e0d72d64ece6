"""
Post store for DevWebFeed
Manually submitted posts live in Redis, one JSON list per month:

    posts:{year}:{month}      -> [post, ...]
    posts:{year}:months       -> {"01", "02", ...}
    posts:{year}:changes      -> pub/sub channel, one message per write
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional
from urllib.parse import urlsplit

from core.redis_client import RedisClient

logger = logging.getLogger(__name__)


def parse_submitted(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (trailing Z allowed) as UTC."""
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def sort_posts(posts: List[dict]) -> List[dict]:
    """Newest first by submitted instant. Unparseable timestamps sort last."""
    posts.sort(
        key=lambda post: parse_submitted(post.get("submitted", "")) or OLDEST,
        reverse=True,
    )
    return posts


def in_period(post: dict, year: str, month: Optional[str] = None, day: Optional[str] = None) -> bool:
    submitted = parse_submitted(post.get("submitted", ""))
    if submitted is None:
        return False
    if submitted.year != int(year):
        return False
    if month and submitted.month != int(month):
        return False
    if day and submitted.day != int(day):
        return False
    return True


class PostStore:
    """
    Reads and writes posts and notifies listeners about changes.
    """

    def __init__(self, redis_client: RedisClient):
        self.redis = redis_client
        self._monitor = None
        self._monitor_lock = threading.Lock()

    @staticmethod
    def _month_key(year: str, month: str) -> str:
        return f"posts:{year}:{month}"

    @staticmethod
    def _months_key(year: str) -> str:
        return f"posts:{year}:months"

    @staticmethod
    def changes_channel(year: str) -> str:
        return f"posts:{year}:changes"

    def _stored_posts(self, year: str, month: Optional[str]) -> List[dict]:
        months = [month] if month else sorted(self.redis.members(self._months_key(year)))
        posts: List[dict] = []
        for m in months:
            posts.extend(self.redis.get_json(self._month_key(year, m)) or [])
        return posts

    def get_posts(
        self,
        year: str,
        month: Optional[str] = None,
        day: Optional[str] = None,
        extra_posts: Iterable[dict] = (),
        max_results: Optional[int] = None,
    ) -> List[dict]:
        """
        Posts of a year, month or day, newest first.

        Args:
            year: Four digit year
            month: Zero padded month, or None for the whole year
            day: Zero padded day of month, or None
            extra_posts: Posts from other producers (RSS...), filtered to the period
            max_results: Truncate the list

        Returns:
            List of post dictionaries
        """
        posts = [post for post in extra_posts if in_period(post, year, month)]
        posts.extend(self._stored_posts(year, month))

        if day:
            posts = [post for post in posts if in_period(post, year, month, day)]

        sort_posts(posts)

        if max_results:
            posts = posts[:max_results]
        return posts

    def new_post(self, post: dict) -> bool:
        """
        Store a submitted post under the month it was submitted in.

        Returns:
            False if a post with the same URL already exists in that month
        """
        post = dict(post)
        submitted = parse_submitted(post.get("submitted", "")) if post.get("submitted") else None
        if submitted is None:
            submitted = datetime.now(timezone.utc)
            post["submitted"] = submitted.isoformat().replace("+00:00", "Z")
        if not post.get("domain"):
            post["domain"] = urlsplit(post["url"]).netloc

        year = str(submitted.year)
        month = f"{submitted.month:02d}"
        added = False

        def _add(items):
            nonlocal added
            items = items or []
            if any(item.get("url") == post["url"] for item in items):
                added = False
                return items
            added = True
            return items + [post]

        self.redis.update_json(self._month_key(year, month), _add)
        self.redis.add_to_set(self._months_key(year), month)

        if not added:
            logger.info(f"Skipping duplicate post {post['url']}")
            return False

        logger.info(f"📝 New post {post['url']} in {year}/{month}")
        self.redis.publish(self.changes_channel(year), {"type": "added", "post": post})
        return True

    def delete_post(self, year: str, month: str, url: str) -> bool:
        removed: List[dict] = []

        def _remove(items):
            items = items or []
            removed[:] = [item for item in items if item.get("url") == url]
            return [item for item in items if item.get("url") != url]

        self.redis.update_json(self._month_key(year, month), _remove)

        if not removed:
            logger.warning(f"No post for {url} in {year}/{month}")
            return False

        self.redis.publish(self.changes_channel(year), {"type": "removed", "post": removed[0]})
        return True

    def monitor_changes(self, year: str, callback: Callable[[List[dict]], None]) -> bool:
        """
        Call `callback(changes)` for every change batch published for `year`.

        Only one monitor is installed per store.

        Returns:
            True if a new monitor was installed
        """
        with self._monitor_lock:
            if self._monitor is not None:
                return False

            def _on_change(change):
                try:
                    callback([change])
                except Exception as e:
                    logger.error(f"❌ Post change handler failed: {str(e)}")

            self._monitor = self.redis.subscribe(self.changes_channel(year), _on_change)
            logger.info(f"👀 Monitoring post changes for {year}")
            return True

    def stop_monitoring(self):
        with self._monitor_lock:
            if self._monitor is not None:
                self._monitor.stop()
                self._monitor = None
