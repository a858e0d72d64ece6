"""
Centralized configuration for DevWebFeed
All environment variables and settings are defined here
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Provides centralized configuration with validation and defaults.
    """

    # ======================
    # Server Configuration
    # ======================
    PORT: int = Field(default=8080, description="Port the web server listens on")
    PUBLIC_ORIGIN: str = Field(
        default="http://localhost:8080",
        description="Origin of the public site (used by background cache warming)",
    )
    PUBLIC_DIR: str = Field(
        default="public",
        description="Directory holding the client-rendered site and static assets",
    )

    # ======================
    # Redis Configuration
    # ======================
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )

    # ======================
    # Celery Configuration
    # ======================
    CELERY_BROKER_URL: Optional[str] = Field(
        default=None,
        description="Celery broker URL (defaults to REDIS_URL if not set)"
    )
    CELERY_RESULT_BACKEND: str = Field(
        default="redis://localhost:6379/1",
        description="Celery result backend URL"
    )
    CELERY_RESULT_EXPIRES: int = Field(
        default=3600,
        description="Time in seconds before task results expire"
    )
    WORKER_PREFETCH_MULTIPLIER: int = Field(
        default=1,
        description="Tasks to prefetch per worker"
    )
    WORKER_MAX_TASKS_PER_CHILD: int = Field(
        default=50,
        description="Max tasks before worker restart"
    )

    # ======================
    # Prerender (SSR) Configuration
    # ======================
    SSR_NAVIGATION_TIMEOUT_MS: int = Field(
        default=30000,
        description="Bound for page navigation and for the readiness selector wait"
    )
    BROWSER_LAUNCH_TIMEOUT_MS: int = Field(
        default=20000,
        description="Timeout for launching the headless browser"
    )
    SSR_REUSE_CHROME: bool = Field(
        default=False,
        description="Keep one browser alive across renders by default"
    )
    SSR_READY_SELECTOR: str = Field(
        default="#posts",
        description="Element that marks the page as populated"
    )
    SSR_MARKER_PARAM: str = Field(
        default="headless",
        description="Query parameter telling the page it is being prerendered"
    )
    SSR_BLOCKED_URL_PATTERNS: List[str] = Field(
        default=["/gtag/js"],
        description="Regex patterns of requests that are always aborted"
    )
    SSR_PRIMARY_STYLESHEET: str = Field(
        default="styles.css",
        description="Name of the site stylesheet served from the local minified copy"
    )
    SSR_STYLESHEET_OVERRIDE_PATH: str = Field(
        default="public/styles.min.css",
        description="Pre-minified local copy of the primary stylesheet"
    )
    SSR_PAGE_PARAMS: List[str] = Field(
        default=["year", "tweets"],
        description="Query parameters that change the rendered page (part of the cache key)"
    )

    # ======================
    # Feed Configuration
    # ======================
    RSS_FEEDS: List[str] = Field(
        default=[
            "https://developers.google.com/web/updates/rss.xml",
            "https://blog.chromium.org/feeds/posts/default?alt=rss",
            "https://v8.dev/blog.atom",
        ],
        description="RSS/Atom feeds merged into the post list"
    )
    FEED_FETCH_TIMEOUT: int = Field(
        default=15,
        description="Timeout in seconds for fetching one feed"
    )
    FEEDS_CACHE_TTL: int = Field(
        default=86400,  # 24 hours
        description="How long collected feed posts stay in Redis"
    )
    FEEDS_REFRESH_HOURS: int = Field(
        default=24,
        description="Interval of the scheduled RSS refresh"
    )
    CACHE_REBUILD_MINUTES: int = Field(
        default=60,
        description="Interval of the scheduled render cache rebuild"
    )

    # ======================
    # Logging Configuration
    # ======================
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    @property
    def celery_broker(self) -> str:
        """Get Celery broker URL, defaulting to REDIS_URL if not set"""
        return self.CELERY_BROKER_URL or self.REDIS_URL

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Allow extra env vars in .env file


# Global settings instance
settings = Settings()


# ======================
# Convenience Functions
# ======================

def get_redis_url() -> str:
    """Get Redis connection URL"""
    return settings.REDIS_URL


def get_public_origin() -> str:
    """Get the public site origin without a trailing slash"""
    return settings.PUBLIC_ORIGIN.rstrip("/")
