"""
In-memory cache of prerendered pages.

Entries never expire on their own. They are dropped by explicit invalidation
(post changes, admin rebuilds) and every invalidation bumps a generation
counter so renders that started before it cannot store stale output.
"""

import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class RenderCache:
    """Maps a fully qualified URL to its last rendered HTML."""

    def __init__(self):
        self._entries: Dict[str, str] = {}
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def get(self, url: str) -> Optional[str]:
        return self._entries.get(url)

    def set(self, url: str, html: str, generation: Optional[int] = None) -> bool:
        """
        Store a rendered page.

        Args:
            url: Cache key (the URL as rendered)
            html: Serialized page
            generation: Generation observed when the render started. If an
                invalidation happened since, the page is not stored.

        Returns:
            True if stored
        """
        if generation is not None and generation != self._generation:
            logger.info(f"Skipped caching {url}: cache was invalidated during render")
            return False
        self._entries[url] = html
        return True

    def delete(self, url: str) -> bool:
        self._generation += 1
        return self._entries.pop(url, None) is not None

    def delete_by_origin(self, origin: str) -> int:
        """
        Remove every entry whose URL starts with `origin`.

        Returns:
            Number of entries removed
        """
        self._generation += 1
        stale = [url for url in self._entries if url.startswith(origin)]
        for url in stale:
            del self._entries[url]
        return len(stale)

    def clear(self) -> int:
        self._generation += 1
        count = len(self._entries)
        self._entries.clear()
        return count

    def keys(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)
