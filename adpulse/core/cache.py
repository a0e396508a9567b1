"""
In-memory cache with tag based invalidation

Dashboard queries are cached per user and tagged with the entity groups they
read (users, ad_accounts, campaigns). Writers invalidate by tag.
"""
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Optional, Set, Tuple

from adpulse.core.config import settings

logger = logging.getLogger(__name__)

TAG_USERS = "users"
TAG_AD_ACCOUNTS = "ad_accounts"
TAG_CAMPAIGNS = "campaigns"


def user_tag(user_id: int) -> str:
    return f"user:{user_id}"


class TaggedCache:
    """Simple in-memory TTL cache where every entry carries a set of tags."""

    def __init__(self, max_size: int = 1000, ttl_seconds: int = 3600):
        self._entries: Dict[str, Tuple[Any, datetime, Set[str]]] = {}
        self._lock = threading.Lock()
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expiry, _ = entry
            if datetime.now() > expiry:
                del self._entries[key]
                return None
            return value

    def set(
        self,
        key: str,
        value: Any,
        tags: Iterable[str] = (),
        ttl_seconds: Optional[int] = None,
    ) -> None:
        expiry = datetime.now() + timedelta(seconds=ttl_seconds or self.ttl_seconds)
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                # Evict the entry closest to expiry
                oldest_key = min(self._entries, key=lambda k: self._entries[k][1])
                del self._entries[oldest_key]
            self._entries[key] = (value, expiry, set(tags))

    def get_or_set(self, key: str, factory: Callable[[], Any], tags: Iterable[str] = ()) -> Any:
        value = self.get(key)
        if value is None:
            value = factory()
            self.set(key, value, tags)
        return value

    def invalidate(self, *tags: str) -> int:
        """Drop every entry carrying at least one of the given tags"""
        wanted = set(tags)
        with self._lock:
            stale = [key for key, (_, _, entry_tags) in self._entries.items() if entry_tags & wanted]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cache entries for tags {sorted(wanted)}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


cache = TaggedCache(ttl_seconds=settings.CACHE_TTL_SECONDS)
