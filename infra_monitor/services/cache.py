import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry:
    """An entry in the cache with a TTL."""
    def __init__(self, data: Any, ttl_seconds: int):
        self.data = data
        self.created_at = _utcnow()
        self.ttl = timedelta(seconds=ttl_seconds)

    def is_expired(self) -> bool:
        """Check if the cache entry has expired."""
        return _utcnow() >= self.created_at + self.ttl


class TTLCache:
    """
    In-memory keyed cache with per-entry TTL.

    Each provider owns its own instance, so entries are never shared
    between backend accounts. Concurrent misses on the same key may both
    fetch; the last writer wins.
    """
    def __init__(self, default_ttl: int = 300):
        self.default_ttl = default_ttl
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        """Retrieves an item from the cache if it exists and has not expired."""
        async with self._lock:
            entry = self._cache.get(key)
            if not entry:
                return None

            if entry.is_expired():
                del self._cache[key]
                return None

            return entry.data

    async def set(self, key: str, value: Any, ttl: Optional[int] = None):
        """Adds an item to the cache; ttl defaults to the cache's default_ttl."""
        async with self._lock:
            self._cache[key] = CacheEntry(value, self.default_ttl if ttl is None else ttl)

    async def delete(self, key: str):
        async with self._lock:
            self._cache.pop(key, None)

    async def clear(self):
        async with self._lock:
            self._cache.clear()

    async def size(self) -> int:
        """Returns the number of items in the cache, expired ones included."""
        async with self._lock:
            return len(self._cache)
