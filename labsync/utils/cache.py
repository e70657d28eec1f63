"""
Caching utilities for LabSync AI.
Provides in-memory caching with TTL support for provider calls.
"""

import asyncio
import copy
import hashlib
import json
import time
from functools import wraps
from threading import Lock
from typing import Any, Dict, Optional

from .config import settings


class CacheManager:
    """Thread-safe in-memory cache with TTL support."""

    def __init__(self, enabled: Optional[bool] = None, ttl: Optional[int] = None):
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._lock = Lock()
        self._enabled = settings.enable_caching if enabled is None else enabled
        self._ttl = settings.cache_ttl if ttl is None else ttl
        self._hits = 0
        self._misses = 0

    def _is_expired(self, entry: Dict[str, Any]) -> bool:
        return time.time() > entry.get("expires_at", 0)

    def _make_key(self, prefix: str, *args, **kwargs) -> str:
        """Generate cache key from arguments.

        Arguments that are not JSON serialisable (service instances, models)
        are stringified so bound methods can be cached too.
        """
        key_data = {
            "args": args,
            "kwargs": sorted(kwargs.items()) if kwargs else {},
        }
        key_string = json.dumps(key_data, sort_keys=True, default=str)
        key_hash = hashlib.md5(key_string.encode()).hexdigest()
        return f"{prefix}:{key_hash}"

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        if not self._enabled:
            return None

        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._is_expired(entry):
                del self._cache[key]
                self._misses += 1
                return None
            self._hits += 1
            return entry["value"]

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Set value in cache with TTL."""
        if not self._enabled:
            return

        ttl = ttl or self._ttl
        now = time.time()
        with self._lock:
            self._cache[key] = {
                "value": value,
                "expires_at": now + ttl,
                "created_at": now,
            }

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def cleanup_expired(self) -> int:
        """Remove expired entries from cache and return how many were dropped."""
        with self._lock:
            expired_keys = [
                key for key, entry in self._cache.items() if self._is_expired(entry)
            ]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total_entries = len(self._cache)
            expired_entries = sum(
                1 for entry in self._cache.values() if self._is_expired(entry)
            )
            return {
                "total_entries": total_entries,
                "active_entries": total_entries - expired_entries,
                "expired_entries": expired_entries,
                "hits": self._hits,
                "misses": self._misses,
                "enabled": self._enabled,
                "ttl_seconds": self._ttl,
            }


# Global cache instance
cache_manager = CacheManager()


def cached(prefix: str, ttl: Optional[int] = None):
    """
    Decorator for caching function results.

    Results are deep-copied on the way out so callers can mutate them
    without corrupting the cached entry.

    Args:
        prefix: Cache key prefix
        ttl: Time to live in seconds (uses default if None)
    """

    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            key = cache_manager._make_key(prefix, *args, **kwargs)
            cached_result = cache_manager.get(key)
            if cached_result is not None:
                return copy.deepcopy(cached_result)

            result = await func(*args, **kwargs)
            cache_manager.set(key, copy.deepcopy(result), ttl)
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            key = cache_manager._make_key(prefix, *args, **kwargs)
            cached_result = cache_manager.get(key)
            if cached_result is not None:
                return copy.deepcopy(cached_result)

            result = func(*args, **kwargs)
            cache_manager.set(key, copy.deepcopy(result), ttl)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def cache_key(prefix: str, *args, **kwargs) -> str:
    """Generate cache key for manual caching."""
    return cache_manager._make_key(prefix, *args, **kwargs)


def get_cache_stats() -> Dict[str, Any]:
    return cache_manager.get_stats()


def clear_cache() -> None:
    cache_manager.clear()


def cleanup_expired_cache() -> int:
    return cache_manager.cleanup_expired()
