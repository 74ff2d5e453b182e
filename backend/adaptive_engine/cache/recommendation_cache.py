"""Process-local TTL cache for per-learner recommendation reads."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import RLock
from typing import Any, Awaitable, Callable, Dict, Optional


def _normalize_user_id(user_id: str) -> str:
    normalized = user_id.strip()
    if not normalized:
        raise ValueError("User id cannot be empty when caching recommendations.")
    return normalized


def cache_key(operation: str, user_id: str) -> str:
    return f"{operation}:{_normalize_user_id(user_id)}"


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float


def _copy(value: Any) -> Any:
    if hasattr(value, "model_copy"):
        return value.model_copy(deep=True)
    return value


class RecommendationCache:
    """TTL cache keyed by ``{operation}:{user_id}``."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: Dict[str, _CacheEntry] = {}
        self._lock = RLock()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                self._entries.pop(key, None)
                return None
            return _copy(entry.value)

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            self._entries[key] = _CacheEntry(value=_copy(value), expires_at=self._clock() + ttl_seconds)

    async def get_or_set(self, key: str, ttl_seconds: float, factory: Callable[[], Awaitable[Any]]) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await factory()
        if value is not None:
            self.set(key, value, ttl_seconds)
        return value

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_user(self, user_id: str) -> int:
        suffix = f":{_normalize_user_id(user_id)}"
        with self._lock:
            keys = [key for key in self._entries if key.endswith(suffix)]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


recommendation_cache = RecommendationCache()

__all__ = ["RecommendationCache", "cache_key", "recommendation_cache"]
