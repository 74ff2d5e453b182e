from __future__ import annotations

import asyncio

import pytest

from adaptive_engine.cache import RecommendationCache, cache_key
from adaptive_engine.models import Recommendation


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_cache_key_includes_operation_and_user() -> None:
    assert cache_key("recommendations:latest", " u1 ") == "recommendations:latest:u1"
    with pytest.raises(ValueError):
        cache_key("recommendations:latest", "  ")


def test_entries_expire_after_ttl() -> None:
    clock = _Clock()
    cache = RecommendationCache(clock=clock)
    cache.set("op:u1", "value", ttl_seconds=300)

    clock.now += 299
    assert cache.get("op:u1") == "value"
    clock.now += 1
    assert cache.get("op:u1") is None


def test_cached_models_are_copies() -> None:
    cache = RecommendationCache()
    recommendation = Recommendation(user_id="u1", strengths=["Coding"])
    cache.set("op:u1", recommendation, ttl_seconds=60)

    recommendation.strengths.append("Mutated")
    cached = cache.get("op:u1")

    assert cached.strengths == ["Coding"]
    assert cached is not recommendation


def test_get_or_set_calls_factory_once() -> None:
    cache = RecommendationCache()
    calls: list[int] = []

    async def factory() -> str:
        calls.append(1)
        return "computed"

    async def run() -> list[str]:
        return [await cache.get_or_set("op:u1", 60, factory) for _ in range(3)]

    assert asyncio.run(run()) == ["computed"] * 3
    assert len(calls) == 1


def test_invalidate_user_only_drops_that_user() -> None:
    cache = RecommendationCache()
    cache.set(cache_key("recommendations:latest", "u1"), 1, 60)
    cache.set(cache_key("adaptive:optimalDifficulty", "u1"), 2, 60)
    cache.set(cache_key("recommendations:latest", "u2"), 3, 60)

    assert cache.invalidate_user("u1") == 2
    assert cache.get("recommendations:latest:u1") is None
    assert cache.get("recommendations:latest:u2") == 3


def test_non_positive_ttl_is_not_cached() -> None:
    cache = RecommendationCache()
    cache.set("op:u1", "value", ttl_seconds=0)

    assert cache.get("op:u1") is None
