"""Caching helpers for the adaptive engine."""

from .recommendation_cache import RecommendationCache, cache_key, recommendation_cache

__all__ = ["RecommendationCache", "cache_key", "recommendation_cache"]
