"""Persistence adapters for generated recommendations."""

from .recommendations import (
    DatabaseRecommendationStore,
    InMemoryRecommendationStore,
    RecommendationRepository,
    build_recommendation_store,
    recommendations,
)

__all__ = [
    "DatabaseRecommendationStore",
    "InMemoryRecommendationStore",
    "RecommendationRepository",
    "build_recommendation_store",
    "recommendations",
]
