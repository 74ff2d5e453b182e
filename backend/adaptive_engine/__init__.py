"""Adaptive personalization engine."""

from .difficulty import Difficulty, DifficultyController, PerformanceData
from .errors import AdaptiveError, AdaptiveProcessingError, AdaptiveValidationError
from .models import ChallengeParameters, LearningResource, Recommendation, UserContext
from .service import AdaptiveService, ChallengeOptions

__all__ = [
    "AdaptiveError",
    "AdaptiveProcessingError",
    "AdaptiveService",
    "AdaptiveValidationError",
    "ChallengeOptions",
    "ChallengeParameters",
    "Difficulty",
    "DifficultyController",
    "LearningResource",
    "PerformanceData",
    "Recommendation",
    "UserContext",
]
