"""Adaptive personalization service: recommendations, challenge parameters and difficulty."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ValidationError

from .cache import RecommendationCache, cache_key
from .collaborators import (
    CatalogProvider,
    PersonalityProvider,
    PersonalizationProvider,
    ProgressProvider,
    RecommendationStore,
    UserProvider,
)
from .config import Settings, get_settings
from .difficulty import Difficulty, DifficultyController
from .errors import AdaptiveProcessingError, AdaptiveValidationError
from .models import (
    ChallengeParameterSnapshot,
    ChallengeParameters,
    FocusAreaDescriptor,
    LearnerProgress,
    PayloadModel,
    PersonalityProfile,
    Recommendation,
    UserContext,
    UserRecord,
)
from .repositories import InMemoryRecommendationStore
from .resources import suggest_learning_resources
from .selection import (
    ChallengeTypeParams,
    DifficultyParams,
    FocusAreaParams,
    FormatTypeParams,
    SelectionEngine,
    coerce_descriptors,
)
from .signals import (
    LearnerSignals,
    aggregate_signals,
    coerce_signal,
    extract_recent_challenge_info,
    format_skill_levels_for_context,
)
from .skills import skill_key
from .telemetry import emit_event

logger = logging.getLogger(__name__)

LATEST_RECOMMENDATIONS = "recommendations:latest"
OPTIMAL_DIFFICULTY = "adaptive:optimalDifficulty"


class ChallengeOptions(PayloadModel):
    """Caller overrides for challenge generation."""

    focus_area: Optional[str] = None
    challenge_type: Optional[str] = None
    format_type: Optional[str] = None
    difficulty: Optional[str] = None


def _require_user_id(user_id: Any, purpose: str) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise AdaptiveValidationError(f"User ID is required for {purpose}")
    return user_id.strip()


class AdaptiveService:
    """Coordinates signal gathering, selection and persistence for one learner at a time."""

    def __init__(
        self,
        *,
        progress_provider: ProgressProvider,
        personality_provider: PersonalityProvider,
        user_provider: UserProvider,
        catalog: CatalogProvider,
        personalization: PersonalizationProvider,
        recommendation_store: Optional[RecommendationStore] = None,
        cache: Optional[RecommendationCache] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._progress = progress_provider
        self._personality = personality_provider
        self._users = user_provider
        self._catalog = catalog
        self._store = recommendation_store or InMemoryRecommendationStore()
        self._cache = cache or RecommendationCache()
        self._selection = SelectionEngine(catalog, personalization, settings=self._settings)
        self._difficulty = DifficultyController(
            user_provider,
            progress_provider=progress_provider,
            settings=self._settings,
        )

    # -- signal gathering -----------------------------------------------

    async def _gather(self, user_id: str, *, focus_areas: bool = False) -> tuple[LearnerSignals, Dict[str, List[str]], List[FocusAreaDescriptor]]:
        calls = [
            self._progress.get_or_create_progress(user_id),
            self._personality.get_profile(user_id),
            self._users.get_user_by_id(user_id),
            self._catalog.get_trait_mappings(),
        ]
        if focus_areas:
            calls.append(self._catalog.get_all_focus_areas())
        results = await asyncio.gather(*calls, return_exceptions=True)

        progress = coerce_signal("progress", results[0], LearnerProgress, user_id=user_id)
        personality = coerce_signal("personality profile", results[1], PersonalityProfile, user_id=user_id)
        user = coerce_signal("user record", results[2], UserRecord, user_id=user_id)
        signals = aggregate_signals(user_id, progress, personality, user, self._settings)

        trait_mappings = self._trait_mappings(user_id, results[3])
        catalog_focus_areas: List[FocusAreaDescriptor] = []
        if focus_areas:
            if isinstance(results[4], BaseException):
                logger.warning("Failed to load focus areas for user=%s: %s", user_id, results[4])
            else:
                catalog_focus_areas = coerce_descriptors(FocusAreaDescriptor, results[4])
        return signals, trait_mappings, catalog_focus_areas

    @staticmethod
    def _trait_mappings(user_id: str, raw: Any) -> Dict[str, List[str]]:
        if isinstance(raw, BaseException):
            logger.warning("Failed to load trait mappings for user=%s: %s", user_id, raw)
            return {}
        if not isinstance(raw, Mapping):
            return {}
        return {
            str(trait): [code for code in codes if isinstance(code, str)]
            for trait, codes in raw.items()
            if isinstance(codes, (list, tuple))
        }

    # -- recommendations ------------------------------------------------

    async def generate_and_save_recommendations(self, user_id: str) -> Recommendation:
        user_id = _require_user_id(user_id, "recommendations")
        logger.info("Generating recommendations for user=%s", user_id)

        signals, trait_mappings, catalog_focus_areas = await self._gather(user_id, focus_areas=True)
        focus_areas = self._selection.recommend_focus_areas(signals, trait_mappings, catalog_focus_areas)
        challenge_types = await self._selection.recommend_challenge_types(signals, focus_areas)
        resources = suggest_learning_resources(focus_areas, challenge_types, signals.traits)
        difficulty = await self._selection.determine_difficulty(user_id, self._difficulty_params(signals, focus_areas[0]))

        recommendation = Recommendation(
            user_id=user_id,
            strengths=signals.strengths,
            weaknesses=signals.weaknesses,
            suggested_learning_resources=resources,
            metadata={
                "generationSource": self._settings.generation_source,
                "generationTimestamp": datetime.now(timezone.utc).isoformat(),
                "traitFactors": list(signals.traits),
                "basedOnSkillLevels": bool(signals.skill_levels),
                "basedOnHistory": signals.completed_count > 0,
            },
        )
        recommendation.set_focus_areas(focus_areas)
        recommendation.set_challenge_types(challenge_types)
        recommendation.set_challenge_parameters(
            ChallengeParameterSnapshot(
                difficulty=difficulty.level,
                focus_area=focus_areas[0],
                challenge_type=challenge_types[0],
                time_limit=min(max(difficulty.time_allocation, 60), 3600),
            )
        )

        try:
            saved = await self._store.save(recommendation)
        except Exception as exc:
            logger.error("Failed to save recommendations for user=%s: %s", user_id, exc)
            raise AdaptiveProcessingError(
                f"Failed to save recommendations: {exc}",
                details={"user_id": user_id},
            ) from exc

        self.invalidate_user_caches(user_id)
        emit_event(
            "recommendations_generated",
            user_id=user_id,
            recommendation_id=saved.id,
            focus_areas=saved.recommended_focus_areas,
            challenge_types=saved.recommended_challenge_types,
        )
        return saved

    async def get_latest_recommendations(self, user_id: str) -> Recommendation:
        user_id = _require_user_id(user_id, "recommendations")

        async def fetch_or_generate() -> Recommendation:
            try:
                latest = await self._store.find_latest_for_user(user_id)
            except Exception as exc:
                logger.error("Failed to load recommendations for user=%s: %s", user_id, exc)
                raise AdaptiveProcessingError(
                    f"Failed to load recommendations: {exc}",
                    details={"user_id": user_id},
                ) from exc
            if latest is not None:
                logger.debug("Found stored recommendation %s for user=%s", latest.id, user_id)
                return latest
            logger.info("No stored recommendation for user=%s; generating one", user_id)
            return await self.generate_and_save_recommendations(user_id)

        return await self._cache.get_or_set(
            cache_key(LATEST_RECOMMENDATIONS, user_id),
            self._settings.recommendation_cache_ttl_seconds,
            fetch_or_generate,
        )

    # -- challenge parameters -------------------------------------------

    @staticmethod
    def _difficulty_params(signals: LearnerSignals, focus_area: str, requested: Optional[str] = None) -> DifficultyParams:
        skill_level = signals.skill_levels.get(focus_area)
        if skill_level is None:
            skill_level = signals.skill_levels.get(skill_key(focus_area))
        if skill_level is None:
            skill_level = signals.average_score
        return DifficultyParams(
            requested_difficulty=requested,
            user_difficulty=signals.user_difficulty,
            recent_score=signals.recent_average_score,
            skill_level=skill_level,
            completed_count=signals.completed_count if signals.progress.present else None,
        )

    async def generate_challenge(self, user_id: str, options: Optional[Any] = None) -> ChallengeParameters:
        user_id = _require_user_id(user_id, "challenge generation")
        if isinstance(options, BaseModel):
            options = options.model_dump()
        try:
            overrides = ChallengeOptions.model_validate(options or {})
        except ValidationError as exc:
            raise AdaptiveValidationError(
                "Challenge options are invalid",
                details={"errors": exc.errors(include_url=False)},
            ) from exc
        logger.info("Generating challenge parameters for user=%s", user_id)

        signals, trait_mappings, _ = await self._gather(user_id)
        preferences = signals.preferences

        focus_area = self._selection.determine_focus_area(
            user_id,
            FocusAreaParams(
                requested_focus_area=overrides.focus_area,
                weaknesses=signals.weaknesses,
                progress_focus_area=signals.progress_focus_area,
                personality_focus_area=signals.personality_focus_area,
                preferences=preferences,
                trait_mappings=trait_mappings,
            ),
        )
        challenge_type = await self._selection.determine_challenge_type(
            user_id,
            ChallengeTypeParams(
                requested_type=overrides.challenge_type,
                dominant_traits=signals.traits,
                focus_area=focus_area,
                completed_challenges=signals.completed_challenges,
                preferences=preferences,
            ),
        )
        difficulty: Difficulty = await self._selection.determine_difficulty(
            user_id,
            self._difficulty_params(signals, focus_area, overrides.difficulty),
        )
        format_type = await self._selection.determine_format_type(
            user_id,
            FormatTypeParams(
                requested_format=overrides.format_type,
                challenge_type_code=challenge_type.code,
                challenge_type=challenge_type,
                preferences=preferences,
                completed_challenges=signals.completed_challenges,
                dominant_traits=signals.traits,
            ),
        )

        context = UserContext(
            skill_levels=format_skill_levels_for_context(signals.skill_levels),
            traits=signals.traits,
            strengths=signals.strengths,
            weaknesses=signals.weaknesses,
            experience_level=signals.experience_level,
            preferred_languages=preferences.languages or ["javascript", "python"],
            preferred_topics=preferences.topics or [],
            recent_challenges=extract_recent_challenge_info(signals.completed_challenges, 3),
            adaptive_factor=difficulty.adaptive_factor,
        )
        parameters = ChallengeParameters(
            user_id=user_id,
            focus_area=focus_area,
            challenge_type=challenge_type.code,
            format_type=format_type.code,
            difficulty=difficulty.level,
            time_allocation=difficulty.time_allocation,
            complexity=difficulty.complexity,
            depth=difficulty.depth,
            user_context=context,
        )
        logger.info(
            "Generated challenge parameters for user=%s (focus=%s, type=%s, difficulty=%s, format=%s)",
            user_id,
            parameters.focus_area,
            parameters.challenge_type,
            parameters.difficulty,
            parameters.format_type,
        )
        return parameters

    # -- difficulty -----------------------------------------------------

    async def adjust_difficulty(self, user_id: str, performance_data: Any) -> Difficulty:
        difficulty = await self._difficulty.adjust_difficulty(user_id, performance_data)
        self.invalidate_user_caches(user_id)
        return difficulty

    async def calculate_difficulty(self, user_id: str) -> Difficulty:
        user_id = _require_user_id(user_id, "difficulty calculation")
        return await self._cache.get_or_set(
            cache_key(OPTIMAL_DIFFICULTY, user_id),
            self._settings.difficulty_cache_ttl_seconds,
            lambda: self._difficulty.calculate_difficulty(user_id),
        )

    def invalidate_user_caches(self, user_id: str) -> None:
        if not isinstance(user_id, str) or not user_id.strip():
            return
        try:
            dropped = self._cache.invalidate_user(user_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to invalidate caches for user=%s: %s", user_id, exc)
            return
        logger.debug("Invalidated %s cache entries for user=%s", dropped, user_id)


__all__ = ["AdaptiveService", "ChallengeOptions"]
