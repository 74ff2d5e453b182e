"""Selection engine: focus area, challenge type, format and starting difficulty.

Each decision is an ordered chain of resolvers. A resolver returns a value or
``None`` ("no opinion"); the first value wins.
"""

from __future__ import annotations

import inspect
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)

from pydantic import BaseModel, ValidationError

from .collaborators import CatalogProvider, PersonalizationProvider
from .config import Settings, get_settings
from .difficulty import Difficulty, DIFFICULTY_BANDS
from .models import (
    CatalogDescriptor,
    ChallengePreferences,
    ChallengeTypeDescriptor,
    CompletedChallenge,
    FocusAreaDescriptor,
    FormatTypeDescriptor,
)
from .signals import LearnerSignals, SUCCESS_SCORE, sort_most_recent_first
from .skills import map_skills_to_focus_areas

logger = logging.getLogger(__name__)

DEFAULT_FOCUS_AREA = "general"
DEFAULT_CHALLENGE_TYPE = "implementation"
DEFAULT_FORMAT_TYPE = "code"
DEFAULT_FOCUS_AREAS = ("AI_Ethics", "Prompt_Engineering", "RAG", "LLM_Training")
DEFAULT_CHALLENGE_TYPES = ("implementation", "debugging", "design", "analysis")
MIN_RECOMMENDED_ITEMS = 2

TRAIT_FORMAT_PREFERENCES: Dict[str, tuple[str, ...]] = {
    "Analytical": ("code", "debug", "refactor"),
    "Creative": ("design", "essay", "openended"),
    "Practical": ("implementation", "example", "fix"),
}

T = TypeVar("T")
D = TypeVar("D", bound=CatalogDescriptor)
ParamsT = TypeVar("ParamsT")
Resolver = Callable[[str, ParamsT], Union[Optional[T], Awaitable[Optional[T]]]]


@dataclass
class FocusAreaParams:
    requested_focus_area: Optional[str] = None
    weaknesses: List[str] = field(default_factory=list)
    progress_focus_area: Optional[str] = None
    personality_focus_area: Optional[str] = None
    preferences: ChallengePreferences = field(default_factory=ChallengePreferences)
    trait_mappings: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class ChallengeTypeParams:
    requested_type: Optional[str] = None
    dominant_traits: List[str] = field(default_factory=list)
    focus_area: str = DEFAULT_FOCUS_AREA
    completed_challenges: List[CompletedChallenge] = field(default_factory=list)
    preferences: ChallengePreferences = field(default_factory=ChallengePreferences)


@dataclass
class FormatTypeParams:
    requested_format: Optional[str] = None
    challenge_type_code: Optional[str] = None
    challenge_type: Optional[ChallengeTypeDescriptor] = None
    preferences: ChallengePreferences = field(default_factory=ChallengePreferences)
    completed_challenges: List[CompletedChallenge] = field(default_factory=list)
    dominant_traits: List[str] = field(default_factory=list)


@dataclass
class DifficultyParams:
    requested_difficulty: Optional[str] = None
    user_difficulty: Optional[str] = None
    recent_score: Optional[float] = None
    skill_level: Optional[float] = None
    completed_count: Optional[int] = None


def _coerce(model: Type[D], raw: Any) -> Optional[D]:
    if raw is None:
        return None
    if isinstance(raw, model):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Ignoring malformed %s payload: %s", model.__name__, exc)
        return None


def coerce_descriptors(model: Type[D], raw_items: Optional[Iterable[Any]]) -> List[D]:
    items: List[D] = []
    for raw in raw_items or []:
        item = _coerce(model, raw)
        if item is not None:
            items.append(item)
    return items


def recent_window(completed: Sequence[CompletedChallenge], size: int) -> List[CompletedChallenge]:
    """The ``size`` most recent completions.

    Undated histories are treated as append-ordered (newest last).
    """
    if size <= 0 or not completed:
        return []
    if any(challenge.completed_at is not None for challenge in completed):
        return sort_most_recent_first(completed)[:size]
    return list(completed)[-size:][::-1]


def traits_to_focus_codes(traits: Sequence[str], trait_mappings: Mapping[str, Sequence[str]]) -> List[str]:
    lowered = {key.lower(): value for key, value in trait_mappings.items()}
    codes: List[str] = []
    for trait in traits:
        mapped = trait_mappings.get(trait)
        if mapped is None:
            mapped = lowered.get(trait.lower(), [])
        for code in mapped:
            if code not in codes:
                codes.append(code)
    return codes


def single_code_mappings(trait_mappings: Optional[Mapping[str, Sequence[str]]]) -> Dict[str, str]:
    """Catalog mappings usable as skill aliases: only entries naming exactly one focus area."""
    return {
        key: codes[0]
        for key, codes in (trait_mappings or {}).items()
        if key and len(codes) == 1 and isinstance(codes[0], str) and codes[0]
    }


def _dedupe(values: Iterable[str], limit: int) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen[:limit]


def _pad_with_defaults(ranked: List[str], defaults: Sequence[str]) -> List[str]:
    padded = list(ranked)
    for value in defaults:
        if len(padded) >= MIN_RECOMMENDED_ITEMS:
            break
        if value not in padded:
            padded.append(value)
    return padded


class SelectionEngine:
    """Chooses focus areas, challenge types, formats and starting difficulty."""

    def __init__(
        self,
        catalog: CatalogProvider,
        personalization: PersonalizationProvider,
        *,
        settings: Optional[Settings] = None,
    ) -> None:
        self._catalog = catalog
        self._personalization = personalization
        self._settings = settings or get_settings()

    # -- chain plumbing -------------------------------------------------

    @staticmethod
    def _first_resolved_sync(resolvers: Sequence[Callable[[str, Any], Optional[T]]], user_id: str, params: Any, label: str) -> Optional[T]:
        for resolver in resolvers:
            result = resolver(user_id, params)
            if result is not None:
                logger.debug("Resolved %s for user=%s via %s", label, user_id, resolver.__name__)
                return result
        return None

    @staticmethod
    async def _first_resolved(resolvers: Sequence[Resolver[Any, T]], user_id: str, params: Any, label: str) -> Optional[T]:
        for resolver in resolvers:
            result = resolver(user_id, params)
            if inspect.isawaitable(result):
                result = await result
            if result is not None:
                logger.debug("Resolved %s for user=%s via %s", label, user_id, resolver.__name__)
                return result  # type: ignore[return-value]
        return None

    # -- focus area -----------------------------------------------------

    def focus_area_resolvers(self) -> List[Callable[[str, FocusAreaParams], Optional[str]]]:
        return [
            self._requested_focus_area,
            self._weakness_focus_area,
            self._progress_focus_area,
            self._personality_focus_area,
            self._preferred_focus_area,
        ]

    def determine_focus_area(self, user_id: str, params: FocusAreaParams) -> str:
        resolved = self._first_resolved_sync(self.focus_area_resolvers(), user_id, params, "focus area")
        return resolved or DEFAULT_FOCUS_AREA

    @staticmethod
    def _requested_focus_area(user_id: str, params: FocusAreaParams) -> Optional[str]:
        return params.requested_focus_area or None

    @staticmethod
    def _weakness_focus_area(user_id: str, params: FocusAreaParams) -> Optional[str]:
        if not params.weaknesses:
            return None
        mapped = [
            area
            for area in map_skills_to_focus_areas(params.weaknesses, single_code_mappings(params.trait_mappings))
            if isinstance(area, str) and area.strip()
        ]
        return mapped[0] if mapped else None

    @staticmethod
    def _progress_focus_area(user_id: str, params: FocusAreaParams) -> Optional[str]:
        return params.progress_focus_area or None

    @staticmethod
    def _personality_focus_area(user_id: str, params: FocusAreaParams) -> Optional[str]:
        return params.personality_focus_area or None

    @staticmethod
    def _preferred_focus_area(user_id: str, params: FocusAreaParams) -> Optional[str]:
        return params.preferences.focus_area or None

    # -- challenge type -------------------------------------------------

    def challenge_type_resolvers(self) -> List[Resolver[ChallengeTypeParams, ChallengeTypeDescriptor]]:
        return [
            self._requested_challenge_type,
            self._variety_challenge_type,
            self._preferred_challenge_type,
            self._personalized_challenge_type,
            self._default_challenge_type,
        ]

    async def determine_challenge_type(self, user_id: str, params: ChallengeTypeParams) -> ChallengeTypeDescriptor:
        resolved = await self._first_resolved(self.challenge_type_resolvers(), user_id, params, "challenge type")
        if resolved is not None:
            return resolved
        logger.warning("Falling back to built-in challenge type for user=%s", user_id)
        return ChallengeTypeDescriptor(code=DEFAULT_CHALLENGE_TYPE, name="Implementation")

    async def _lookup_challenge_type(self, user_id: str, code: Optional[str], label: str) -> Optional[ChallengeTypeDescriptor]:
        if not code:
            return None
        try:
            return _coerce(ChallengeTypeDescriptor, await self._catalog.get_challenge_type(code))
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s challenge type %s unavailable for user=%s: %s", label, code, user_id, exc)
            return None

    async def _requested_challenge_type(self, user_id: str, params: ChallengeTypeParams) -> Optional[ChallengeTypeDescriptor]:
        return await self._lookup_challenge_type(user_id, params.requested_type, "Requested")

    async def _variety_challenge_type(self, user_id: str, params: ChallengeTypeParams) -> Optional[ChallengeTypeDescriptor]:
        recent_types = {
            challenge.challenge_type
            for challenge in recent_window(params.completed_challenges, self._settings.variety_window)
            if challenge.challenge_type
        }
        if not recent_types:
            return None
        try:
            catalog_types = coerce_descriptors(ChallengeTypeDescriptor, await self._catalog.get_all_challenge_types())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not load challenge types for variety selection (user=%s): %s", user_id, exc)
            return None

        candidates = [challenge_type for challenge_type in catalog_types if challenge_type.code not in recent_types]
        if not candidates:
            logger.debug("Every catalog challenge type used recently by user=%s", user_id)
            return None

        candidate_codes = [candidate.code for candidate in candidates]
        try:
            selected = _coerce(
                ChallengeTypeDescriptor,
                await self._personalization.select_challenge_type(
                    list(params.dominant_traits),
                    [params.focus_area],
                    candidate_types=candidate_codes,
                ),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Personalization failed during variety selection for user=%s: %s", user_id, exc)
            selected = None
        if selected is not None and selected.code in candidate_codes:
            return candidates[candidate_codes.index(selected.code)]
        return candidates[0]

    async def _preferred_challenge_type(self, user_id: str, params: ChallengeTypeParams) -> Optional[ChallengeTypeDescriptor]:
        return await self._lookup_challenge_type(user_id, params.preferences.preferred_challenge_type, "Preferred")

    async def _personalized_challenge_type(self, user_id: str, params: ChallengeTypeParams) -> Optional[ChallengeTypeDescriptor]:
        try:
            selected = await self._personalization.select_challenge_type(
                list(params.dominant_traits),
                [params.focus_area],
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Personalization challenge type selection failed for user=%s: %s", user_id, exc)
            return None
        return _coerce(ChallengeTypeDescriptor, selected)

    async def _default_challenge_type(self, user_id: str, params: ChallengeTypeParams) -> Optional[ChallengeTypeDescriptor]:
        return await self._lookup_challenge_type(user_id, DEFAULT_CHALLENGE_TYPE, "Default")

    # -- format type ----------------------------------------------------

    def format_type_resolvers(self) -> List[Resolver[FormatTypeParams, FormatTypeDescriptor]]:
        return [
            self._requested_format_type,
            self._preferred_format_type,
            self._challenge_default_format_type,
            self._variety_format_type,
            self._trait_format_type,
            self._first_catalog_format_type,
        ]

    async def determine_format_type(self, user_id: str, params: FormatTypeParams) -> FormatTypeDescriptor:
        resolved = await self._first_resolved(self.format_type_resolvers(), user_id, params, "format type")
        if resolved is not None:
            return resolved
        logger.warning("Falling back to built-in format type for user=%s", user_id)
        return FormatTypeDescriptor(code=DEFAULT_FORMAT_TYPE)

    async def _lookup_format_type(self, user_id: str, code: Optional[str], label: str) -> Optional[FormatTypeDescriptor]:
        if not code:
            return None
        try:
            return _coerce(FormatTypeDescriptor, await self._catalog.get_format_type(code))
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s format type %s unavailable for user=%s: %s", label, code, user_id, exc)
            return None

    async def _all_format_types(self, user_id: str) -> List[FormatTypeDescriptor]:
        try:
            return coerce_descriptors(FormatTypeDescriptor, await self._catalog.get_all_format_types())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not load format types for user=%s: %s", user_id, exc)
            return []

    async def _requested_format_type(self, user_id: str, params: FormatTypeParams) -> Optional[FormatTypeDescriptor]:
        return await self._lookup_format_type(user_id, params.requested_format, "Requested")

    async def _preferred_format_type(self, user_id: str, params: FormatTypeParams) -> Optional[FormatTypeDescriptor]:
        return await self._lookup_format_type(user_id, params.preferences.preferred_format, "Preferred")

    async def _challenge_default_format_type(self, user_id: str, params: FormatTypeParams) -> Optional[FormatTypeDescriptor]:
        challenge_type = params.challenge_type
        if challenge_type is None or not challenge_type.default_format_type_code:
            challenge_type = await self._lookup_challenge_type(user_id, params.challenge_type_code, "Selected")
        if challenge_type is None:
            return None
        return await self._lookup_format_type(user_id, challenge_type.default_format_type_code, "Default")

    async def _variety_format_type(self, user_id: str, params: FormatTypeParams) -> Optional[FormatTypeDescriptor]:
        recent_formats = {
            challenge.format_type
            for challenge in recent_window(params.completed_challenges, self._settings.variety_window)
            if challenge.format_type
        }
        if not recent_formats:
            return None
        for format_type in await self._all_format_types(user_id):
            if format_type.code not in recent_formats:
                return format_type
        return None

    async def _trait_format_type(self, user_id: str, params: FormatTypeParams) -> Optional[FormatTypeDescriptor]:
        wanted: tuple[str, ...] = ()
        for trait, codes in TRAIT_FORMAT_PREFERENCES.items():
            if trait in params.dominant_traits:
                wanted = codes
                break
        if not wanted:
            return None
        for format_type in await self._all_format_types(user_id):
            if format_type.code in wanted:
                return format_type
        return None

    async def _first_catalog_format_type(self, user_id: str, params: FormatTypeParams) -> Optional[FormatTypeDescriptor]:
        formats = await self._all_format_types(user_id)
        return formats[0] if formats else None

    # -- starting difficulty --------------------------------------------

    def difficulty_resolvers(self) -> List[Resolver[DifficultyParams, Difficulty]]:
        return [
            self._requested_difficulty,
            self._persisted_difficulty,
            self._score_difficulty,
            self._skill_difficulty,
            self._experience_difficulty,
        ]

    async def determine_difficulty(self, user_id: str, params: DifficultyParams) -> Difficulty:
        resolved = await self._first_resolved(self.difficulty_resolvers(), user_id, params, "difficulty")
        return resolved or Difficulty.from_level("intermediate")

    async def _catalog_difficulty(self, user_id: str, code: Optional[str], label: str) -> Optional[Difficulty]:
        if not code:
            return None
        try:
            raw = await self._catalog.get_difficulty_level(code)
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s difficulty %s unavailable for user=%s: %s", label, code, user_id, exc)
            return None
        if raw is None:
            return None
        resolved_code = getattr(raw, "code", None) or (raw.get("code") if isinstance(raw, Mapping) else None) or code
        if resolved_code.lower() not in DIFFICULTY_BANDS:
            logger.debug("Difficulty %s has no band; ignoring for user=%s", resolved_code, user_id)
            return None
        return Difficulty.from_level(resolved_code)

    async def _requested_difficulty(self, user_id: str, params: DifficultyParams) -> Optional[Difficulty]:
        return await self._catalog_difficulty(user_id, params.requested_difficulty, "Requested")

    async def _persisted_difficulty(self, user_id: str, params: DifficultyParams) -> Optional[Difficulty]:
        return await self._catalog_difficulty(user_id, params.user_difficulty, "Persisted")

    @staticmethod
    def _score_difficulty(user_id: str, params: DifficultyParams) -> Optional[Difficulty]:
        if params.recent_score is None:
            return None
        return Difficulty.from_score(params.recent_score)

    @staticmethod
    def _skill_difficulty(user_id: str, params: DifficultyParams) -> Optional[Difficulty]:
        if params.skill_level is None:
            return None
        return Difficulty.from_score(params.skill_level)

    @staticmethod
    def _experience_difficulty(user_id: str, params: DifficultyParams) -> Optional[Difficulty]:
        count = params.completed_count
        if count is None:
            return None
        if count < 3:
            return Difficulty.from_level("beginner")
        if count < 10:
            return Difficulty.from_level("intermediate")
        if count < 25:
            return Difficulty.from_level("advanced")
        return Difficulty.from_level("expert")

    # -- recommendation ranking -----------------------------------------

    def recommend_focus_areas(
        self,
        signals: LearnerSignals,
        trait_mappings: Mapping[str, Sequence[str]],
        catalog_focus_areas: Sequence[FocusAreaDescriptor],
    ) -> List[str]:
        limit = self._settings.max_recommended_items
        ranked: List[str] = []

        weakest = sorted(signals.skill_levels.items(), key=lambda item: item[1])[:2]
        ranked.extend(map_skills_to_focus_areas([key for key, _ in weakest], single_code_mappings(trait_mappings)))

        if signals.traits:
            valid_codes = {area.code for area in catalog_focus_areas}
            for code in traits_to_focus_codes(signals.traits, trait_mappings):
                if not valid_codes or code in valid_codes:
                    ranked.append(code)

        if signals.progress_focus_area and len(ranked) < limit:
            ranked.append(signals.progress_focus_area)

        return _dedupe(_pad_with_defaults(_dedupe(ranked, len(ranked)), DEFAULT_FOCUS_AREAS), limit)

    async def recommend_challenge_types(self, signals: LearnerSignals, focus_areas: Sequence[str]) -> List[str]:
        limit = self._settings.max_recommended_items
        ranked: List[str] = []

        if signals.traits:
            try:
                selected = _coerce(
                    ChallengeTypeDescriptor,
                    await self._personalization.select_challenge_type(list(signals.traits), list(focus_areas[:2])),
                )
            except Exception as exc:  # noqa: BLE001
                logger.warning("Error selecting challenge type from traits for user=%s: %s", signals.user_id, exc)
                selected = None
            if selected is not None:
                ranked.append(selected.code)
                ranked.extend(selected.related_types[:2])

        successful = [
            challenge.challenge_type
            for challenge in signals.completed_challenges
            if challenge.challenge_type and challenge.score is not None and challenge.score >= SUCCESS_SCORE
        ]
        ranked.extend(code for code, _ in Counter(successful).most_common(2))

        return _dedupe(_pad_with_defaults(_dedupe(ranked, len(ranked)), DEFAULT_CHALLENGE_TYPES), limit)


__all__ = [
    "ChallengeTypeParams",
    "coerce_descriptors",
    "DEFAULT_CHALLENGE_TYPE",
    "DEFAULT_CHALLENGE_TYPES",
    "DEFAULT_FOCUS_AREA",
    "DEFAULT_FOCUS_AREAS",
    "DEFAULT_FORMAT_TYPE",
    "DifficultyParams",
    "FocusAreaParams",
    "FormatTypeParams",
    "SelectionEngine",
    "recent_window",
    "single_code_mappings",
    "traits_to_focus_codes",
]
