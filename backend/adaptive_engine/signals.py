"""Signal aggregation over learner progress, personality and user records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .config import Settings, get_settings
from .models import (
    ChallengePreferences,
    CompletedChallenge,
    LearnerProgress,
    PersonalityProfile,
    RecentChallengeInfo,
    SkillLevelEntry,
    UserRecord,
)
from .skills import format_skill_name

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)
SUCCESS_SCORE = 70


@dataclass(frozen=True)
class Signal(Generic[T]):
    """Presence wrapper for an upstream input; absent signals fall back to defaults."""

    source: str
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def present(self) -> bool:
        return self.value is not None

    def or_default(self, default: T) -> T:
        return self.value if self.value is not None else default

    @classmethod
    def absent(cls, source: str, error: Optional[str] = None) -> "Signal[T]":
        return cls(source=source, value=None, error=error)


def coerce_signal(source: str, result: Any, model: Type[M], *, user_id: Optional[str] = None) -> Signal[M]:
    """Turn a gathered collaborator result (value, ``None`` or exception) into a signal."""
    if isinstance(result, BaseException):
        logger.warning("Failed to load %s for user=%s; continuing without it: %s", source, user_id, result)
        return Signal.absent(source, error=str(result))
    if result is None:
        logger.debug("No %s available for user=%s", source, user_id)
        return Signal.absent(source)
    try:
        value = result if isinstance(result, model) else model.model_validate(result)
    except ValidationError as exc:
        logger.warning("Ignoring malformed %s for user=%s: %s", source, user_id, exc)
        return Signal.absent(source, error=str(exc))
    return Signal(source=source, value=value)


def _numeric_items(skill_levels: Optional[Mapping[str, Any]]) -> List[tuple[str, float]]:
    if not isinstance(skill_levels, Mapping):
        return []
    return [
        (key, float(value))
        for key, value in skill_levels.items()
        if isinstance(value, (int, float)) and not isinstance(value, bool)
    ]


def derive_strengths_from_skills(
    skill_levels: Optional[Mapping[str, Any]],
    threshold: float = 80,
) -> List[str]:
    """Labels for skills scoring at or above ``threshold``, strongest first."""
    items = [item for item in _numeric_items(skill_levels) if item[1] >= threshold]
    items.sort(key=lambda item: item[1], reverse=True)
    return [format_skill_name(key) for key, _ in items]


def derive_weaknesses_from_skills(
    skill_levels: Optional[Mapping[str, Any]],
    threshold: float = 50,
) -> List[str]:
    """Labels for skills scoring below ``threshold``, weakest first."""
    items = [item for item in _numeric_items(skill_levels) if item[1] < threshold]
    items.sort(key=lambda item: item[1])
    return [format_skill_name(key) for key, _ in items]


def _as_challenges(completed: Optional[Iterable[Any]]) -> List[CompletedChallenge]:
    challenges: List[CompletedChallenge] = []
    for entry in completed or []:
        if isinstance(entry, CompletedChallenge):
            challenges.append(entry)
            continue
        try:
            challenges.append(CompletedChallenge.model_validate(entry))
        except ValidationError:
            logger.debug("Skipping malformed completed challenge entry: %r", entry)
    return challenges


def sort_most_recent_first(completed: Optional[Iterable[Any]]) -> List[CompletedChallenge]:
    """Stable sort by ``completed_at`` descending; undated entries go last."""
    challenges = _as_challenges(completed)
    return sorted(challenges, key=lambda challenge: challenge.completed_at or _EPOCH, reverse=True)


def calculate_recent_average_score(
    completed_challenges: Optional[Sequence[Any]],
    window_size: int = 5,
) -> Optional[float]:
    """Mean score of the ``window_size`` most recent scored challenges, or ``None``."""
    if not completed_challenges or window_size <= 0:
        return None
    try:
        recent = [
            challenge.score
            for challenge in sort_most_recent_first(completed_challenges)
            if challenge.score is not None
        ][:window_size]
    except TypeError:
        return None
    if not recent:
        return None
    return sum(recent) / len(recent)


def determine_experience_level(
    completed_count: int,
    recent_skill_scores: Sequence[float],
    settings: Optional[Settings] = None,
) -> str:
    """Classify experience; attempt count and average score gate each band independently."""
    settings = settings or get_settings()
    scores = [float(score) for score in recent_skill_scores or [] if isinstance(score, (int, float))]
    average = sum(scores) / len(scores) if scores else 0.0
    count = completed_count or 0

    if count < settings.experience_beginner_max_count:
        return "beginner"
    if count < settings.experience_intermediate_max_count or average < settings.experience_intermediate_max_score:
        return "intermediate"
    if count < settings.experience_advanced_max_count or average < settings.experience_advanced_max_score:
        return "advanced"
    return "expert"


def format_skill_levels_for_context(skill_levels: Optional[Mapping[str, Any]]) -> List[SkillLevelEntry]:
    entries = [SkillLevelEntry(skill=format_skill_name(key), level=value) for key, value in _numeric_items(skill_levels)]
    entries.sort(key=lambda entry: entry.level, reverse=True)
    return entries


def extract_recent_challenge_info(completed: Optional[Sequence[Any]], count: int = 3) -> List[RecentChallengeInfo]:
    return [
        RecentChallengeInfo(
            type=challenge.challenge_type,
            focus_area=challenge.focus_area,
            score=challenge.score,
            success=challenge.score is not None and challenge.score >= SUCCESS_SCORE,
            format=challenge.format_type,
        )
        for challenge in sort_most_recent_first(completed)[:count]
    ]


@dataclass
class LearnerSignals:
    """Derived snapshot used by the selection engine; never persisted."""

    user_id: str
    progress: Signal[LearnerProgress]
    personality: Signal[PersonalityProfile]
    user: Signal[UserRecord]
    skill_levels: Dict[str, float] = field(default_factory=dict)
    completed_challenges: List[CompletedChallenge] = field(default_factory=list)
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    recent_average_score: Optional[float] = None
    experience_level: str = "beginner"
    traits: List[str] = field(default_factory=list)
    preferences: ChallengePreferences = field(default_factory=ChallengePreferences)
    user_difficulty: Optional[str] = None
    progress_focus_area: Optional[str] = None
    personality_focus_area: Optional[str] = None
    average_score: Optional[float] = None

    @property
    def completed_count(self) -> int:
        return len(self.completed_challenges)


def aggregate_signals(
    user_id: str,
    progress: Signal[LearnerProgress],
    personality: Signal[PersonalityProfile],
    user: Signal[UserRecord],
    settings: Optional[Settings] = None,
) -> LearnerSignals:
    settings = settings or get_settings()
    record = progress.value
    profile = personality.value
    account = user.value

    skill_levels = dict(record.skill_levels) if record else {}
    completed = list(record.completed_challenges) if record else []

    # Stored labels win over derived ones when the progress record carries them.
    if record is not None and record.strengths is not None:
        strengths = list(record.strengths)
    else:
        strengths = derive_strengths_from_skills(skill_levels, settings.strength_threshold)
    if record is not None and record.weaknesses is not None:
        weaknesses = list(record.weaknesses)
    else:
        weaknesses = derive_weaknesses_from_skills(skill_levels, settings.weakness_threshold)

    return LearnerSignals(
        user_id=user_id,
        progress=progress,
        personality=personality,
        user=user,
        skill_levels=skill_levels,
        completed_challenges=completed,
        strengths=strengths,
        weaknesses=weaknesses,
        recent_average_score=calculate_recent_average_score(completed, settings.recent_score_window),
        experience_level=determine_experience_level(len(completed), list(skill_levels.values()), settings),
        traits=list(profile.dominant_traits) if profile else [],
        preferences=account.preferences.challenges if account else ChallengePreferences(),
        user_difficulty=(account.difficulty_level if account else None) or (record.current_difficulty_code if record else None),
        progress_focus_area=record.focus_area if record else None,
        personality_focus_area=profile.focus_area if profile else None,
        average_score=record.statistics.average_score if record else None,
    )


__all__ = [
    "LearnerSignals",
    "Signal",
    "aggregate_signals",
    "calculate_recent_average_score",
    "coerce_signal",
    "derive_strengths_from_skills",
    "derive_weaknesses_from_skills",
    "determine_experience_level",
    "extract_recent_challenge_info",
    "format_skill_levels_for_context",
    "sort_most_recent_first",
]
