"""Domain models shared by the adaptive engine and its collaborators."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .telemetry import emit_event

DEFAULT_GENERATION_SOURCE = "AdaptivePersonalizationEngine"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PayloadModel(BaseModel):
    """Accepts collaborator payloads in either camelCase or snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Catalog reference data
# ---------------------------------------------------------------------------


class CatalogDescriptor(PayloadModel):
    """Catalog entry with a stable code, display name and open extension map."""

    code: str = Field(min_length=1)
    name: str = ""
    extra: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_extra(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"code": data}
        if not isinstance(data, dict):
            return data
        known = set()
        for field_name in cls.model_fields:
            known.add(field_name)
            known.add(to_camel(field_name))
        extra = dict(data.get("extra") or {})
        cleaned: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "extra":
                continue
            if key in known:
                cleaned[key] = value
            else:
                extra[key] = value
        if not cleaned.get("name"):
            display = extra.pop("displayName", None) or extra.pop("display_name", None)
            cleaned["name"] = display or str(cleaned.get("code", "")).replace("_", " ").title()
        cleaned["extra"] = extra
        return cleaned


class ChallengeTypeDescriptor(CatalogDescriptor):
    default_format_type_code: Optional[str] = None
    related_types: List[str] = Field(default_factory=list)


class FormatTypeDescriptor(CatalogDescriptor):
    pass


class FocusAreaDescriptor(CatalogDescriptor):
    pass


class DifficultyLevelDescriptor(CatalogDescriptor):
    complexity: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    depth: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    time_allocation: Optional[int] = Field(default=None, gt=0)


# ---------------------------------------------------------------------------
# Learner state supplied by collaborators
# ---------------------------------------------------------------------------


class CompletedChallenge(PayloadModel):
    challenge_id: Optional[str] = None
    challenge_type: Optional[str] = None
    focus_area: Optional[str] = None
    format_type: Optional[str] = None
    score: Optional[float] = None
    completed_at: Optional[datetime] = None

    @field_validator("completed_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ProgressStatistics(PayloadModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    average_score: Optional[float] = None
    total_challenges: Optional[int] = None


class LearnerProgress(PayloadModel):
    """Progress record; ``strengths``/``weaknesses`` stay ``None`` when not stored."""

    user_id: Optional[str] = None
    focus_area: Optional[str] = None
    skill_levels: Dict[str, float] = Field(default_factory=dict)
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    completed_challenges: List[CompletedChallenge] = Field(default_factory=list)
    statistics: ProgressStatistics = Field(default_factory=ProgressStatistics)
    current_difficulty_code: Optional[str] = None

    @field_validator("skill_levels", mode="before")
    @classmethod
    def _numeric_skills_only(cls, value: Any) -> Dict[str, float]:
        if not isinstance(value, dict):
            return {}
        return {
            str(key): float(level)
            for key, level in value.items()
            if isinstance(level, (int, float)) and not isinstance(level, bool)
        }

    @field_validator("completed_challenges", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class PersonalityProfile(PayloadModel):
    user_id: Optional[str] = None
    dominant_traits: List[str] = Field(default_factory=list)
    focus_area: Optional[str] = None


class ChallengePreferences(PayloadModel):
    preferred_challenge_type: Optional[str] = None
    preferred_format: Optional[str] = None
    focus_area: Optional[str] = None
    languages: Optional[List[str]] = None
    topics: Optional[List[str]] = None


class UserPreferences(PayloadModel):
    challenges: ChallengePreferences = Field(default_factory=ChallengePreferences)


class UserRecord(PayloadModel):
    id: Optional[str] = None
    difficulty_level: Optional[str] = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)

    @field_validator("preferences", mode="before")
    @classmethod
    def _none_preferences(cls, value: Any) -> Any:
        return {} if value is None else value


# ---------------------------------------------------------------------------
# Engine outputs
# ---------------------------------------------------------------------------


class LearningResource(PayloadModel):
    title: str = Field(min_length=1, max_length=200)
    url: Optional[str] = Field(default=None, max_length=2000)
    description: Optional[str] = Field(default=None, max_length=1000)
    type: Optional[str] = Field(default=None, max_length=50)
    relevance_score: Optional[float] = Field(default=None, ge=0.0, le=100.0)


class ChallengeParameterSnapshot(PayloadModel):
    """Subset of a generated parameter bundle stored on a recommendation."""

    difficulty: Optional[str] = None
    focus_area: Optional[str] = None
    challenge_type: Optional[str] = None
    format_type: Optional[str] = None
    time_limit: Optional[int] = Field(default=None, ge=60, le=3600)
    custom_instructions: Optional[str] = Field(default=None, max_length=2000)
    options: Dict[str, Any] = Field(default_factory=dict)


class SkillLevelEntry(PayloadModel):
    skill: str
    level: float


class RecentChallengeInfo(PayloadModel):
    type: Optional[str] = None
    focus_area: Optional[str] = None
    score: Optional[float] = None
    success: bool = False
    format: Optional[str] = None


class UserContext(PayloadModel):
    skill_levels: List[SkillLevelEntry] = Field(default_factory=list)
    traits: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    experience_level: str = "beginner"
    preferred_languages: List[str] = Field(default_factory=lambda: ["javascript", "python"])
    preferred_topics: List[str] = Field(default_factory=list)
    recent_challenges: List[RecentChallengeInfo] = Field(default_factory=list)
    adaptive_factor: float = 0.0


class ChallengeParameters(PayloadModel):
    user_id: str
    focus_area: str
    challenge_type: str
    format_type: str
    difficulty: str
    time_allocation: int = Field(gt=0)
    complexity: float = Field(ge=0.0, le=1.0)
    depth: float = Field(ge=0.0, le=1.0)
    user_context: UserContext = Field(default_factory=UserContext)

    def to_snapshot(self) -> ChallengeParameterSnapshot:
        return ChallengeParameterSnapshot(
            difficulty=self.difficulty,
            focus_area=self.focus_area,
            challenge_type=self.challenge_type,
            format_type=self.format_type,
            time_limit=min(max(self.time_allocation, 60), 3600),
        )


_ARRAY_FIELDS = (
    "recommended_focus_areas",
    "recommended_challenge_types",
    "suggested_learning_resources",
    "strengths",
    "weaknesses",
)


class Recommendation(PayloadModel):
    """Persisted recommendation generated for a learner."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str = Field(min_length=1)
    created_at: datetime = Field(default_factory=_now)
    recommended_focus_areas: List[str] = Field(default_factory=list)
    recommended_challenge_types: List[str] = Field(default_factory=list)
    suggested_learning_resources: List[LearningResource] = Field(default_factory=list, max_length=10)
    challenge_parameters: Optional[ChallengeParameterSnapshot] = None
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator(*_ARRAY_FIELDS, mode="before")
    @classmethod
    def _require_array(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            raise ValueError("must be an array")
        return list(value)

    @field_validator("user_id")
    @classmethod
    def _strip_user_id(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("user_id cannot be blank")
        return stripped

    @field_validator("metadata")
    @classmethod
    def _require_generation_source(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        source = value.get("generationSource")
        if source is None:
            return {"generationSource": DEFAULT_GENERATION_SOURCE, **value}
        if not isinstance(source, str) or not source.strip():
            raise ValueError("generationSource must be a non-empty string")
        return value

    def set_focus_areas(self, focus_areas: Sequence[str]) -> None:
        self.recommended_focus_areas = list(focus_areas)
        emit_event(
            "recommendation_focus_areas_updated",
            recommendation_id=self.id,
            user_id=self.user_id,
            focus_areas=list(self.recommended_focus_areas),
        )

    def set_challenge_types(self, challenge_types: Sequence[str]) -> None:
        self.recommended_challenge_types = list(challenge_types)
        emit_event(
            "recommendation_challenge_types_updated",
            recommendation_id=self.id,
            user_id=self.user_id,
            challenge_types=list(self.recommended_challenge_types),
        )

    def set_challenge_parameters(self, parameters: Optional[ChallengeParameterSnapshot]) -> None:
        self.challenge_parameters = parameters
        emit_event(
            "recommendation_challenge_parameters_updated",
            recommendation_id=self.id,
            user_id=self.user_id,
            challenge_parameters=parameters,
        )


__all__ = [
    "DEFAULT_GENERATION_SOURCE",
    "CatalogDescriptor",
    "ChallengeParameterSnapshot",
    "ChallengeParameters",
    "ChallengePreferences",
    "ChallengeTypeDescriptor",
    "CompletedChallenge",
    "DifficultyLevelDescriptor",
    "FocusAreaDescriptor",
    "FormatTypeDescriptor",
    "LearnerProgress",
    "LearningResource",
    "PersonalityProfile",
    "ProgressStatistics",
    "RecentChallengeInfo",
    "Recommendation",
    "SkillLevelEntry",
    "UserContext",
    "UserPreferences",
    "UserRecord",
]
