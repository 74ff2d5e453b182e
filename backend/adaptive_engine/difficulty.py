"""Difficulty value object and the post-attempt difficulty controller."""

from __future__ import annotations

import logging
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .collaborators import ProgressProvider, UserProvider
from .config import Settings, get_settings
from .errors import AdaptiveValidationError
from .models import LearnerProgress, PayloadModel, UserRecord
from .telemetry import emit_event

logger = logging.getLogger(__name__)

DifficultyLevel = Literal["beginner", "intermediate", "advanced", "expert", "easy", "medium", "hard"]
Adjustment = Literal["raise", "lower", "hold"]

DEFAULT_LEVEL = "intermediate"
PRIMARY_LADDER: Tuple[str, ...] = ("beginner", "intermediate", "advanced", "expert")
LEGACY_LADDER: Tuple[str, ...] = ("easy", "medium", "hard")

# level -> (complexity, depth, time allocation in seconds)
DIFFICULTY_BANDS: Dict[str, Tuple[float, float, int]] = {
    "beginner": (0.3, 0.25, 1200),
    "intermediate": (0.5, 0.5, 1800),
    "advanced": (0.7, 0.75, 2700),
    "expert": (0.9, 0.9, 3600),
    "easy": (0.4, 0.4, 360),
    "medium": (0.6, 0.6, 480),
    "hard": (0.8, 0.8, 600),
}


def normalize_level(level: Optional[str]) -> str:
    if not isinstance(level, str):
        return DEFAULT_LEVEL
    candidate = level.strip().lower()
    return candidate if candidate in DIFFICULTY_BANDS else DEFAULT_LEVEL


def _ladder_for(level: str) -> Tuple[str, ...]:
    return LEGACY_LADDER if level in LEGACY_LADDER else PRIMARY_LADDER


class Difficulty(BaseModel):
    """Immutable difficulty setting; adjustments return a new instance."""

    model_config = ConfigDict(frozen=True)

    level: DifficultyLevel = DEFAULT_LEVEL
    complexity: float = Field(default=0.5, ge=0.0, le=1.0)
    depth: float = Field(default=0.5, ge=0.0, le=1.0)
    time_allocation: int = Field(default=1800, gt=0)
    adaptive_factor: float = 0.0

    @classmethod
    def from_level(cls, level: Optional[str], *, adaptive_factor: float = 0.0) -> "Difficulty":
        code = normalize_level(level)
        complexity, depth, time_allocation = DIFFICULTY_BANDS[code]
        return cls(
            level=code,  # type: ignore[arg-type]
            complexity=complexity,
            depth=depth,
            time_allocation=time_allocation,
            adaptive_factor=adaptive_factor,
        )

    @classmethod
    def from_score(cls, score: float) -> "Difficulty":
        """Map an absolute 0-100 score onto the primary ladder."""
        if score < 40:
            return cls.from_level("beginner")
        if score < 65:
            return cls.from_level("intermediate")
        if score < 85:
            return cls.from_level("advanced")
        return cls.from_level("expert")

    def shifted(self, steps: int) -> "Difficulty":
        ladder = _ladder_for(self.level)
        index = ladder.index(self.level)
        target = min(max(index + steps, 0), len(ladder) - 1)
        factor = 0.0 if steps == 0 else (0.1 if steps > 0 else -0.1)
        return Difficulty.from_level(ladder[target], adaptive_factor=factor)

    def raised(self) -> "Difficulty":
        return self.shifted(1)

    def lowered(self) -> "Difficulty":
        return self.shifted(-1)

    def to_settings(self) -> Dict[str, Any]:
        return self.model_dump()


class PerformanceData(PayloadModel):
    score: float = Field(ge=0.0, le=100.0)
    time_spent: Optional[float] = Field(default=None, ge=0.0)
    challenge_id: Optional[str] = None


def _validate_request(user_id: Any, performance: Any) -> PerformanceData:
    if not isinstance(user_id, str) or not user_id.strip():
        raise AdaptiveValidationError("User ID is required for difficulty adjustment")
    if isinstance(performance, BaseModel):
        performance = performance.model_dump()
    if not isinstance(performance, Mapping):
        raise AdaptiveValidationError("Performance data is required and must be a mapping")
    if performance.get("score") is None:
        raise AdaptiveValidationError("Performance data must include a score")
    try:
        return PerformanceData.model_validate(dict(performance))
    except ValidationError as exc:
        raise AdaptiveValidationError(
            "Performance data is invalid",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


class DifficultyController:
    """Computes and persists the learner's difficulty after each attempt."""

    def __init__(
        self,
        user_provider: UserProvider,
        *,
        progress_provider: Optional[ProgressProvider] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._users = user_provider
        self._progress = progress_provider
        self._settings = settings or get_settings()

    def decide(self, current: Difficulty, performance: PerformanceData) -> Adjustment:
        settings = self._settings
        score = performance.score
        time_spent = performance.time_spent
        overtime = time_spent is not None and time_spent > current.time_allocation * settings.difficulty_overtime_ratio
        fast = time_spent is not None and time_spent <= current.time_allocation * settings.difficulty_fast_ratio

        if score < settings.difficulty_lower_threshold:
            return "lower"
        if overtime:
            return "hold" if score >= settings.difficulty_raise_threshold else "lower"
        if score >= settings.difficulty_raise_threshold:
            return "raise"
        if fast and score >= settings.difficulty_hold_floor:
            return "raise"
        return "hold"

    async def current_difficulty(self, user_id: str) -> Difficulty:
        try:
            raw = await self._users.get_user_by_id(user_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to load user %s for difficulty lookup: %s", user_id, exc)
            return Difficulty.from_level(DEFAULT_LEVEL)
        if raw is None:
            return Difficulty.from_level(DEFAULT_LEVEL)
        try:
            user = UserRecord.model_validate(raw) if not isinstance(raw, UserRecord) else raw
        except ValidationError as exc:
            logger.warning("Ignoring malformed user record for %s: %s", user_id, exc)
            return Difficulty.from_level(DEFAULT_LEVEL)
        return Difficulty.from_level(user.difficulty_level)

    async def adjust_difficulty(self, user_id: str, performance_data: Any) -> Difficulty:
        performance = _validate_request(user_id, performance_data)
        current = await self.current_difficulty(user_id)
        decision = self.decide(current, performance)
        updated = current.shifted({"raise": 1, "lower": -1, "hold": 0}[decision])
        logger.info(
            "Adjusted difficulty for %s: %s -> %s (score=%s, time_spent=%s)",
            user_id,
            current.level,
            updated.level,
            performance.score,
            performance.time_spent,
        )

        try:
            await self._users.update_user_difficulty(user_id, updated.level)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to persist difficulty %s for %s; returning computed value: %s",
                updated.level,
                user_id,
                exc,
            )
            emit_event(
                "difficulty_persist_failed",
                user_id=user_id,
                level=updated.level,
                error=str(exc),
            )

        emit_event(
            "difficulty_adjusted",
            user_id=user_id,
            challenge_id=performance.challenge_id,
            score=performance.score,
            decision=decision,
            previous_level=current.level,
            difficulty=updated.to_settings(),
        )
        return updated

    async def calculate_difficulty(self, user_id: str) -> Difficulty:
        """Difficulty implied by the learner's overall average score."""
        if not isinstance(user_id, str) or not user_id.strip():
            raise AdaptiveValidationError("User ID is required for difficulty calculation")
        if self._progress is None:
            return Difficulty.from_level(DEFAULT_LEVEL)
        try:
            raw = await self._progress.get_or_create_progress(user_id)
            progress = LearnerProgress.model_validate(raw) if raw is not None else None
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to load progress for %s; using default difficulty: %s", user_id, exc)
            progress = None
        average = progress.statistics.average_score if progress else None
        if average is None:
            return Difficulty.from_level(DEFAULT_LEVEL)
        return Difficulty.from_score(average)


__all__ = [
    "DIFFICULTY_BANDS",
    "Difficulty",
    "DifficultyController",
    "LEGACY_LADDER",
    "PRIMARY_LADDER",
    "PerformanceData",
    "normalize_level",
]
