"""Contracts for the services the adaptive engine consumes.

Providers may return the engine's pydantic models or plain mappings in
camelCase or snake_case; the engine validates whatever it receives.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Protocol, Sequence, Union

from .models import (
    ChallengeTypeDescriptor,
    DifficultyLevelDescriptor,
    FocusAreaDescriptor,
    FormatTypeDescriptor,
    LearnerProgress,
    PersonalityProfile,
    Recommendation,
    UserRecord,
)

Payload = Mapping[str, Any]


class ProgressProvider(Protocol):
    async def get_or_create_progress(self, user_id: str) -> Optional[Union[LearnerProgress, Payload]]:  # pragma: no cover - protocol
        ...


class PersonalityProvider(Protocol):
    async def get_profile(self, user_id: str) -> Optional[Union[PersonalityProfile, Payload]]:  # pragma: no cover - protocol
        ...


class UserProvider(Protocol):
    async def get_user_by_id(self, user_id: str) -> Optional[Union[UserRecord, Payload]]:  # pragma: no cover - protocol
        ...

    async def update_user_difficulty(self, user_id: str, level: str) -> Any:  # pragma: no cover - protocol
        ...


class CatalogProvider(Protocol):
    async def get_all_challenge_types(self) -> Sequence[Union[ChallengeTypeDescriptor, Payload]]:  # pragma: no cover
        ...

    async def get_all_format_types(self) -> Sequence[Union[FormatTypeDescriptor, Payload]]:  # pragma: no cover
        ...

    async def get_all_focus_areas(self) -> Sequence[Union[FocusAreaDescriptor, Payload]]:  # pragma: no cover
        ...

    async def get_trait_mappings(self) -> Mapping[str, Sequence[str]]:  # pragma: no cover
        ...

    async def get_challenge_type(self, code: str) -> Optional[Union[ChallengeTypeDescriptor, Payload]]:  # pragma: no cover
        ...

    async def get_format_type(self, code: str) -> Optional[Union[FormatTypeDescriptor, Payload]]:  # pragma: no cover
        ...

    async def get_difficulty_level(self, code: str) -> Optional[Union[DifficultyLevelDescriptor, Payload]]:  # pragma: no cover
        ...


class PersonalizationProvider(Protocol):
    async def select_challenge_type(
        self,
        traits: List[str],
        focus_areas: List[str],
        candidate_types: Optional[List[str]] = None,
    ) -> Optional[Union[ChallengeTypeDescriptor, Payload]]:  # pragma: no cover - protocol
        """Pick a challenge type; when ``candidate_types`` is given the pick must be one of them."""
        ...


class RecommendationStore(Protocol):
    async def save(self, recommendation: Recommendation) -> Recommendation:  # pragma: no cover - protocol
        ...

    async def find_latest_for_user(self, user_id: str) -> Optional[Recommendation]:  # pragma: no cover - protocol
        ...


__all__ = [
    "CatalogProvider",
    "Payload",
    "PersonalityProvider",
    "PersonalizationProvider",
    "ProgressProvider",
    "RecommendationStore",
    "UserProvider",
]
