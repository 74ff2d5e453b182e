"""Catalog providers: an HTTP client for the catalog service and an in-process fallback."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import ValidationError

from .config import Settings, get_settings
from .models import (
    CatalogDescriptor,
    ChallengeTypeDescriptor,
    DifficultyLevelDescriptor,
    FocusAreaDescriptor,
    FormatTypeDescriptor,
)

logger = logging.getLogger(__name__)

D = TypeVar("D", bound=CatalogDescriptor)


class CatalogClientError(RuntimeError):
    """Raised when the catalog service cannot be reached or returns an invalid payload."""


def _items(payload: Any) -> List[Any]:
    if isinstance(payload, Mapping):
        for key in ("items", "data", "results"):
            if isinstance(payload.get(key), list):
                return payload[key]
    if isinstance(payload, list):
        return payload
    raise CatalogClientError(f"Expected a list payload, got {type(payload).__name__}")


class HttpCatalogClient:
    """Reads catalog reference data over HTTP."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        settings = settings or get_settings()
        url = base_url or settings.catalog_url
        if not url:
            raise CatalogClientError("ADAPTIVE_CATALOG_URL must be configured before using the catalog client.")
        self._base_url = url.rstrip("/")
        self._timeout = max(settings.catalog_timeout_ms, 100) / 1000
        self._client = client

    async def _get(self, path: str, *, allow_missing: bool = False) -> Any:
        endpoint = f"{self._base_url}{path}"
        local_client = self._client or httpx.AsyncClient(timeout=self._timeout)
        close_client = self._client is None
        try:
            response = await local_client.get(endpoint)
            if allow_missing and response.status_code == 404:
                logger.debug("Catalog entry not found: %s", endpoint)
                return None
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise CatalogClientError(f"Catalog request to {endpoint} failed: {exc}") from exc
        finally:
            if close_client:
                await local_client.aclose()

        try:
            return response.json()
        except ValueError as exc:
            raise CatalogClientError(f"Catalog returned invalid JSON from {endpoint}: {exc}") from exc

    async def _list(self, path: str, model: Type[D]) -> List[D]:
        try:
            return [model.model_validate(item) for item in _items(await self._get(path))]
        except ValidationError as exc:
            raise CatalogClientError(f"Catalog returned invalid {model.__name__} entries: {exc}") from exc

    async def _one(self, path: str, model: Type[D]) -> Optional[D]:
        payload = await self._get(path, allow_missing=True)
        if payload is None:
            return None
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise CatalogClientError(f"Catalog returned an invalid {model.__name__}: {exc}") from exc

    async def get_all_challenge_types(self) -> List[ChallengeTypeDescriptor]:
        return await self._list("/challenge-types", ChallengeTypeDescriptor)

    async def get_all_format_types(self) -> List[FormatTypeDescriptor]:
        return await self._list("/format-types", FormatTypeDescriptor)

    async def get_all_focus_areas(self) -> List[FocusAreaDescriptor]:
        return await self._list("/focus-areas", FocusAreaDescriptor)

    async def get_trait_mappings(self) -> Dict[str, List[str]]:
        payload = await self._get("/trait-mappings")
        if not isinstance(payload, Mapping):
            raise CatalogClientError("Trait mappings payload must be an object")
        return {
            str(trait): [str(code) for code in codes]
            for trait, codes in payload.items()
            if isinstance(codes, list)
        }

    async def get_challenge_type(self, code: str) -> Optional[ChallengeTypeDescriptor]:
        return await self._one(f"/challenge-types/{code}", ChallengeTypeDescriptor)

    async def get_format_type(self, code: str) -> Optional[FormatTypeDescriptor]:
        return await self._one(f"/format-types/{code}", FormatTypeDescriptor)

    async def get_difficulty_level(self, code: str) -> Optional[DifficultyLevelDescriptor]:
        return await self._one(f"/difficulty-levels/{code}", DifficultyLevelDescriptor)


DEFAULT_CHALLENGE_TYPES: Sequence[Dict[str, Any]] = (
    {"code": "implementation", "name": "Implementation", "defaultFormatTypeCode": "code", "relatedTypes": ["debugging", "optimization"]},
    {"code": "debugging", "name": "Debugging", "defaultFormatTypeCode": "debug", "relatedTypes": ["implementation", "analysis"]},
    {"code": "design", "name": "Design", "defaultFormatTypeCode": "design", "relatedTypes": ["analysis", "implementation"]},
    {"code": "analysis", "name": "Analysis", "defaultFormatTypeCode": "essay", "relatedTypes": ["design", "debugging"]},
    {"code": "optimization", "name": "Optimization", "defaultFormatTypeCode": "refactor", "relatedTypes": ["implementation"]},
)

DEFAULT_FORMAT_TYPES: Sequence[Dict[str, Any]] = (
    {"code": "code", "name": "Code"},
    {"code": "debug", "name": "Debug"},
    {"code": "refactor", "name": "Refactor"},
    {"code": "design", "name": "Design"},
    {"code": "essay", "name": "Essay"},
    {"code": "openended", "name": "Open Ended"},
)

DEFAULT_FOCUS_AREAS: Sequence[Dict[str, Any]] = (
    {"code": "AI_Ethics", "name": "AI Ethics"},
    {"code": "Prompt_Engineering", "name": "Prompt Engineering"},
    {"code": "RAG", "name": "Retrieval Augmented Generation"},
    {"code": "LLM_Training", "name": "LLM Training"},
    {"code": "Implementation", "name": "Implementation"},
    {"code": "Debugging", "name": "Debugging"},
    {"code": "Systems_Design", "name": "Systems Design"},
)

DEFAULT_TRAIT_MAPPINGS: Dict[str, List[str]] = {
    "Analytical": ["Debugging", "Systems_Design", "RAG"],
    "Creative": ["Prompt_Engineering", "Systems_Design"],
    "Practical": ["Implementation", "RAG"],
    "Ethical": ["AI_Ethics"],
}

DEFAULT_DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced", "expert", "easy", "medium", "hard")


class StaticCatalog:
    """In-process catalog used when no catalog service is configured."""

    def __init__(
        self,
        *,
        challenge_types: Optional[Sequence[Any]] = None,
        format_types: Optional[Sequence[Any]] = None,
        focus_areas: Optional[Sequence[Any]] = None,
        trait_mappings: Optional[Mapping[str, Sequence[str]]] = None,
        difficulty_levels: Optional[Sequence[str]] = None,
    ) -> None:
        self._challenge_types = [
            ChallengeTypeDescriptor.model_validate(item)
            for item in (DEFAULT_CHALLENGE_TYPES if challenge_types is None else challenge_types)
        ]
        self._format_types = [
            FormatTypeDescriptor.model_validate(item)
            for item in (DEFAULT_FORMAT_TYPES if format_types is None else format_types)
        ]
        self._focus_areas = [
            FocusAreaDescriptor.model_validate(item)
            for item in (DEFAULT_FOCUS_AREAS if focus_areas is None else focus_areas)
        ]
        mappings = DEFAULT_TRAIT_MAPPINGS if trait_mappings is None else trait_mappings
        self._trait_mappings = {trait: list(codes) for trait, codes in mappings.items()}
        self._difficulty_levels = [
            DifficultyLevelDescriptor(code=code)
            for code in (DEFAULT_DIFFICULTY_LEVELS if difficulty_levels is None else difficulty_levels)
        ]

    @staticmethod
    def _find(items: Sequence[D], code: str) -> Optional[D]:
        for item in items:
            if item.code == code:
                return item.model_copy(deep=True)
        return None

    async def get_all_challenge_types(self) -> List[ChallengeTypeDescriptor]:
        return [item.model_copy(deep=True) for item in self._challenge_types]

    async def get_all_format_types(self) -> List[FormatTypeDescriptor]:
        return [item.model_copy(deep=True) for item in self._format_types]

    async def get_all_focus_areas(self) -> List[FocusAreaDescriptor]:
        return [item.model_copy(deep=True) for item in self._focus_areas]

    async def get_trait_mappings(self) -> Dict[str, List[str]]:
        return {trait: list(codes) for trait, codes in self._trait_mappings.items()}

    async def get_challenge_type(self, code: str) -> Optional[ChallengeTypeDescriptor]:
        return self._find(self._challenge_types, code)

    async def get_format_type(self, code: str) -> Optional[FormatTypeDescriptor]:
        return self._find(self._format_types, code)

    async def get_difficulty_level(self, code: str) -> Optional[DifficultyLevelDescriptor]:
        return self._find(self._difficulty_levels, code)


def build_catalog(settings: Optional[Settings] = None) -> Any:
    """HTTP catalog when a URL is configured, otherwise the static defaults."""
    settings = settings or get_settings()
    if settings.catalog_url:
        return HttpCatalogClient(settings)
    logger.info("ADAPTIVE_CATALOG_URL not set; using the static catalog")
    return StaticCatalog()


__all__ = [
    "CatalogClientError",
    "HttpCatalogClient",
    "StaticCatalog",
    "build_catalog",
]
