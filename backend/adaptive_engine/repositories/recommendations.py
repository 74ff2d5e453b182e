"""Recommendation persistence: SQLAlchemy repository and store facades."""

from __future__ import annotations

import asyncio
import logging
from threading import RLock
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..db.models import RecommendationModel
from ..db.session import session_scope
from ..models import Recommendation

logger = logging.getLogger(__name__)


def _normalize_user_id(user_id: str) -> str:
    normalized = user_id.strip()
    if not normalized:
        raise ValueError("User id cannot be empty.")
    return normalized


class RecommendationRepository:
    """Session-scoped persistence helpers for recommendations."""

    def save(self, session: Session, recommendation: Recommendation) -> Recommendation:
        model = session.get(RecommendationModel, recommendation.id)
        if model is None:
            model = RecommendationModel(id=recommendation.id, user_id=_normalize_user_id(recommendation.user_id))
            session.add(model)
        self._apply(model, recommendation)
        session.flush()
        return self._to_domain(model)

    def find_latest_for_user(self, session: Session, user_id: str) -> Optional[Recommendation]:
        stmt = (
            select(RecommendationModel)
            .where(RecommendationModel.user_id == _normalize_user_id(user_id))
            .order_by(RecommendationModel.created_at.desc())
            .limit(1)
        )
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def list_for_user(self, session: Session, user_id: str, *, limit: int = 20) -> List[Recommendation]:
        stmt = (
            select(RecommendationModel)
            .where(RecommendationModel.user_id == _normalize_user_id(user_id))
            .order_by(RecommendationModel.created_at.desc())
            .limit(limit)
        )
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    @staticmethod
    def _apply(model: RecommendationModel, recommendation: Recommendation) -> None:
        payload = recommendation.model_dump(mode="json")
        model.created_at = recommendation.created_at
        model.recommended_focus_areas = payload["recommended_focus_areas"]
        model.recommended_challenge_types = payload["recommended_challenge_types"]
        model.suggested_learning_resources = payload["suggested_learning_resources"]
        model.challenge_parameters = payload["challenge_parameters"]
        model.strengths = payload["strengths"]
        model.weaknesses = payload["weaknesses"]
        model.metadata_payload = payload["metadata"]

    @staticmethod
    def _to_domain(model: RecommendationModel) -> Recommendation:
        return Recommendation.model_validate(
            {
                "id": model.id,
                "user_id": model.user_id,
                "created_at": model.created_at,
                "recommended_focus_areas": list(model.recommended_focus_areas or []),
                "recommended_challenge_types": list(model.recommended_challenge_types or []),
                "suggested_learning_resources": list(model.suggested_learning_resources or []),
                "challenge_parameters": model.challenge_parameters,
                "strengths": list(model.strengths or []),
                "weaknesses": list(model.weaknesses or []),
                "metadata": dict(model.metadata_payload or {}),
            }
        )


recommendations = RecommendationRepository()


class DatabaseRecommendationStore:
    """Async facade running repository calls in a worker thread."""

    def __init__(self, repository: Optional[RecommendationRepository] = None) -> None:
        self._repository = repository or recommendations

    def _save_sync(self, recommendation: Recommendation) -> Recommendation:
        with session_scope() as session:
            return self._repository.save(session, recommendation)

    def _latest_sync(self, user_id: str) -> Optional[Recommendation]:
        with session_scope(commit=False) as session:
            return self._repository.find_latest_for_user(session, user_id)

    def _list_sync(self, user_id: str, limit: int) -> List[Recommendation]:
        with session_scope(commit=False) as session:
            return self._repository.list_for_user(session, user_id, limit=limit)

    async def save(self, recommendation: Recommendation) -> Recommendation:
        return await asyncio.to_thread(self._save_sync, recommendation)

    async def find_latest_for_user(self, user_id: str) -> Optional[Recommendation]:
        return await asyncio.to_thread(self._latest_sync, user_id)

    async def list_for_user(self, user_id: str, *, limit: int = 20) -> List[Recommendation]:
        return await asyncio.to_thread(self._list_sync, user_id, limit)


class InMemoryRecommendationStore:
    """Keeps every saved recommendation per user; newest last."""

    def __init__(self) -> None:
        self._history: Dict[str, List[Recommendation]] = {}
        self._lock = RLock()

    async def save(self, recommendation: Recommendation) -> Recommendation:
        key = _normalize_user_id(recommendation.user_id)
        stored = recommendation.model_copy(deep=True)
        with self._lock:
            history = self._history.setdefault(key, [])
            history[:] = [item for item in history if item.id != stored.id]
            history.append(stored)
        return stored.model_copy(deep=True)

    async def find_latest_for_user(self, user_id: str) -> Optional[Recommendation]:
        with self._lock:
            history = self._history.get(_normalize_user_id(user_id))
            if not history:
                return None
            return history[-1].model_copy(deep=True)

    async def list_for_user(self, user_id: str, *, limit: int = 20) -> List[Recommendation]:
        with self._lock:
            history = list(self._history.get(_normalize_user_id(user_id), []))
        return [item.model_copy(deep=True) for item in reversed(history)][:limit]

    def clear(self) -> None:
        with self._lock:
            self._history.clear()


def build_recommendation_store(settings: Optional[Settings] = None):
    settings = settings or get_settings()
    if settings.persistence_mode == "database":
        logger.info("Using database-backed recommendation store")
        return DatabaseRecommendationStore()
    logger.info("Using in-memory recommendation store")
    return InMemoryRecommendationStore()


__all__ = [
    "DatabaseRecommendationStore",
    "InMemoryRecommendationStore",
    "RecommendationRepository",
    "build_recommendation_store",
    "recommendations",
]
