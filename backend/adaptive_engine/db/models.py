"""ORM models backing recommendation persistence."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class RecommendationModel(TimestampMixin, Base):
    __tablename__ = "recommendations"
    __table_args__ = (Index("ix_recommendations_user_created", "user_id", "created_at"),)

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    recommended_focus_areas: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    recommended_challenge_types: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    suggested_learning_resources: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list, nullable=False)
    challenge_parameters: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    strengths: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    weaknesses: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    metadata_payload: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, default=dict, nullable=False)


__all__ = ["JSONType", "RecommendationModel"]
