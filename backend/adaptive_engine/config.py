import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    generation_source: str = Field("AdaptivePersonalizationEngine", alias="ADAPTIVE_GENERATION_SOURCE")

    strength_threshold: float = Field(80.0, alias="ADAPTIVE_STRENGTH_THRESHOLD")
    weakness_threshold: float = Field(50.0, alias="ADAPTIVE_WEAKNESS_THRESHOLD")
    recent_score_window: int = Field(5, alias="ADAPTIVE_RECENT_SCORE_WINDOW", ge=1)
    variety_window: int = Field(3, alias="ADAPTIVE_VARIETY_WINDOW", ge=1)
    max_recommended_items: int = Field(3, alias="ADAPTIVE_MAX_RECOMMENDED_ITEMS", ge=1)

    experience_beginner_max_count: int = Field(10, alias="ADAPTIVE_EXPERIENCE_BEGINNER_COUNT")
    experience_intermediate_max_count: int = Field(20, alias="ADAPTIVE_EXPERIENCE_INTERMEDIATE_COUNT")
    experience_advanced_max_count: int = Field(40, alias="ADAPTIVE_EXPERIENCE_ADVANCED_COUNT")
    experience_intermediate_max_score: float = Field(70.0, alias="ADAPTIVE_EXPERIENCE_INTERMEDIATE_SCORE")
    experience_advanced_max_score: float = Field(85.0, alias="ADAPTIVE_EXPERIENCE_ADVANCED_SCORE")

    difficulty_raise_threshold: float = Field(80.0, alias="ADAPTIVE_DIFFICULTY_RAISE_THRESHOLD")
    difficulty_hold_floor: float = Field(60.0, alias="ADAPTIVE_DIFFICULTY_HOLD_FLOOR")
    difficulty_lower_threshold: float = Field(50.0, alias="ADAPTIVE_DIFFICULTY_LOWER_THRESHOLD")
    difficulty_fast_ratio: float = Field(0.5, alias="ADAPTIVE_DIFFICULTY_FAST_RATIO", gt=0)
    difficulty_overtime_ratio: float = Field(1.5, alias="ADAPTIVE_DIFFICULTY_OVERTIME_RATIO", gt=0)

    recommendation_cache_ttl_seconds: int = Field(300, alias="ADAPTIVE_RECOMMENDATION_CACHE_TTL")
    difficulty_cache_ttl_seconds: int = Field(1800, alias="ADAPTIVE_DIFFICULTY_CACHE_TTL")

    catalog_url: Optional[str] = Field(None, alias="ADAPTIVE_CATALOG_URL")
    catalog_timeout_ms: int = Field(5000, alias="ADAPTIVE_CATALOG_TIMEOUT_MS")

    database_url: Optional[str] = Field(None, alias="ADAPTIVE_DATABASE_URL")
    database_pool_size: int = Field(10, alias="ADAPTIVE_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="ADAPTIVE_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="ADAPTIVE_DATABASE_ECHO")
    persistence_mode: Literal["database", "memory"] = Field("memory", alias="ADAPTIVE_PERSISTENCE_MODE")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        populate_by_name = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid adaptive engine configuration: {exc}") from exc
