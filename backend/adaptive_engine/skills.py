"""Skill key normalisation and skill-to-focus-area mapping."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Optional

DEFAULT_SKILL_FOCUS_MAP: Dict[str, str] = {
    "prompt_engineering": "Prompt_Engineering",
    "prompt": "Prompt_Engineering",
    "prompting": "Prompt_Engineering",
    "coding": "Implementation",
    "implementation": "Implementation",
    "debugging": "Debugging",
    "problem_solving": "Problem_Solving",
    "analysis": "Analysis",
    "systems_design": "Systems_Design",
    "design": "Systems_Design",
    "llm": "LLM_Knowledge",
    "llm_knowledge": "LLM_Knowledge",
    "ai_ethics": "AI_Ethics",
    "ethics": "AI_Ethics",
    "rag": "RAG",
    "retrieval": "RAG",
    "fine_tuning": "Fine_Tuning",
    "optimization": "Optimization",
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATORS = re.compile(r"[\s_\-]+")


def skill_key(value: str) -> str:
    """Canonical lookup key: ``promptEngineering``/``Prompt Engineering`` -> ``prompt_engineering``."""
    spaced = _CAMEL_BOUNDARY.sub(" ", value.strip())
    return _SEPARATORS.sub("_", spaced).strip("_").lower()


def format_skill_name(key: str) -> str:
    """Convert a snake_case or camelCase key into Title Case words."""
    spaced = _CAMEL_BOUNDARY.sub(" ", key)
    words = [word for word in _SEPARATORS.split(spaced) if word]
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def _lookup(normalized: str, mapping: Mapping[str, str]) -> Optional[str]:
    if normalized in mapping:
        return mapping[normalized]
    bounded = f"_{normalized}_"
    for candidate, focus_area in mapping.items():
        if f"_{candidate}_" in bounded or bounded in f"_{candidate}_":
            return focus_area
    return None


def map_skills_to_focus_areas(
    skill_keys: Iterable[str],
    extra_mappings: Optional[Mapping[str, str]] = None,
) -> List[str]:
    """Map skill keys or labels to focus-area codes.

    Unmapped entries pass through unchanged and order is preserved.
    """
    mapping: Dict[str, str] = dict(DEFAULT_SKILL_FOCUS_MAP)
    if extra_mappings:
        mapping.update({skill_key(key): value for key, value in extra_mappings.items() if key})

    focus_areas: List[str] = []
    for skill in skill_keys:
        if not isinstance(skill, str) or not skill.strip():
            focus_areas.append(skill)
            continue
        mapped = _lookup(skill_key(skill), mapping)
        focus_areas.append(mapped if mapped is not None else skill)
    return focus_areas


__all__ = [
    "DEFAULT_SKILL_FOCUS_MAP",
    "format_skill_name",
    "map_skills_to_focus_areas",
    "skill_key",
]
