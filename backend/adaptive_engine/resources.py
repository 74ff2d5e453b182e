"""Learning resource suggestions keyed by focus area and challenge type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .models import LearningResource

MAX_RESOURCES = 3
MIN_RESOURCES = 2


@dataclass(frozen=True)
class ResourceTemplate:
    title: str
    url: str
    resource_type: str
    analytical_type: Optional[str] = None
    creative_type: Optional[str] = None

    def build(self, *, analytical: bool, creative: bool) -> LearningResource:
        resource_type = self.resource_type
        if analytical and self.analytical_type:
            resource_type = self.analytical_type
        elif creative and self.creative_type:
            resource_type = self.creative_type
        return LearningResource(title=self.title, url=self.url, type=resource_type)


FOCUS_AREA_RESOURCES = {
    "AI_Ethics": ResourceTemplate(
        "Responsible AI Development Guide",
        "/resources/ai-ethics-guide",
        "interactive-guide",
        analytical_type="whitepaper",
    ),
    "Prompt_Engineering": ResourceTemplate(
        "Advanced Prompt Engineering Techniques",
        "/resources/prompt-engineering",
        "workshop",
        analytical_type="tutorial",
    ),
    "RAG": ResourceTemplate("Building Effective RAG Systems", "/resources/rag-systems", "tutorial"),
    "Implementation": ResourceTemplate(
        "Implementation Best Practices for AI Features",
        "/resources/ai-implementation",
        "guide",
    ),
}

CHALLENGE_TYPE_RESOURCES = {
    "debugging": ResourceTemplate(
        "Common LLM Integration Bugs & Solutions",
        "/resources/llm-debugging",
        "troubleshooting-guide",
    ),
    "design": ResourceTemplate(
        "Designing User-Centric AI Interfaces",
        "/resources/ai-ux-design",
        "guide",
        creative_type="interactive-workshop",
    ),
    "optimization": ResourceTemplate(
        "Performance Optimization for AI Applications",
        "/resources/ai-optimization",
        "tutorial",
    ),
}

INTRODUCTORY_RESOURCE = ResourceTemplate(
    "Getting Started with AI Development",
    "/resources/ai-development-intro",
    "course",
)


def suggest_learning_resources(
    focus_areas: Sequence[str],
    challenge_types: Sequence[str],
    traits: Sequence[str],
) -> List[LearningResource]:
    """Up to three resources; the introduction pads sparse results."""
    analytical = "Analytical" in traits
    creative = "Creative" in traits
    build: Callable[[ResourceTemplate], LearningResource] = lambda template: template.build(
        analytical=analytical, creative=creative
    )

    resources = [build(template) for code, template in FOCUS_AREA_RESOURCES.items() if code in focus_areas]
    resources.extend(build(template) for code, template in CHALLENGE_TYPE_RESOURCES.items() if code in challenge_types)
    if len(resources) < MIN_RESOURCES:
        resources.append(build(INTRODUCTORY_RESOURCE))
    return resources[:MAX_RESOURCES]


__all__ = ["ResourceTemplate", "suggest_learning_resources"]
