from __future__ import annotations

from adaptive_engine.resources import suggest_learning_resources


def test_resources_follow_focus_areas_and_traits() -> None:
    analytical = suggest_learning_resources(["AI_Ethics", "Prompt_Engineering"], [], ["Analytical"])
    practical = suggest_learning_resources(["AI_Ethics", "Prompt_Engineering"], [], ["Practical"])

    assert [resource.type for resource in analytical] == ["whitepaper", "tutorial"]
    assert [resource.type for resource in practical] == ["interactive-guide", "workshop"]


def test_creative_learners_get_interactive_design_workshops() -> None:
    resources = suggest_learning_resources(["RAG"], ["design"], ["Creative"])

    assert [resource.url for resource in resources] == ["/resources/rag-systems", "/resources/ai-ux-design"]
    assert resources[1].type == "interactive-workshop"


def test_sparse_results_are_padded_with_an_introduction() -> None:
    resources = suggest_learning_resources(["LLM_Training"], ["analysis"], [])

    assert [resource.title for resource in resources] == ["Getting Started with AI Development"]


def test_at_most_three_resources() -> None:
    resources = suggest_learning_resources(
        ["AI_Ethics", "Prompt_Engineering", "RAG", "Implementation"],
        ["debugging", "design", "optimization"],
        [],
    )

    assert len(resources) == 3
