from __future__ import annotations

import pytest
from pydantic import ValidationError

from adaptive_engine.models import (
    DEFAULT_GENERATION_SOURCE,
    ChallengeParameterSnapshot,
    ChallengeTypeDescriptor,
    LearnerProgress,
    LearningResource,
    Recommendation,
)
from adaptive_engine.telemetry import register_listener


def test_new_recommendation_has_empty_lists_and_an_id() -> None:
    recommendation = Recommendation(user_id="u1")

    assert recommendation.id
    assert recommendation.recommended_focus_areas == []
    assert recommendation.suggested_learning_resources == []
    assert recommendation.challenge_parameters is None


def test_blank_user_id_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Recommendation(user_id="   ")


def test_list_fields_must_be_arrays() -> None:
    with pytest.raises(ValidationError):
        Recommendation.model_validate({"userId": "u1", "recommendedFocusAreas": "RAG"})

    recommendation = Recommendation(user_id="u1")
    with pytest.raises(ValidationError):
        recommendation.strengths = "Coding"  # type: ignore[assignment]


def test_resource_list_is_capped_at_ten() -> None:
    resources = [LearningResource(title=f"Resource {index}") for index in range(11)]

    with pytest.raises(ValidationError):
        Recommendation(user_id="u1", suggested_learning_resources=resources)


def test_mutators_emit_state_change_events(telemetry_events) -> None:
    recommendation = Recommendation(user_id="u1")

    recommendation.set_focus_areas(["RAG"])
    recommendation.set_challenge_types(("design",))
    recommendation.set_challenge_parameters(ChallengeParameterSnapshot(difficulty="advanced", time_limit=600))

    names = [event.name for event in telemetry_events]
    assert names == [
        "recommendation_focus_areas_updated",
        "recommendation_challenge_types_updated",
        "recommendation_challenge_parameters_updated",
    ]
    assert telemetry_events[0].payload["focus_areas"] == ["RAG"]
    assert telemetry_events[2].payload["challenge_parameters"]["time_limit"] == 600
    assert recommendation.recommended_challenge_types == ["design"]


def test_snapshot_time_limit_bounds() -> None:
    with pytest.raises(ValidationError):
        ChallengeParameterSnapshot(time_limit=30)
    with pytest.raises(ValidationError):
        ChallengeParameterSnapshot(time_limit=4000)


def test_descriptor_collects_unknown_keys() -> None:
    descriptor = ChallengeTypeDescriptor.model_validate(
        {"code": "design", "displayName": "Design", "defaultFormatTypeCode": "design", "difficultyHint": 3}
    )

    assert descriptor.name == "Design"
    assert descriptor.default_format_type_code == "design"
    assert descriptor.extra == {"difficultyHint": 3}
    assert ChallengeTypeDescriptor.model_validate("prompt_design").name == "Prompt Design"


def test_progress_keeps_stored_labels_distinct_from_missing() -> None:
    assert LearnerProgress.model_validate({}).strengths is None
    assert LearnerProgress.model_validate({"strengths": []}).strengths == []
    assert LearnerProgress.model_validate({"completedChallenges": None}).completed_challenges == []
    assert LearnerProgress.model_validate({"skillLevels": {"rag": 50, "bad": "x"}}).skill_levels == {"rag": 50.0}


def test_failing_listener_leaves_mutation_applied(telemetry_events) -> None:
    def broken(event) -> None:
        raise RuntimeError("listener failure")

    register_listener(broken, ["recommendation_focus_areas_updated"])
    recommendation = Recommendation(user_id="u1")

    recommendation.set_focus_areas(["RAG", "AI_Ethics"])

    assert recommendation.recommended_focus_areas == ["RAG", "AI_Ethics"]
    assert [event.name for event in telemetry_events] == ["recommendation_focus_areas_updated"]


def test_generation_source_is_always_recorded() -> None:
    assert Recommendation(user_id="u1").metadata["generationSource"] == DEFAULT_GENERATION_SOURCE

    recommendation = Recommendation(user_id="u1", metadata={"basedOnHistory": True})
    assert recommendation.metadata == {"generationSource": DEFAULT_GENERATION_SOURCE, "basedOnHistory": True}

    with pytest.raises(ValidationError):
        Recommendation(user_id="u1", metadata={"generationSource": ""})
    with pytest.raises(ValidationError):
        recommendation.metadata = {"generationSource": 42}
