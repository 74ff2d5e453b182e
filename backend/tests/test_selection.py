from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

from adaptive_engine.catalog_client import StaticCatalog
from adaptive_engine.models import ChallengePreferences, CompletedChallenge, LearnerProgress, PersonalityProfile
from adaptive_engine.selection import (
    ChallengeTypeParams,
    DifficultyParams,
    FocusAreaParams,
    FormatTypeParams,
    SelectionEngine,
    recent_window,
    single_code_mappings,
)
from adaptive_engine.signals import Signal, aggregate_signals


def _engine(settings, *, catalog=None, personalization_result=None, personalization_error=None):
    personalization = AsyncMock()
    personalization.select_challenge_type = AsyncMock(
        return_value=personalization_result,
        side_effect=personalization_error,
    )
    return SelectionEngine(catalog or StaticCatalog(), personalization, settings=settings), personalization


def _completed(*types: str) -> list[CompletedChallenge]:
    return [CompletedChallenge(challenge_type=challenge_type, score=80) for challenge_type in types]


def test_requested_focus_area_wins(settings) -> None:
    engine, _ = _engine(settings)
    params = FocusAreaParams(requested_focus_area="RAG", weaknesses=["Coding"], progress_focus_area="AI_Ethics")

    assert engine.determine_focus_area("u1", params) == "RAG"


def test_weakest_mapped_weakness_drives_focus_area(settings) -> None:
    engine, _ = _engine(settings)
    params = FocusAreaParams(weaknesses=["Prompt Engineering", "Coding"], progress_focus_area="AI_Ethics")

    assert engine.determine_focus_area("u1", params) == "Prompt_Engineering"


def test_catalog_mappings_extend_weakness_lookup(settings) -> None:
    engine, _ = _engine(settings)
    params = FocusAreaParams(
        weaknesses=["Vector Search"],
        trait_mappings={"vector_search": ["RAG"], "Analytical": ["Debugging", "Systems_Design"]},
    )

    assert engine.determine_focus_area("u1", params) == "RAG"
    assert engine.determine_focus_area("u1", FocusAreaParams(weaknesses=["Vector Search"])) == "Vector Search"


def test_single_code_mappings_skip_ambiguous_entries() -> None:
    mappings = {"vector_search": ["RAG"], "Analytical": ["Debugging", "RAG"], "empty": [], "": ["RAG"]}

    assert single_code_mappings(mappings) == {"vector_search": "RAG"}
    assert single_code_mappings(None) == {}


def test_focus_area_falls_back_through_progress_personality_and_general(settings) -> None:
    engine, _ = _engine(settings)

    assert engine.determine_focus_area("u1", FocusAreaParams(progress_focus_area="RAG", personality_focus_area="AI_Ethics")) == "RAG"
    assert engine.determine_focus_area("u1", FocusAreaParams(personality_focus_area="AI_Ethics")) == "AI_Ethics"
    assert (
        engine.determine_focus_area("u1", FocusAreaParams(preferences=ChallengePreferences(focus_area="LLM_Training")))
        == "LLM_Training"
    )
    assert engine.determine_focus_area("u1", FocusAreaParams()) == "general"


def test_requested_challenge_type_skips_personalization(settings) -> None:
    engine, personalization = _engine(settings, personalization_result={"code": "design"})

    selected = asyncio.run(engine.determine_challenge_type("u1", ChallengeTypeParams(requested_type="debugging")))

    assert selected.code == "debugging"
    personalization.select_challenge_type.assert_not_awaited()


def test_unknown_requested_type_falls_through_to_personalization(settings) -> None:
    engine, personalization = _engine(settings, personalization_result={"code": "design", "name": "Design"})
    params = ChallengeTypeParams(requested_type="nope", dominant_traits=["Creative"], focus_area="RAG")

    selected = asyncio.run(engine.determine_challenge_type("u1", params))

    assert selected.code == "design"
    personalization.select_challenge_type.assert_awaited_once_with(["Creative"], ["RAG"])


def test_variety_ignores_personalization_picks_outside_unused_types(settings) -> None:
    engine, personalization = _engine(settings, personalization_result={"code": "implementation"})
    params = ChallengeTypeParams(completed_challenges=_completed("implementation", "implementation", "debugging"))

    selected = asyncio.run(engine.determine_challenge_type("u1", params))

    assert selected.code == "design"
    personalization.select_challenge_type.assert_awaited_once_with(
        [],
        ["general"],
        candidate_types=["design", "analysis", "optimization"],
    )


def test_variety_lets_personalization_choose_among_unused_types(settings) -> None:
    engine, personalization = _engine(settings, personalization_result={"code": "analysis"})
    params = ChallengeTypeParams(
        dominant_traits=["Analytical"],
        focus_area="Debugging",
        completed_challenges=_completed("implementation"),
    )

    selected = asyncio.run(engine.determine_challenge_type("u1", params))

    assert selected.code == "analysis"
    assert selected.default_format_type_code == "essay"
    personalization.select_challenge_type.assert_awaited_once_with(
        ["Analytical"],
        ["Debugging"],
        candidate_types=["debugging", "design", "analysis", "optimization"],
    )


def test_variety_survives_personalization_failure(settings) -> None:
    engine, _ = _engine(settings, personalization_error=RuntimeError("personalization down"))
    params = ChallengeTypeParams(completed_challenges=_completed("implementation"))

    selected = asyncio.run(engine.determine_challenge_type("u1", params))

    assert selected.code == "debugging"


def test_variety_with_every_type_used_falls_through(settings) -> None:
    catalog = StaticCatalog(challenge_types=[{"code": "implementation"}])
    engine, personalization = _engine(settings, catalog=catalog, personalization_result={"code": "debugging"})
    params = ChallengeTypeParams(completed_challenges=_completed("implementation"))

    selected = asyncio.run(engine.determine_challenge_type("u1", params))

    assert selected.code == "debugging"
    personalization.select_challenge_type.assert_awaited_once()


def test_challenge_type_defaults_to_implementation(settings) -> None:
    engine, _ = _engine(settings, personalization_error=RuntimeError("personalization down"))
    selected = asyncio.run(engine.determine_challenge_type("u1", ChallengeTypeParams()))
    assert selected.code == "implementation"

    bare_engine, _ = _engine(settings, catalog=StaticCatalog(challenge_types=[]))
    bare = asyncio.run(bare_engine.determine_challenge_type("u1", ChallengeTypeParams()))
    assert bare.code == "implementation"


def test_recent_window_treats_undated_history_as_append_ordered() -> None:
    history = _completed("a", "b", "c", "d")

    assert [item.challenge_type for item in recent_window(history, 3)] == ["d", "c", "b"]


def test_format_type_chain(settings) -> None:
    engine, _ = _engine(settings)

    requested = asyncio.run(engine.determine_format_type("u1", FormatTypeParams(requested_format="essay")))
    preferred = asyncio.run(
        engine.determine_format_type("u1", FormatTypeParams(preferences=ChallengePreferences(preferred_format="debug")))
    )
    by_type = asyncio.run(engine.determine_format_type("u1", FormatTypeParams(challenge_type_code="design")))
    by_variety = asyncio.run(
        engine.determine_format_type("u1", FormatTypeParams(completed_challenges=[CompletedChallenge(format_type="code")]))
    )
    by_trait = asyncio.run(engine.determine_format_type("u1", FormatTypeParams(dominant_traits=["Creative"])))
    first = asyncio.run(engine.determine_format_type("u1", FormatTypeParams()))

    assert requested.code == "essay"
    assert preferred.code == "debug"
    assert by_type.code == "design"
    assert by_variety.code == "debug"
    assert by_trait.code == "design"
    assert first.code == "code"


def test_format_type_without_catalog_data_is_code(settings) -> None:
    engine, _ = _engine(settings, catalog=StaticCatalog(format_types=[]))

    assert asyncio.run(engine.determine_format_type("u1", FormatTypeParams())).code == "code"


def test_difficulty_chain(settings) -> None:
    engine, _ = _engine(settings)

    def resolve(**kwargs):
        return asyncio.run(engine.determine_difficulty("u1", DifficultyParams(**kwargs))).level

    assert resolve(requested_difficulty="advanced", user_difficulty="beginner") == "advanced"
    assert resolve(requested_difficulty="bogus", user_difficulty="beginner") == "beginner"
    assert resolve(recent_score=90, completed_count=1) == "expert"
    assert resolve(skill_level=30, completed_count=30) == "beginner"
    assert resolve(completed_count=1) == "beginner"
    assert resolve(completed_count=5) == "intermediate"
    assert resolve(completed_count=30) == "expert"
    assert resolve() == "intermediate"


def _signals(settings, *, progress=None, personality=None):
    return aggregate_signals(
        "u1",
        Signal(source="progress", value=LearnerProgress.model_validate(progress)) if progress else Signal.absent("progress"),
        Signal(source="personality", value=PersonalityProfile.model_validate(personality))
        if personality
        else Signal.absent("personality"),
        Signal.absent("user"),
        settings,
    )


def test_recommended_focus_areas_default_without_data(settings) -> None:
    engine, _ = _engine(settings)

    assert engine.recommend_focus_areas(_signals(settings), {}, []) == ["AI_Ethics", "Prompt_Engineering"]


def test_recommended_focus_areas_start_with_weakest_skills(settings) -> None:
    engine, _ = _engine(settings)
    signals = _signals(settings, progress={"skillLevels": {"prompt_engineering": 30, "coding": 40, "rag": 90}})

    assert engine.recommend_focus_areas(signals, {}, []) == ["Prompt_Engineering", "Implementation"]


def test_recommended_focus_areas_filter_trait_mappings_by_catalog(settings) -> None:
    engine, _ = _engine(settings)
    catalog_areas = asyncio.run(StaticCatalog().get_all_focus_areas())
    signals = _signals(settings, personality={"dominantTraits": ["Analytical"]})

    ranked = engine.recommend_focus_areas(signals, {"Analytical": ["RAG", "Unknown"]}, catalog_areas)

    assert ranked == ["RAG", "AI_Ethics"]


def test_recommended_challenge_types_default_without_data(settings) -> None:
    engine, personalization = _engine(settings)

    ranked = asyncio.run(engine.recommend_challenge_types(_signals(settings), ["AI_Ethics"]))

    assert ranked == ["implementation", "debugging"]
    personalization.select_challenge_type.assert_not_awaited()


def test_recommended_challenge_types_use_successful_history(settings) -> None:
    engine, _ = _engine(settings)
    signals = _signals(
        settings,
        progress={
            "completedChallenges": [
                {"challengeType": "debugging", "score": 90},
                {"challengeType": "debugging", "score": 80},
                {"challengeType": "design", "score": 75},
                {"challengeType": "analysis", "score": 40},
            ]
        },
    )

    assert asyncio.run(engine.recommend_challenge_types(signals, [])) == ["debugging", "design"]


def test_recommended_challenge_types_include_related_types(settings) -> None:
    engine, personalization = _engine(
        settings,
        personalization_result={"code": "design", "relatedTypes": ["analysis", "debugging", "optimization"]},
    )
    signals = _signals(settings, personality={"dominantTraits": ["Creative"]})

    ranked = asyncio.run(engine.recommend_challenge_types(signals, ["RAG", "AI_Ethics", "LLM_Training"]))

    assert ranked == ["design", "analysis", "debugging"]
    personalization.select_challenge_type.assert_awaited_once_with(["Creative"], ["RAG", "AI_Ethics"])
