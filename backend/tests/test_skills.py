from __future__ import annotations

from adaptive_engine.skills import format_skill_name, map_skills_to_focus_areas, skill_key


def test_format_skill_name_handles_snake_and_camel_case() -> None:
    assert format_skill_name("prompt_engineering") == "Prompt Engineering"
    assert format_skill_name("promptEngineering") == "Prompt Engineering"
    assert format_skill_name("problem_solving") == "Problem Solving"
    assert format_skill_name("rag") == "Rag"


def test_skill_key_normalises_display_labels() -> None:
    assert skill_key("Problem Solving") == "problem_solving"
    assert skill_key("promptEngineering") == "prompt_engineering"
    assert skill_key("  fine-tuning ") == "fine_tuning"


def test_known_skills_map_to_focus_areas() -> None:
    assert map_skills_to_focus_areas(["prompt_engineering", "Problem Solving", "retrieval"]) == [
        "Prompt_Engineering",
        "Problem_Solving",
        "RAG",
    ]


def test_unmapped_skills_pass_through_unchanged() -> None:
    skills = ["prompt_engineering", "quantum_knitting"]
    mapped = map_skills_to_focus_areas(skills)

    assert mapped == ["Prompt_Engineering", "quantum_knitting"]
    assert len(mapped) == len(skills)


def test_partial_matches_use_word_boundaries() -> None:
    assert map_skills_to_focus_areas(["advanced_debugging"]) == ["Debugging"]
    assert map_skills_to_focus_areas(["drag_and_drop"]) == ["drag_and_drop"]


def test_extra_mappings_extend_the_default_table() -> None:
    mapped = map_skills_to_focus_areas(["vector search", "coding"], extra_mappings={"vector_search": "RAG"})

    assert mapped == ["RAG", "Implementation"]


def test_non_string_entries_are_kept_in_place() -> None:
    assert map_skills_to_focus_areas([None, "rag", ""]) == [None, "RAG", ""]
    assert map_skills_to_focus_areas([]) == []
