from __future__ import annotations

from types import SimpleNamespace

import pytest

from formadb.apps.trainings.normalizer import (
    DEFAULT_EVALUATION_METHODS,
    DEFAULT_TRACKING_METHODS,
    OBJECTIVES_PLACEHOLDER,
    normalize_method_set,
    normalize_objectives,
    normalize_time_slots,
    normalize_training,
)


def test_string_list_is_returned_unchanged():
    raw = ["Savoir X", "Savoir Y"]
    assert normalize_objectives(raw) == ["Savoir X", "Savoir Y"]


@pytest.mark.parametrize("raw", [[], "[]", None, 42, "", "   ", "null"])
def test_empty_or_missing_objectives_give_placeholder(raw):
    assert normalize_objectives(raw) == [OBJECTIVES_PLACEHOLDER]


def test_json_encoded_array_is_decoded():
    assert normalize_objectives('["Savoir X","Savoir Y"]') == ["Savoir X", "Savoir Y"]


def test_json_object_yields_its_values_in_order():
    assert normalize_objectives('{"a": "Premier", "b": "Second"}') == ["Premier", "Second"]


def test_bulleted_text_is_split_and_markers_stripped():
    raw = "• Comprendre les bases\n- Appliquer une méthode\n\n* Évaluer le résultat"
    assert normalize_objectives(raw) == [
        "Comprendre les bases",
        "Appliquer une méthode",
        "Évaluer le résultat",
    ]


def test_plain_sentence_is_wrapped():
    assert normalize_objectives("Maîtriser Excel") == ["Maîtriser Excel"]


def test_truncated_json_falls_back_to_text():
    assert normalize_objectives('["Savoir X"') == ['["Savoir X"']


def test_mixed_sequence_is_stringified_without_nulls():
    assert normalize_objectives(["A", None, 3]) == ["A", "3"]


def test_method_set_merges_object_over_defaults():
    result = normalize_method_set({"skills_evaluation": True, "unknown": True}, DEFAULT_EVALUATION_METHODS)
    assert result == {
        "profile_evaluation": False,
        "skills_evaluation": True,
        "knowledge_evaluation": False,
        "satisfaction_survey": False,
    }


def test_method_set_parses_json_string_and_coerces_flags():
    result = normalize_method_set('{"attendance_sheet": "true", "completion_certificate": 0}', DEFAULT_TRACKING_METHODS)
    assert result == {"attendance_sheet": True, "completion_certificate": False}


@pytest.mark.parametrize("raw", [None, "not json", "[1, 2]", 12])
def test_method_set_falls_back_to_defaults(raw):
    assert normalize_method_set(raw, DEFAULT_TRACKING_METHODS) == DEFAULT_TRACKING_METHODS


def test_normalize_method_set_does_not_mutate_defaults():
    normalize_method_set({"attendance_sheet": True}, DEFAULT_TRACKING_METHODS)
    assert DEFAULT_TRACKING_METHODS["attendance_sheet"] is False


def test_time_slots_accept_json_and_lines():
    assert normalize_time_slots('[{"date": "2024-03-04"}]') == [{"date": "2024-03-04"}]
    assert normalize_time_slots("lundi matin\nlundi après-midi") == ["lundi matin", "lundi après-midi"]
    assert normalize_time_slots(None) == []


def test_normalize_training_decodes_every_loose_column():
    training = SimpleNamespace(
        id="t-1",
        title="  Sécurité  ",
        objectives='["Savoir X"]',
        evaluation_methods=None,
        tracking_methods='{"attendance_sheet": true}',
        pedagogical_methods={},
        material_elements="garbage",
        start_date=None,
        end_date=None,
        duration="7 heures",
        location=None,
        trainer_name="Jean",
        price=None,
        status="new",
        time_slots=None,
    )
    normalized = normalize_training(training)

    assert normalized.title == "Sécurité"
    assert normalized.objectives == ["Savoir X"]
    assert normalized.evaluation_methods == DEFAULT_EVALUATION_METHODS
    assert normalized.tracking_methods["attendance_sheet"] is True
    assert normalized.time_slots == []


@pytest.mark.parametrize(
    "raw",
    [
        ["Savoir X", "Savoir Y"],
        '["Savoir X", "Savoir Y"]',
        '{"a": "Savoir X", "b": "Savoir Y"}',
        "- Savoir X\n- Savoir Y",
        "• Savoir X\n• Savoir Y",
        "Savoir X",
        None,
        [],
        "",
        [1, None, "Savoir X"],
    ],
)
def test_normalize_objectives_is_idempotent(raw):
    once = normalize_objectives(raw)

    assert once
    assert all(isinstance(item, str) for item in once)
    assert normalize_objectives(once) == once
