"""Tests for the question catalog."""

import json

import pytest

from ecotrail.models.catalog import (
    PossibleAnswer,
    Question,
    Questionnaire,
    Variable,
    load_questionnaire,
)


CATALOG = [
    {
        "name": "heating",
        "minAnswersNumber": 1,
        "possibleAnswers": [
            {"id": 1, "name": "gas"},
            {"id": 2, "name": "heat pump", "variables": [{"id": 20, "label": "kWh", "scale": 5000}]},
        ],
    },
    {
        "name": "transport",
        "min_answers_number": 2,
        "possible_answers": [
            {
                "id": 3,
                "name": "car",
                "variables": [
                    {"id": 30, "label": "km", "scale": 100},
                    {"id": 31, "label": "days"},
                ],
            },
            {"id": 4, "name": "bike"},
        ],
    },
]


def test_question_camel_and_snake_case():
    questionnaire = Questionnaire.model_validate({"questions": CATALOG})

    heating = questionnaire.get_question(0)
    transport = questionnaire.get_question(1)
    assert heating.min_answers_number == 1
    assert transport.min_answers_number == 2
    assert heating.answer_ids == {1, 2}
    assert len(transport.get_answer(3).variables) == 2


def test_min_answers_defaults_to_zero():
    question = Question(name="optional")
    assert question.min_answers_number == 0
    assert question.possible_answers == ()


def test_negative_min_answers_rejected():
    with pytest.raises(ValueError):
        Question(name="bad", min_answers_number=-1)


def test_get_question_out_of_range():
    questionnaire = Questionnaire.model_validate({"questions": CATALOG})

    assert questionnaire.get_question(2) is None
    assert questionnaire.get_question(-1) is None
    assert Questionnaire().get_question(0) is None


def test_get_answer_missing():
    question = Question(name="q", possible_answers=[PossibleAnswer(id=1)])
    assert question.get_answer(2) is None


def test_find_variable():
    questionnaire = Questionnaire.model_validate({"questions": CATALOG})

    assert questionnaire.find_variable(30) == Variable(id=30, label="km", scale=100)
    assert questionnaire.find_variable(31).scale is None
    assert questionnaire.find_variable(99) is None


def test_load_questionnaire_list(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(CATALOG), encoding="utf-8")

    questionnaire = load_questionnaire(path)
    assert len(questionnaire.questions) == 2
    assert questionnaire.questions[0].name == "heating"


def test_load_questionnaire_object(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"questions": CATALOG}), encoding="utf-8")

    assert len(load_questionnaire(path).questions) == 2


def test_load_questionnaire_invalid_json(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid questionnaire JSON"):
        load_questionnaire(path)


def test_load_questionnaire_invalid_shape(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps([{"possibleAnswers": []}]), encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid questionnaire"):
        load_questionnaire(path)
