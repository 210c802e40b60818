"""Tests for the eligibility predicate."""

import math

import pytest

from ecotrail import actions
from ecotrail.models.catalog import Questionnaire, Variable, load_questionnaire
from ecotrail.models.derived import AnswerRecord, Session, VariableValue
from ecotrail.navigation.eligibility import (
    BlockReason,
    can_advance,
    evaluate_eligibility,
    is_variable_complete,
    value_exceeds_maximum,
    value_limit_message,
)
from ecotrail.reducers.answers import reduce_answers


@pytest.fixture
def questionnaire() -> Questionnaire:
    return Questionnaire.model_validate({
        "questions": [
            {
                "name": "heating",
                "minAnswersNumber": 1,
                "possibleAnswers": [
                    {"id": 1, "variables": [{"id": 10, "label": "kWh", "scale": 5000}]},
                    {"id": 2},
                ],
            },
            {
                "name": "transport",
                "minAnswersNumber": 2,
                "possibleAnswers": [
                    {
                        "id": 3,
                        "variables": [
                            {"id": 30, "label": "km", "scale": 100},
                            {"id": 31, "label": "days", "scale": 7},
                        ],
                    },
                    {"id": 4},
                    {"id": 5},
                ],
            },
            {"name": "optional", "possibleAnswers": [{"id": 6}]},
        ]
    })


def session_from(*events) -> Session:
    return reduce_answers(list(events)).session


class TestCanAdvance:
    """Tests for can_advance."""

    def test_unset_variable_blocks_then_set_allows(self, questionnaire):
        session = session_from(actions.select_answer(1))
        assert can_advance(session, questionnaire, 0) is False

        session = session_from(actions.select_answer(1), actions.select_answer(1, 10, 1200))
        assert can_advance(session, questionnaire, 0) is True

    def test_answer_without_variables(self, questionnaire):
        session = session_from(actions.select_answer(2))
        assert can_advance(session, questionnaire, 0) is True

    def test_no_answers_blocks(self, questionnaire):
        assert can_advance(Session(), questionnaire, 0) is False

    def test_min_answers_counts_only_matching(self, questionnaire):
        """Answers from other questions do not count."""
        session = session_from(actions.select_answer(2), actions.select_answer(4))
        assert can_advance(session, questionnaire, 1) is False

        session = session_from(actions.select_answer(4), actions.select_answer(5))
        assert can_advance(session, questionnaire, 1) is True

    def test_partial_variables_block(self, questionnaire):
        session = session_from(
            actions.select_answer(3, 30, 20),
            actions.select_answer(4),
        )
        assert can_advance(session, questionnaire, 1) is False

        session = session_from(
            actions.select_answer(3, 30, 20),
            actions.select_answer(3, 31, 5),
            actions.select_answer(4),
        )
        assert can_advance(session, questionnaire, 1) is True

    def test_zero_min_answers(self, questionnaire):
        assert can_advance(Session(), questionnaire, 2) is True

    def test_out_of_range_index(self, questionnaire):
        session = session_from(actions.select_answer(2))
        assert can_advance(session, questionnaire, 3) is False
        assert can_advance(session, questionnaire, -1) is False

    def test_value_limit_flag_blocks(self, questionnaire):
        session = session_from(actions.select_answer(2))
        assert can_advance(session, questionnaire, 0, max_value_exceeded=True) is False

    def test_value_limit_flag_blocks_optional_question(self, questionnaire):
        assert can_advance(Session(), questionnaire, 2, max_value_exceeded=True) is False


class TestEvaluateEligibility:
    """Tests for the reasons reported by evaluate_eligibility."""

    def test_question_not_found(self):
        result = evaluate_eligibility([], None)
        assert result.allowed is False
        assert result.reason == BlockReason.QUESTION_NOT_FOUND

    def test_value_exceeds_checked_first(self, questionnaire):
        session = session_from(actions.select_answer(1))
        result = evaluate_eligibility(
            session.answers, questionnaire.get_question(0), max_value_exceeded=True
        )
        assert result.reason == BlockReason.VALUE_EXCEEDS_MAXIMUM
        assert result.matching_answer_ids == [1]

    def test_incomplete_before_not_enough(self, questionnaire):
        session = session_from(actions.select_answer(3, 30, 20))
        result = evaluate_eligibility(session.answers, questionnaire.get_question(1))

        assert result.reason == BlockReason.INCOMPLETE_VARIABLES
        assert result.incomplete_answer_ids == [3]

    def test_not_enough_answers(self, questionnaire):
        session = session_from(actions.select_answer(4))
        result = evaluate_eligibility(session.answers, questionnaire.get_question(1))

        assert result.reason == BlockReason.NOT_ENOUGH_ANSWERS
        assert result.matching_answer_ids == [4]

    def test_allowed(self, questionnaire):
        session = session_from(actions.select_answer(4), actions.select_answer(5))
        result = evaluate_eligibility(session.answers, questionnaire.get_question(1))

        assert result.allowed is True
        assert result.reason is None


class TestVariableCompleteness:
    """Tests for is_variable_complete."""

    def test_no_definition_is_complete(self):
        assert is_variable_complete(AnswerRecord(answer_id=1), None)

    def test_count_must_match(self, questionnaire):
        definition = questionnaire.get_question(1).get_answer(3)
        record = AnswerRecord(
            answer_id=3,
            variable_values=(VariableValue(variable_id=30, value=1),),
        )
        assert not is_variable_complete(record, definition)

        record = AnswerRecord(
            answer_id=3,
            variable_values=(
                VariableValue(variable_id=30, value=1),
                VariableValue(variable_id=31, value=None),
            ),
        )
        assert is_variable_complete(record, definition)


class TestValueLimit:
    """Tests for the maximum value check."""

    def test_exceeds(self):
        variable = Variable(id=1, scale=100)
        assert value_exceeds_maximum(variable, 101)
        assert value_exceeds_maximum(variable, "100.5")
        assert not value_exceeds_maximum(variable, 100)
        assert not value_exceeds_maximum(variable, "50")

    def test_non_numeric_never_exceeds(self):
        variable = Variable(id=1, scale=100)
        assert not value_exceeds_maximum(variable, None)
        assert not value_exceeds_maximum(variable, "often")
        assert not value_exceeds_maximum(variable, True)

    def test_unbounded(self):
        assert not value_exceeds_maximum(Variable(id=1), 10**9)

    def test_message(self):
        assert value_limit_message(Variable(id=1, scale=100)) == (
            "The value should not be greater than 100!"
        )
        assert value_limit_message(Variable(id=1, scale=2.5)) == (
            "The value should not be greater than 2.5!"
        )

    def test_message_for_infinite_scale(self):
        assert value_limit_message(Variable(id=1, scale=math.inf)) == (
            "The value should not be greater than inf!"
        )

    def test_infinite_scale_from_catalog_never_exceeds(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(
            '[{"name": "q", "possibleAnswers": [{"id": 1, "variables": [{"id": 10, "scale": Infinity}]}]}]',
            encoding="utf-8",
        )
        variable = load_questionnaire(path).find_variable(10)

        assert variable.scale == math.inf
        assert not value_exceeds_maximum(variable, 10**12)
