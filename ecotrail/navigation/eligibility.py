"""Eligibility - may the user advance past a question?

A question is satisfied when:
1. no entered value is over its maximum (the value limit flag is down),
2. every selected answer belonging to the question is variable-complete, and
3. at least min_answers_number of its answers are selected.

An answer is variable-complete when its definition declares no variables, or
when it carries exactly as many variable values as the definition declares.
A missing question (index out of range) never allows advancing.
"""

import math
from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel

from ecotrail.models.catalog import PossibleAnswer, Question, Questionnaire, Variable
from ecotrail.models.derived import AnswerRecord, Session


class BlockReason(str, Enum):
    """Why advancing is not allowed."""

    QUESTION_NOT_FOUND = "question_not_found"
    VALUE_EXCEEDS_MAXIMUM = "value_exceeds_maximum"
    INCOMPLETE_VARIABLES = "incomplete_variables"
    NOT_ENOUGH_ANSWERS = "not_enough_answers"


class EligibilityResult(BaseModel):
    """Outcome of evaluating one question."""

    allowed: bool
    reason: BlockReason | None = None
    matching_answer_ids: list[int] = []
    incomplete_answer_ids: list[int] = []


def is_variable_complete(
    record: AnswerRecord,
    definition: PossibleAnswer | None,
) -> bool:
    """Check that a selected answer carries all of its declared variables."""
    declared = len(definition.variables) if definition else 0
    return declared == 0 or len(record.variable_values) == declared


def evaluate_eligibility(
    answers: Iterable[AnswerRecord],
    question: Question | None,
    max_value_exceeded: bool = False,
) -> EligibilityResult:
    """Evaluate whether the selected answers satisfy a question.

    Args:
        answers: All selected answers of the session.
        question: The question to check, or None if it does not exist.
        max_value_exceeded: The input validation layer's flag.

    Returns:
        The EligibilityResult, with the first blocking reason if any.
    """
    if question is None:
        return EligibilityResult(allowed=False, reason=BlockReason.QUESTION_NOT_FOUND)

    question_answer_ids = question.answer_ids
    matching = [r for r in answers if r.answer_id in question_answer_ids]
    matching_ids = [r.answer_id for r in matching]

    if max_value_exceeded:
        return EligibilityResult(
            allowed=False,
            reason=BlockReason.VALUE_EXCEEDS_MAXIMUM,
            matching_answer_ids=matching_ids,
        )

    incomplete_ids = [
        r.answer_id
        for r in matching
        if not is_variable_complete(r, question.get_answer(r.answer_id))
    ]
    if incomplete_ids:
        return EligibilityResult(
            allowed=False,
            reason=BlockReason.INCOMPLETE_VARIABLES,
            matching_answer_ids=matching_ids,
            incomplete_answer_ids=incomplete_ids,
        )

    if len(matching) < question.min_answers_number:
        return EligibilityResult(
            allowed=False,
            reason=BlockReason.NOT_ENOUGH_ANSWERS,
            matching_answer_ids=matching_ids,
        )

    return EligibilityResult(allowed=True, matching_answer_ids=matching_ids)


def can_advance(
    session: Session,
    questionnaire: Questionnaire,
    question_index: int,
    max_value_exceeded: bool = False,
) -> bool:
    """Whether the user may move past the question at question_index."""
    question = questionnaire.get_question(question_index)
    return evaluate_eligibility(session.answers, question, max_value_exceeded).allowed


def value_exceeds_maximum(variable: Variable, value: object) -> bool:
    """Check an entered value against the variable's scale.

    Values that are not numbers never exceed.
    """
    if variable.scale is None or value is None or isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return number > variable.scale


def value_limit_message(variable: Variable) -> str:
    """Message shown while a value for this variable is over its maximum."""
    scale = variable.scale
    if scale is not None and math.isfinite(scale) and scale == int(scale):
        scale = int(scale)
    return f"The value should not be greater than {scale}!"
