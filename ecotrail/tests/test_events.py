"""Tests for event models."""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from ecotrail import actions
from ecotrail.models.derived import VariableValue
from ecotrail.models.events import (
    PAYLOAD_TYPES,
    Action,
    EventEnvelope,
    EventType,
    Actor,
    ActorKind,
    CalculationResult,
    EmptyPayload,
    SelectAnswerPayload,
    UnselectAnswerPayload,
    SetKidModePayload,
    SubmitSessionSucceededPayload,
    ResultPayload,
    SeminarCodeValidatedPayload,
    RequestFailedPayload,
)


def test_event_envelope_basic():
    """Test basic EventEnvelope creation."""
    event = EventEnvelope(
        event_id="e001",
        session_id="sess_001",
        seq=0,
        ts=datetime.now(timezone.utc),
        type=EventType.SELECT_ANSWER,
        actor=Actor(kind=ActorKind.USER),
        payload={"answer_id": 3},
    )
    assert event.event_id == "e001"
    assert event.type == EventType.SELECT_ANSWER
    assert event.actor.id is None


def test_negative_seq_rejected():
    with pytest.raises(ValidationError):
        EventEnvelope(
            event_id="e001",
            session_id="sess_001",
            seq=-1,
            ts=datetime.now(timezone.utc),
            type=EventType.RESTART_SESSION,
            actor=Actor(kind=ActorKind.SYSTEM),
        )


def test_every_event_type_has_payload_model():
    for event_type in EventType:
        assert event_type in PAYLOAD_TYPES


def test_select_answer_payload_with_variable():
    action = actions.select_answer(10, variable_id=7, value=42)
    payload = action.get_payload_model()

    assert isinstance(payload, SelectAnswerPayload)
    assert payload.answer_id == 10
    assert payload.variable.variable_id == 7
    assert payload.variable.value == 42


def test_select_answer_payload_accepts_camel_case():
    action = Action(
        type=EventType.SELECT_ANSWER,
        payload={"answerId": 10, "variable": {"variableId": 7, "value": "often"}},
    )
    payload = action.get_payload_model()

    assert payload.answer_id == 10
    assert payload.variable.variable_id == 7
    assert payload.variable.value == "often"


def test_unselect_answer_payload_defaults_to_whole_answer():
    payload = actions.unselect_answer(4).get_payload_model()

    assert isinstance(payload, UnselectAnswerPayload)
    assert payload.variable_id is None


def test_empty_payload_events():
    for action in (
        actions.restart_session(),
        actions.submit_session_requested(),
        actions.compute_energy_requested(),
        actions.value_limit_cleared(),
    ):
        assert isinstance(action.get_payload_model(), EmptyPayload)


def test_submit_succeeded_payload():
    payload = actions.submit_session_succeeded("abc-123").get_payload_model()

    assert isinstance(payload, SubmitSessionSucceededPayload)
    assert payload.session_id == "abc-123"


def test_failed_payload_keeps_error_verbatim():
    error = {"status": 500, "body": ["boom"]}
    payload = actions.compute_energy_failed(error).get_payload_model()

    assert isinstance(payload, RequestFailedPayload)
    assert payload.error == error


def test_result_payload_from_model_and_dict():
    result = CalculationResult(
        total_score=12.5,
        breakdown=[{"question_key": "heating", "score": 10.0}],
    )
    from_model = actions.compute_energy_succeeded(result).get_payload_model()
    from_dict = actions.fetch_result_succeeded(
        {"totalScore": 12.5, "breakdown": [{"questionKey": "heating", "score": 10.0}]}
    ).get_payload_model()

    assert isinstance(from_model, ResultPayload)
    assert from_model.result == result
    assert from_dict.result == result


def test_seminar_validated_payload():
    payload = actions.validate_seminar_code_succeeded(True, is_open=False).get_payload_model()

    assert isinstance(payload, SeminarCodeValidatedPayload)
    assert payload.is_valid is True
    assert payload.is_open is False
    assert payload.seminar_status is None


def test_set_kid_mode_payload():
    payload = actions.set_kid_mode(True).get_payload_model()

    assert isinstance(payload, SetKidModePayload)
    assert payload.is_kid is True


def test_invalid_payload_raises():
    action = Action(type=EventType.SELECT_ANSWER, payload={"answer_id": "not a number"})
    with pytest.raises(ValidationError):
        action.get_payload_model()

    action = Action(type=EventType.SET_SEMINAR_CODE, payload={})
    with pytest.raises(ValidationError):
        action.get_payload_model()


def test_event_type_values():
    assert EventType("SelectAnswer") == EventType.SELECT_ANSWER
    assert EventType.COMPUTE_ENERGY_SUCCEEDED.value == "ComputeEnergySucceeded"
    with pytest.raises(ValueError):
        EventType("NotAnEvent")


def test_boolean_variable_value_rejected():
    with pytest.raises(ValidationError):
        actions.select_answer(1, variable_id=7, value=True).get_payload_model()

    with pytest.raises(ValidationError):
        VariableValue(variable_id=7, value=False)
