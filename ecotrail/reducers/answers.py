"""Answer reducer - the questionnaire session state machine.

Applies one event at a time to an AnswerState:
- SelectAnswer / UnselectAnswer edit Session.answers
- SetSeminarCode / SetKidMode edit the rest of the Session document
- SubmitSession* drives the submission slice
- ComputeEnergy* and FetchResult* drive the energy slice
- RestartSession empties the Session and the submission slice

Key invariants:
- At most one AnswerRecord per answer_id; re-selecting updates in place.
- At most one VariableValue per variable_id within a record; matching is by
  variable_id, never by value.
- An AnswerRecord whose variable values were all unselected stays in place.
- Events this reducer does not own, and edits that change nothing, return the
  input state object itself so observers can compare by identity.

RestartSession leaves the energy slice alone: the last CalculationResult
stays visible after a restart. A failed computation also keeps the previous
result.

Known race: ComputeEnergy cycles carry no request id. A late success for an
older request overwrites a result computed from newer answers
(last write wins).
"""

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from ecotrail.models.events import (
    Action,
    EventType,
    FailureKind,
    VariableInput,
    SelectAnswerPayload,
    UnselectAnswerPayload,
    SetSeminarCodePayload,
    SetKidModePayload,
    SubmitSessionSucceededPayload,
    ResultPayload,
    RequestFailedPayload,
)
from ecotrail.models.derived import (
    AnswerRecord,
    AnswerState,
    AsyncStatus,
    EnergyState,
    Failure,
    Session,
    SubmissionState,
    VariableValue,
)

logger = logging.getLogger(__name__)


def reduce_answer_state(state: AnswerState, event: Action) -> AnswerState:
    """Apply a single event to the answer state.

    Never raises. An event with a payload that does not validate is logged
    and ignored.

    Args:
        state: The current state.
        event: The event to apply.

    Returns:
        The new state, or state itself if nothing changed.
    """
    handler = _HANDLERS.get(event.type)
    if handler is None:
        return state

    try:
        payload = event.get_payload_model()
    except ValidationError as e:
        logger.warning("Ignoring %s with invalid payload: %s", event.type.value, e)
        return state

    return handler(state, payload)


def reduce_answers(events: list[Action]) -> AnswerState:
    """Reduce events to an AnswerState.

    Args:
        events: Events in dispatch order.

    Returns:
        The computed AnswerState.
    """
    state = AnswerState()
    for event in events:
        state = reduce_answer_state(state, event)
    return state


# -----------------------------------------------------------------------------
# Session document
# -----------------------------------------------------------------------------


def _with_session(state: AnswerState, **changes: Any) -> AnswerState:
    session = state.session.model_copy(update=changes)
    return state.model_copy(update={"session": session})


def _replace_record(
    answers: tuple[AnswerRecord, ...],
    record: AnswerRecord,
) -> tuple[AnswerRecord, ...]:
    """Swap in record at the position of the record with the same answer_id."""
    return tuple(
        record if existing.answer_id == record.answer_id else existing
        for existing in answers
    )


def _to_value(variable: VariableInput) -> VariableValue:
    return VariableValue(variable_id=variable.variable_id, value=variable.value)


def _upsert_value(
    values: tuple[VariableValue, ...],
    new_value: VariableValue,
) -> tuple[VariableValue, ...]:
    if any(v.variable_id == new_value.variable_id for v in values):
        return tuple(
            new_value if v.variable_id == new_value.variable_id else v
            for v in values
        )
    return values + (new_value,)


def _select_answer(state: AnswerState, payload: SelectAnswerPayload) -> AnswerState:
    answers = state.session.answers
    existing = state.session.find_answer(payload.answer_id)

    if existing is None:
        values = (_to_value(payload.variable),) if payload.variable else ()
        record = AnswerRecord(answer_id=payload.answer_id, variable_values=values)
        return _with_session(state, answers=answers + (record,))

    # Re-selecting without data
    if payload.variable is None:
        return state

    updated = existing.model_copy(
        update={
            "variable_values": _upsert_value(
                existing.variable_values, _to_value(payload.variable)
            )
        }
    )
    return _with_session(state, answers=_replace_record(answers, updated))


def _unselect_answer(state: AnswerState, payload: UnselectAnswerPayload) -> AnswerState:
    answers = state.session.answers
    existing = state.session.find_answer(payload.answer_id)
    if existing is None:
        return state

    if payload.variable_id is None:
        return _with_session(
            state,
            answers=tuple(r for r in answers if r.answer_id != payload.answer_id),
        )

    if existing.get_value(payload.variable_id) is None:
        return state

    updated = existing.model_copy(
        update={
            "variable_values": tuple(
                v
                for v in existing.variable_values
                if v.variable_id != payload.variable_id
            )
        }
    )
    return _with_session(state, answers=_replace_record(answers, updated))


def _set_seminar_code(state: AnswerState, payload: SetSeminarCodePayload) -> AnswerState:
    # Format and existence are checked by a separate validation round trip
    return _with_session(state, seminar_access_code=payload.code)


def _set_kid_mode(state: AnswerState, payload: SetKidModePayload) -> AnswerState:
    return _with_session(state, is_kid=payload.is_kid)


def _restart_session(state: AnswerState, payload: Any) -> AnswerState:
    return state.model_copy(
        update={"session": Session(), "submission": SubmissionState()}
    )


# -----------------------------------------------------------------------------
# Submission slice
# -----------------------------------------------------------------------------


def _submission_requested(state: AnswerState, payload: Any) -> AnswerState:
    submission = state.submission.model_copy(
        update={"status": AsyncStatus.PENDING, "failure": None}
    )
    return state.model_copy(update={"submission": submission})


def _submission_succeeded(
    state: AnswerState,
    payload: SubmitSessionSucceededPayload,
) -> AnswerState:
    submission = SubmissionState(
        status=AsyncStatus.FULFILLED,
        session_id=payload.session_id,
    )
    return state.model_copy(update={"submission": submission})


def _submission_failed(state: AnswerState, payload: RequestFailedPayload) -> AnswerState:
    submission = state.submission.model_copy(
        update={
            "status": AsyncStatus.REJECTED,
            "failure": Failure(kind=FailureKind.SUBMISSION_ERROR, error=payload.error),
        }
    )
    return state.model_copy(update={"submission": submission})


# -----------------------------------------------------------------------------
# Energy slice
# -----------------------------------------------------------------------------


def _energy_requested(state: AnswerState, payload: Any) -> AnswerState:
    energy = state.energy.model_copy(
        update={"status": AsyncStatus.PENDING, "failure": None}
    )
    return state.model_copy(update={"energy": energy})


def _energy_succeeded(state: AnswerState, payload: ResultPayload) -> AnswerState:
    # Last write wins, see module docstring
    energy = EnergyState(status=AsyncStatus.FULFILLED, result=payload.result)
    return state.model_copy(update={"energy": energy})


def _energy_failed(state: AnswerState, payload: RequestFailedPayload) -> AnswerState:
    energy = state.energy.model_copy(
        update={
            "status": AsyncStatus.REJECTED,
            "failure": Failure(kind=FailureKind.COMPUTATION_ERROR, error=payload.error),
        }
    )
    return state.model_copy(update={"energy": energy})


_HANDLERS: dict[EventType, Callable[[AnswerState, Any], AnswerState]] = {
    EventType.SELECT_ANSWER: _select_answer,
    EventType.UNSELECT_ANSWER: _unselect_answer,
    EventType.SET_SEMINAR_CODE: _set_seminar_code,
    EventType.SET_KID_MODE: _set_kid_mode,
    EventType.RESTART_SESSION: _restart_session,
    EventType.SUBMIT_SESSION_REQUESTED: _submission_requested,
    EventType.SUBMIT_SESSION_SUCCEEDED: _submission_succeeded,
    EventType.SUBMIT_SESSION_FAILED: _submission_failed,
    EventType.COMPUTE_ENERGY_REQUESTED: _energy_requested,
    EventType.COMPUTE_ENERGY_SUCCEEDED: _energy_succeeded,
    EventType.COMPUTE_ENERGY_FAILED: _energy_failed,
    EventType.FETCH_RESULT_REQUESTED: _energy_requested,
    EventType.FETCH_RESULT_SUCCEEDED: _energy_succeeded,
    EventType.FETCH_RESULT_FAILED: _energy_failed,
}
