"""Action creators, one per event kind.

Each returns an Action ready to dispatch. Payload keys use the same names as
the payload models.
"""

from typing import Any

from ecotrail.models.events import Action, CalculationResult, EventType


def select_answer(
    answer_id: int,
    variable_id: int | None = None,
    value: str | int | float | None = None,
) -> Action:
    """Select an answer, optionally setting one of its variables."""
    variable = None
    if variable_id is not None:
        variable = {"variable_id": variable_id, "value": value}
    return Action(
        type=EventType.SELECT_ANSWER,
        payload={"answer_id": answer_id, "variable": variable},
    )


def unselect_answer(answer_id: int, variable_id: int | None = None) -> Action:
    """Unselect an answer, or only one of its variable values."""
    return Action(
        type=EventType.UNSELECT_ANSWER,
        payload={"answer_id": answer_id, "variable_id": variable_id},
    )


def set_seminar_code(code: str) -> Action:
    return Action(type=EventType.SET_SEMINAR_CODE, payload={"code": code})


def set_kid_mode(is_kid: bool) -> Action:
    return Action(type=EventType.SET_KID_MODE, payload={"is_kid": is_kid})


def restart_session() -> Action:
    return Action(type=EventType.RESTART_SESSION)


def submit_session_requested() -> Action:
    return Action(type=EventType.SUBMIT_SESSION_REQUESTED)


def submit_session_succeeded(session_id: str) -> Action:
    return Action(
        type=EventType.SUBMIT_SESSION_SUCCEEDED,
        payload={"session_id": session_id},
    )


def submit_session_failed(error: Any) -> Action:
    return Action(type=EventType.SUBMIT_SESSION_FAILED, payload={"error": error})


def _result_dict(result: CalculationResult | dict[str, Any]) -> dict[str, Any]:
    if isinstance(result, CalculationResult):
        return result.model_dump()
    return result


def compute_energy_requested() -> Action:
    return Action(type=EventType.COMPUTE_ENERGY_REQUESTED)


def compute_energy_succeeded(result: CalculationResult | dict[str, Any]) -> Action:
    return Action(
        type=EventType.COMPUTE_ENERGY_SUCCEEDED,
        payload={"result": _result_dict(result)},
    )


def compute_energy_failed(error: Any) -> Action:
    return Action(type=EventType.COMPUTE_ENERGY_FAILED, payload={"error": error})


def fetch_result_requested(session_id: str) -> Action:
    return Action(
        type=EventType.FETCH_RESULT_REQUESTED,
        payload={"session_id": session_id},
    )


def fetch_result_succeeded(result: CalculationResult | dict[str, Any]) -> Action:
    return Action(
        type=EventType.FETCH_RESULT_SUCCEEDED,
        payload={"result": _result_dict(result)},
    )


def fetch_result_failed(error: Any) -> Action:
    return Action(type=EventType.FETCH_RESULT_FAILED, payload={"error": error})


def validate_seminar_code_requested(code: str | None) -> Action:
    return Action(
        type=EventType.VALIDATE_SEMINAR_CODE_REQUESTED,
        payload={"code": code},
    )


def validate_seminar_code_succeeded(
    is_valid: bool,
    is_open: bool | None = None,
    seminar_status: str | None = None,
) -> Action:
    return Action(
        type=EventType.VALIDATE_SEMINAR_CODE_SUCCEEDED,
        payload={
            "is_valid": is_valid,
            "is_open": is_open,
            "seminar_status": seminar_status,
        },
    )


def validate_seminar_code_failed(error: Any) -> Action:
    return Action(
        type=EventType.VALIDATE_SEMINAR_CODE_FAILED,
        payload={"error": error},
    )


def value_limit_exceeded(message: str | None = None) -> Action:
    return Action(type=EventType.VALUE_LIMIT_EXCEEDED, payload={"message": message})


def value_limit_cleared() -> Action:
    return Action(type=EventType.VALUE_LIMIT_CLEARED)
