"""Seminar reducer - tracks validation of the seminar access code.

Setting the code on the Session never validates it. When the questionnaire
is finished and a code is present, the transport layer checks it against the
backend and reports the outcome through ValidateSeminarCode* events.

RestartSession does not touch this slice.
"""

import logging

from pydantic import ValidationError

from ecotrail.models.events import (
    Action,
    EventType,
    FailureKind,
    ValidateSeminarCodeRequestedPayload,
    SeminarCodeValidatedPayload,
    RequestFailedPayload,
)
from ecotrail.models.derived import AsyncStatus, Failure, SeminarValidationState

logger = logging.getLogger(__name__)

_OWNED_TYPES = {
    EventType.VALIDATE_SEMINAR_CODE_REQUESTED,
    EventType.VALIDATE_SEMINAR_CODE_SUCCEEDED,
    EventType.VALIDATE_SEMINAR_CODE_FAILED,
}


def reduce_seminar_state(
    state: SeminarValidationState,
    event: Action,
) -> SeminarValidationState:
    """Apply a single event to the seminar validation state.

    Args:
        state: The current state.
        event: The event to apply.

    Returns:
        The new state, or state itself for events this reducer does not own.
    """
    if event.type not in _OWNED_TYPES:
        return state

    try:
        payload = event.get_payload_model()
    except ValidationError as e:
        logger.warning("Ignoring %s with invalid payload: %s", event.type.value, e)
        return state

    if isinstance(payload, ValidateSeminarCodeRequestedPayload):
        return state.model_copy(
            update={
                "status": AsyncStatus.PENDING,
                "code": payload.code,
                "is_valid": False,
                "failure": None,
            }
        )

    if isinstance(payload, SeminarCodeValidatedPayload):
        return state.model_copy(
            update={
                "status": AsyncStatus.FULFILLED,
                "is_valid": payload.is_valid,
                "is_open": payload.is_open,
                "seminar_status": payload.seminar_status,
                "failure": None,
            }
        )

    if isinstance(payload, RequestFailedPayload):
        return state.model_copy(
            update={
                "status": AsyncStatus.REJECTED,
                "failure": Failure(
                    kind=FailureKind.SEMINAR_VALIDATION_ERROR,
                    error=payload.error,
                ),
            }
        )

    return state


def reduce_seminar(events: list[Action]) -> SeminarValidationState:
    """Reduce events to a SeminarValidationState."""
    state = SeminarValidationState()
    for event in events:
        state = reduce_seminar_state(state, event)
    return state


def seminar_code_accepted(state: SeminarValidationState) -> bool:
    """Whether the last validation found the code valid and the seminar open.

    A seminar whose open flag was not reported counts as open.
    """
    return (
        state.status == AsyncStatus.FULFILLED
        and state.is_valid
        and state.is_open is not False
    )
