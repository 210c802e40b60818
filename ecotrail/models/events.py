"""Event models for Ecotrail's questionnaire session engine.

Every state change is an event: user choices (selecting answers, entering
variable values, seminar codes) and the three-phase results of network calls
(requested / succeeded / failed). The event vocabulary is closed: each
EventType maps to exactly one typed payload model.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class EventType(str, Enum):
    """All event types in Ecotrail."""

    # User choices
    SELECT_ANSWER = "SelectAnswer"
    UNSELECT_ANSWER = "UnselectAnswer"
    SET_SEMINAR_CODE = "SetSeminarCode"
    SET_KID_MODE = "SetKidMode"
    RESTART_SESSION = "RestartSession"

    # Session submission
    SUBMIT_SESSION_REQUESTED = "SubmitSessionRequested"
    SUBMIT_SESSION_SUCCEEDED = "SubmitSessionSucceeded"
    SUBMIT_SESSION_FAILED = "SubmitSessionFailed"

    # Energy computation
    COMPUTE_ENERGY_REQUESTED = "ComputeEnergyRequested"
    COMPUTE_ENERGY_SUCCEEDED = "ComputeEnergySucceeded"
    COMPUTE_ENERGY_FAILED = "ComputeEnergyFailed"

    # Stored result retrieval
    FETCH_RESULT_REQUESTED = "FetchResultRequested"
    FETCH_RESULT_SUCCEEDED = "FetchResultSucceeded"
    FETCH_RESULT_FAILED = "FetchResultFailed"

    # Seminar code validation
    VALIDATE_SEMINAR_CODE_REQUESTED = "ValidateSeminarCodeRequested"
    VALIDATE_SEMINAR_CODE_SUCCEEDED = "ValidateSeminarCodeSucceeded"
    VALIDATE_SEMINAR_CODE_FAILED = "ValidateSeminarCodeFailed"

    # Input validation layer
    VALUE_LIMIT_EXCEEDED = "ValueLimitExceeded"
    VALUE_LIMIT_CLEARED = "ValueLimitCleared"


class ActorKind(str, Enum):
    """Who or what created the event."""

    USER = "user"
    TRANSPORT = "transport"
    SYSTEM = "system"


class FailureKind(str, Enum):
    """Taxonomy of failures captured in async slices."""

    SUBMISSION_ERROR = "submission_error"
    COMPUTATION_ERROR = "computation_error"
    SEMINAR_VALIDATION_ERROR = "seminar_validation_error"


# -----------------------------------------------------------------------------
# Common types
# -----------------------------------------------------------------------------


class Actor(BaseModel):
    """Who created the event."""

    kind: ActorKind
    id: str | None = None


# Strict members keep booleans from being coerced to 1 or 0
VariableScalar = StrictStr | StrictInt | StrictFloat | None


class VariableInput(BaseModel):
    """A value entered for one variable of a selected answer."""

    model_config = ConfigDict(populate_by_name=True)

    variable_id: int = Field(alias="variableId")
    value: VariableScalar = None


class BreakdownEntry(BaseModel):
    """Score contributed by one question."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    question_key: str = Field(alias="questionKey")
    score: float


class CalculationResult(BaseModel):
    """Result of the external energy computation, stored verbatim."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    total_score: float = Field(alias="totalScore")
    breakdown: tuple[BreakdownEntry, ...] = ()


# -----------------------------------------------------------------------------
# Payload types for each event
# -----------------------------------------------------------------------------


class EmptyPayload(BaseModel):
    """Payload for events that carry no data."""


class SelectAnswerPayload(BaseModel):
    """Payload for SelectAnswer event."""

    model_config = ConfigDict(populate_by_name=True)

    answer_id: int = Field(alias="answerId")
    variable: VariableInput | None = None


class UnselectAnswerPayload(BaseModel):
    """Payload for UnselectAnswer event.

    Without variable_id the whole answer is removed; with it, only that
    variable's value.
    """

    model_config = ConfigDict(populate_by_name=True)

    answer_id: int = Field(alias="answerId")
    variable_id: int | None = Field(default=None, alias="variableId")


class SetSeminarCodePayload(BaseModel):
    """Payload for SetSeminarCode event."""

    code: str


class SetKidModePayload(BaseModel):
    """Payload for SetKidMode event."""

    model_config = ConfigDict(populate_by_name=True)

    is_kid: bool = Field(alias="isKid")


class SubmitSessionSucceededPayload(BaseModel):
    """Payload for SubmitSessionSucceeded event."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")


class ResultPayload(BaseModel):
    """Payload for ComputeEnergySucceeded and FetchResultSucceeded events."""

    result: CalculationResult


class FetchResultRequestedPayload(BaseModel):
    """Payload for FetchResultRequested event."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")


class ValidateSeminarCodeRequestedPayload(BaseModel):
    """Payload for ValidateSeminarCodeRequested event."""

    code: str | None = None


class SeminarCodeValidatedPayload(BaseModel):
    """Payload for ValidateSeminarCodeSucceeded event."""

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    is_open: bool | None = Field(default=None, alias="isOpen")
    seminar_status: str | None = Field(default=None, alias="seminarStatus")


class RequestFailedPayload(BaseModel):
    """Payload for every *Failed event. The error is kept verbatim."""

    error: Any = None


class ValueLimitExceededPayload(BaseModel):
    """Payload for ValueLimitExceeded event."""

    message: str | None = None


PAYLOAD_TYPES: dict[EventType, type[BaseModel]] = {
    EventType.SELECT_ANSWER: SelectAnswerPayload,
    EventType.UNSELECT_ANSWER: UnselectAnswerPayload,
    EventType.SET_SEMINAR_CODE: SetSeminarCodePayload,
    EventType.SET_KID_MODE: SetKidModePayload,
    EventType.RESTART_SESSION: EmptyPayload,
    EventType.SUBMIT_SESSION_REQUESTED: EmptyPayload,
    EventType.SUBMIT_SESSION_SUCCEEDED: SubmitSessionSucceededPayload,
    EventType.SUBMIT_SESSION_FAILED: RequestFailedPayload,
    EventType.COMPUTE_ENERGY_REQUESTED: EmptyPayload,
    EventType.COMPUTE_ENERGY_SUCCEEDED: ResultPayload,
    EventType.COMPUTE_ENERGY_FAILED: RequestFailedPayload,
    EventType.FETCH_RESULT_REQUESTED: FetchResultRequestedPayload,
    EventType.FETCH_RESULT_SUCCEEDED: ResultPayload,
    EventType.FETCH_RESULT_FAILED: RequestFailedPayload,
    EventType.VALIDATE_SEMINAR_CODE_REQUESTED: ValidateSeminarCodeRequestedPayload,
    EventType.VALIDATE_SEMINAR_CODE_SUCCEEDED: SeminarCodeValidatedPayload,
    EventType.VALIDATE_SEMINAR_CODE_FAILED: RequestFailedPayload,
    EventType.VALUE_LIMIT_EXCEEDED: ValueLimitExceededPayload,
    EventType.VALUE_LIMIT_CLEARED: EmptyPayload,
}


# -----------------------------------------------------------------------------
# Actions and the stored event envelope
# -----------------------------------------------------------------------------


class Action(BaseModel):
    """An event as dispatched by the UI or the transport layer.

    Carries only what the reducers need: the event kind and its payload.
    """

    type: EventType
    payload: dict[str, Any] = {}

    def get_payload_model(self) -> BaseModel:
        """Parse payload into the typed model for this event type.

        Raises:
            pydantic.ValidationError: If the payload does not fit the type.
        """
        return PAYLOAD_TYPES[self.type].model_validate(self.payload)


class EventEnvelope(Action):
    """An action as recorded in the append-only event log.

    seq is strictly increasing per session.
    """

    event_id: str
    session_id: str
    seq: int = Field(ge=0)
    ts: datetime

    # Who created it
    actor: Actor
