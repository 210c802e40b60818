"""Derived state models computed from events.

These are the read-side projections that the UI consumes:
- Session: the answers document (the only part that is persisted)
- AnswerState: Session plus the submission and energy async slices
- SeminarValidationState: result of the seminar code round trip
- ValueLimitView: whether an entered value exceeds its maximum

All state models are frozen; reducers build new instances instead of
mutating. Sequences are tuples.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from ecotrail.models.events import CalculationResult, FailureKind, VariableScalar


class AsyncStatus(str, Enum):
    """Lifecycle of one long-running operation."""

    IDLE = "idle"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class Failure(BaseModel):
    """A captured failure. error is whatever the transport reported."""

    model_config = ConfigDict(frozen=True)

    kind: FailureKind
    error: Any = None


# -----------------------------------------------------------------------------
# Session document
# -----------------------------------------------------------------------------


class VariableValue(BaseModel):
    """One variable input attached to a selected answer."""

    model_config = ConfigDict(frozen=True)

    variable_id: int
    value: VariableScalar = None


class AnswerRecord(BaseModel):
    """One selected answer.

    At most one VariableValue per variable_id.
    """

    model_config = ConfigDict(frozen=True)

    answer_id: int
    variable_values: tuple[VariableValue, ...] = ()

    def get_value(self, variable_id: int) -> VariableValue | None:
        for variable_value in self.variable_values:
            if variable_value.variable_id == variable_id:
                return variable_value
        return None


class Session(BaseModel):
    """The answers of one questionnaire attempt.

    answers is in selection order and holds at most one record per answer_id.
    """

    model_config = ConfigDict(frozen=True)

    seminar_access_code: str | None = None
    answers: tuple[AnswerRecord, ...] = ()
    is_kid: bool = False

    @property
    def answer_ids(self) -> list[int]:
        return [record.answer_id for record in self.answers]

    def find_answer(self, answer_id: int) -> AnswerRecord | None:
        for record in self.answers:
            if record.answer_id == answer_id:
                return record
        return None


# -----------------------------------------------------------------------------
# Async slices
# -----------------------------------------------------------------------------


class SubmissionState(BaseModel):
    """Progress of sending the session to the backend.

    session_id is the correlation handle returned by the backend, used later
    to fetch results.
    """

    model_config = ConfigDict(frozen=True)

    status: AsyncStatus = AsyncStatus.IDLE
    session_id: str | None = None
    failure: Failure | None = None


class EnergyState(BaseModel):
    """Progress of the energy computation.

    result survives failures and restarts; it is only replaced by a newer
    successful result.
    """

    model_config = ConfigDict(frozen=True)

    status: AsyncStatus = AsyncStatus.IDLE
    result: CalculationResult | None = None
    failure: Failure | None = None


class AnswerState(BaseModel):
    """Everything the answer reducer owns."""

    model_config = ConfigDict(frozen=True)

    session: Session = Session()
    submission: SubmissionState = SubmissionState()
    energy: EnergyState = EnergyState()


class SeminarValidationState(BaseModel):
    """Outcome of validating the seminar access code against the backend."""

    model_config = ConfigDict(frozen=True)

    status: AsyncStatus = AsyncStatus.IDLE
    code: str | None = None
    is_valid: bool = False
    is_open: bool | None = None
    seminar_status: str | None = None
    failure: Failure | None = None


class ValueLimitView(BaseModel):
    """Raised by the input validation layer when a value is over its maximum."""

    model_config = ConfigDict(frozen=True)

    exceeded: bool = False
    message: str | None = None


# -----------------------------------------------------------------------------
# Combined state
# -----------------------------------------------------------------------------


class StoreState(BaseModel):
    """The single long-lived state held by the dispatch shell."""

    model_config = ConfigDict(frozen=True)

    answer: AnswerState = AnswerState()
    seminar: SeminarValidationState = SeminarValidationState()
    value_limit: ValueLimitView = ValueLimitView()


class SessionState(BaseModel):
    """Complete derived state for a stored session.

    This is what the API returns and what the CLI prints.
    """

    session_id: str
    answer: AnswerState
    seminar: SeminarValidationState
    value_limit: ValueLimitView

    # Metadata
    event_count: int = 0
    last_event_seq: int = -1
    last_event_ts: datetime | None = None
