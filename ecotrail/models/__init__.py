"""Ecotrail data models."""

from ecotrail.models.events import (
    Action,
    EventEnvelope,
    EventType,
    Actor,
    ActorKind,
    FailureKind,
    VariableInput,
    CalculationResult,
    BreakdownEntry,
    # Payload types
    EmptyPayload,
    SelectAnswerPayload,
    UnselectAnswerPayload,
    SetSeminarCodePayload,
    SetKidModePayload,
    SubmitSessionSucceededPayload,
    ResultPayload,
    FetchResultRequestedPayload,
    ValidateSeminarCodeRequestedPayload,
    SeminarCodeValidatedPayload,
    RequestFailedPayload,
    ValueLimitExceededPayload,
)
from ecotrail.models.catalog import (
    Variable,
    PossibleAnswer,
    Question,
    Questionnaire,
    load_questionnaire,
)
from ecotrail.models.derived import (
    AsyncStatus,
    Failure,
    VariableValue,
    AnswerRecord,
    Session,
    SubmissionState,
    EnergyState,
    AnswerState,
    SeminarValidationState,
    ValueLimitView,
    StoreState,
    SessionState,
)

__all__ = [
    # Events
    "Action",
    "EventEnvelope",
    "EventType",
    "Actor",
    "ActorKind",
    "FailureKind",
    "VariableInput",
    "CalculationResult",
    "BreakdownEntry",
    # Payloads
    "EmptyPayload",
    "SelectAnswerPayload",
    "UnselectAnswerPayload",
    "SetSeminarCodePayload",
    "SetKidModePayload",
    "SubmitSessionSucceededPayload",
    "ResultPayload",
    "FetchResultRequestedPayload",
    "ValidateSeminarCodeRequestedPayload",
    "SeminarCodeValidatedPayload",
    "RequestFailedPayload",
    "ValueLimitExceededPayload",
    # Catalog
    "Variable",
    "PossibleAnswer",
    "Question",
    "Questionnaire",
    "load_questionnaire",
    # Derived
    "AsyncStatus",
    "Failure",
    "VariableValue",
    "AnswerRecord",
    "Session",
    "SubmissionState",
    "EnergyState",
    "AnswerState",
    "SeminarValidationState",
    "ValueLimitView",
    "StoreState",
    "SessionState",
]
