"""Reducers that compute derived state from events."""

from ecotrail.reducers.answers import reduce_answer_state, reduce_answers
from ecotrail.reducers.seminar import reduce_seminar_state, reduce_seminar
from ecotrail.reducers.validation import reduce_value_limit_state, reduce_value_limit
from ecotrail.reducers.session import (
    apply_event,
    reduce_store_state,
    reduce_session_state,
)

__all__ = [
    "reduce_answer_state",
    "reduce_answers",
    "reduce_seminar_state",
    "reduce_seminar",
    "reduce_value_limit_state",
    "reduce_value_limit",
    "apply_event",
    "reduce_store_state",
    "reduce_session_state",
]
