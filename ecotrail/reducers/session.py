"""Session reducer - combines all reducers into a single state.

This is the main entry point for computing derived state from events.

State Semantics:
----------------
- AnswerState: the Session document plus the submission and energy async
  slices. Owned by the answer reducer.

- SeminarValidationState: outcome of the seminar code round trip. Independent
  of RestartSession.

- ValueLimitView: the input validation layer's flag, consumed by the
  eligibility predicate.

Every event goes to every slice reducer; each ignores the kinds it does not
own. The slices can be in flight at the same time.
"""

from ecotrail.models.events import Action, EventEnvelope
from ecotrail.models.derived import SessionState, StoreState
from ecotrail.reducers.answers import reduce_answer_state
from ecotrail.reducers.seminar import reduce_seminar_state
from ecotrail.reducers.validation import reduce_value_limit_state


def apply_event(state: StoreState, event: Action) -> StoreState:
    """Apply a single event to every slice.

    Args:
        state: The current combined state.
        event: The event to apply.

    Returns:
        The new state, or state itself if no slice changed.
    """
    answer = reduce_answer_state(state.answer, event)
    seminar = reduce_seminar_state(state.seminar, event)
    value_limit = reduce_value_limit_state(state.value_limit, event)

    if (
        answer is state.answer
        and seminar is state.seminar
        and value_limit is state.value_limit
    ):
        return state

    return StoreState(answer=answer, seminar=seminar, value_limit=value_limit)


def reduce_store_state(
    events: list[Action],
    initial: StoreState | None = None,
) -> StoreState:
    """Fold events into a StoreState.

    Args:
        events: Events in dispatch order.
        initial: State to start from (defaults to the empty state).

    Returns:
        The computed StoreState.
    """
    state = initial if initial is not None else StoreState()
    for event in events:
        state = apply_event(state, event)
    return state


def reduce_session_state(
    session_id: str,
    events: list[EventEnvelope],
) -> SessionState:
    """Reduce all stored events to a complete SessionState.

    Args:
        session_id: The session ID.
        events: All events for the session, ordered by seq.

    Returns:
        The complete SessionState.
    """
    state = reduce_store_state(events)

    last_event = events[-1] if events else None

    return SessionState(
        session_id=session_id,
        answer=state.answer,
        seminar=state.seminar,
        value_limit=state.value_limit,
        event_count=len(events),
        last_event_seq=last_event.seq if last_event else -1,
        last_event_ts=last_event.ts if last_event else None,
    )
