"""Dispatch shell - owns the single long-lived state of one questionnaire.

Events are processed one at a time. dispatch() runs the reducers, records the
event and writes the Session document when an event store is attached, then
notifies subscribers. Writes are fire-and-forget: a failed write is logged
and the transition stands.

Network work never happens inside a transition. The transport helpers turn
one call into requested -> succeeded | failed events dispatched through the
same queue; failures are captured in the state, never raised.
"""

import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import ulid
from pydantic import ValidationError

from ecotrail import actions
from ecotrail.models.catalog import Questionnaire
from ecotrail.models.derived import AnswerState, Session, StoreState
from ecotrail.models.events import (
    Action,
    Actor,
    ActorKind,
    CalculationResult,
    EventEnvelope,
    SeminarCodeValidatedPayload,
)
from ecotrail.navigation.eligibility import (
    EligibilityResult,
    evaluate_eligibility,
    value_exceeds_maximum,
    value_limit_message,
)
from ecotrail.reducers.session import apply_event
from ecotrail.store.sqlite_store import EventStore

logger = logging.getLogger(__name__)

Listener = Callable[[StoreState], None]

_USER = Actor(kind=ActorKind.USER)
_TRANSPORT = Actor(kind=ActorKind.TRANSPORT)


def describe_error(error: BaseException) -> dict[str, str]:
    """JSON-friendly form of an exception, as stored in a failed slice."""
    return {"type": type(error).__name__, "message": str(error)}


class SessionShell:
    """Holds the state of one questionnaire and processes its events."""

    def __init__(
        self,
        session_id: str = "local",
        store: EventStore | None = None,
        questionnaire: Questionnaire | None = None,
    ):
        """Create the shell, rehydrating the Session document if one is stored.

        Args:
            session_id: Key of this questionnaire in the store.
            store: Event store used for the event log and the Session document.
            questionnaire: The question catalog, used for eligibility and
                value limits.
        """
        self.session_id = session_id
        self.questionnaire = questionnaire or Questionnaire()
        self._store = store
        self._listeners: list[Listener] = []
        self._state = StoreState(answer=AnswerState(session=self._rehydrate()))

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def session(self) -> Session:
        return self._state.answer.session

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener with the new state after every dispatch.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action, actor: Actor | None = None) -> StoreState:
        """Apply an action and notify subscribers.

        Returns:
            The new state.
        """
        logger.debug("Dispatching %s for %s", action.type.value, self.session_id)
        self._state = apply_event(self._state, action)

        if self._store is not None:
            self._record(action, actor or _USER)
            self._persist()

        for listener in list(self._listeners):
            listener(self._state)

        return self._state

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def eligibility(self, question_index: int) -> EligibilityResult:
        question = self.questionnaire.get_question(question_index)
        return evaluate_eligibility(
            self.session.answers,
            question,
            max_value_exceeded=self._state.value_limit.exceeded,
        )

    def can_advance(self, question_index: int) -> bool:
        """Whether the user may move past the question at question_index."""
        return self.eligibility(question_index).allowed

    def enter_value(
        self,
        answer_id: int,
        variable_id: int,
        value: str | int | float | None,
    ) -> StoreState:
        """Enter a variable value, raising the value limit flag if it is too big.

        A value over the variable's maximum is not stored.
        """
        variable = self.questionnaire.find_variable(variable_id)
        if variable is not None and value_exceeds_maximum(variable, value):
            return self.dispatch(actions.value_limit_exceeded(value_limit_message(variable)))

        if self._state.value_limit.exceeded:
            self.dispatch(actions.value_limit_cleared())
        return self.dispatch(actions.select_answer(answer_id, variable_id, value))

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def submit_session(self, send: Callable[[Session], str]) -> bool:
        """Send the session and record the outcome.

        Args:
            send: Transport call returning the backend's session identifier.

        Returns:
            True if the submission succeeded.
        """
        session = self.session
        self.dispatch(actions.submit_session_requested(), actor=_TRANSPORT)
        try:
            backend_id = str(send(session))
        except Exception as e:
            logger.warning("Session submission failed for %s: %s", self.session_id, e)
            self.dispatch(actions.submit_session_failed(describe_error(e)), actor=_TRANSPORT)
            return False

        self.dispatch(actions.submit_session_succeeded(backend_id), actor=_TRANSPORT)
        return True

    def compute_energy(
        self,
        compute: Callable[[Session], CalculationResult | dict[str, Any]],
    ) -> bool:
        """Run the energy computation for the current answers.

        Returns:
            True if a result was stored.
        """
        session = self.session
        self.dispatch(actions.compute_energy_requested(), actor=_TRANSPORT)
        try:
            result = CalculationResult.model_validate(compute(session))
        except Exception as e:
            logger.warning("Energy computation failed for %s: %s", self.session_id, e)
            self.dispatch(actions.compute_energy_failed(describe_error(e)), actor=_TRANSPORT)
            return False

        self.dispatch(actions.compute_energy_succeeded(result), actor=_TRANSPORT)
        return True

    def fetch_result(
        self,
        fetch: Callable[[str], CalculationResult | dict[str, Any]],
        backend_id: str | None = None,
    ) -> bool:
        """Fetch the stored result of a submitted session.

        Args:
            fetch: Transport call taking the backend session identifier.
            backend_id: Identifier to fetch; defaults to the one returned by
                the last successful submission.

        Raises:
            ValueError: If there is no identifier to fetch.
        """
        backend_id = backend_id or self._state.answer.submission.session_id
        if backend_id is None:
            raise ValueError("No submitted session to fetch a result for")

        self.dispatch(actions.fetch_result_requested(backend_id), actor=_TRANSPORT)
        try:
            result = CalculationResult.model_validate(fetch(backend_id))
        except Exception as e:
            logger.warning("Result fetch failed for %s: %s", backend_id, e)
            self.dispatch(actions.fetch_result_failed(describe_error(e)), actor=_TRANSPORT)
            return False

        self.dispatch(actions.fetch_result_succeeded(result), actor=_TRANSPORT)
        return True

    def validate_seminar_code(
        self,
        validate: Callable[[str], dict[str, Any]],
    ) -> bool:
        """Check the session's seminar code with the backend.

        Args:
            validate: Transport call returning isValid/isOpen/seminarStatus.

        Returns:
            True if the round trip completed, whatever the verdict.
        """
        code = self.session.seminar_access_code
        if code is None:
            return False

        self.dispatch(actions.validate_seminar_code_requested(code), actor=_TRANSPORT)
        try:
            verdict = SeminarCodeValidatedPayload.model_validate(validate(code))
        except Exception as e:
            logger.warning("Seminar code validation failed for %s: %s", code, e)
            self.dispatch(actions.validate_seminar_code_failed(describe_error(e)), actor=_TRANSPORT)
            return False

        self.dispatch(
            actions.validate_seminar_code_succeeded(
                verdict.is_valid, verdict.is_open, verdict.seminar_status
            ),
            actor=_TRANSPORT,
        )
        return True

    def finish(
        self,
        send: Callable[[Session], str],
        validate: Callable[[str], dict[str, Any]] | None = None,
    ) -> bool:
        """Submit the session, then validate its seminar code if it has one.

        Returns:
            True if the submission succeeded.
        """
        submitted = self.submit_session(send)
        if submitted and validate is not None and self.session.seminar_access_code:
            self.validate_seminar_code(validate)
        return submitted

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _rehydrate(self) -> Session:
        if self._store is None:
            return Session()
        try:
            document = self._store.load_document(self.session_id)
        except (sqlite3.Error, ValidationError) as e:
            logger.warning("Ignoring unreadable session document for %s: %s", self.session_id, e)
            return Session()
        return document or Session()

    def _record(self, action: Action, actor: Actor) -> None:
        event = EventEnvelope(
            event_id=str(ulid.new()),
            session_id=self.session_id,
            seq=0,
            ts=datetime.now(timezone.utc),
            type=action.type,
            actor=actor,
            payload=action.payload,
        )
        try:
            self._store.append(event, auto_seq=True)
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.warning("Could not record %s for %s: %s", action.type.value, self.session_id, e)

    def _persist(self) -> None:
        try:
            self._store.save_document(self.session_id, self.session)
        except sqlite3.Error as e:
            logger.warning("Could not save session document for %s: %s", self.session_id, e)
