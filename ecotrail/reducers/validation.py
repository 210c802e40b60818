"""Value limit reducer - the input validation layer's global flag.

While an entered value exceeds its variable's maximum, the flag is raised and
navigation is blocked. The flag is owned here, not by the answer reducer.
"""

import logging

from pydantic import ValidationError

from ecotrail.models.events import Action, EventType
from ecotrail.models.derived import ValueLimitView

logger = logging.getLogger(__name__)


def reduce_value_limit_state(view: ValueLimitView, event: Action) -> ValueLimitView:
    """Apply a single event to the value limit flag."""
    if event.type == EventType.VALUE_LIMIT_EXCEEDED:
        try:
            message = event.get_payload_model().message
        except ValidationError as e:
            # The flag itself still applies
            logger.warning("ValueLimitExceeded with invalid payload: %s", e)
            message = None
        return ValueLimitView(exceeded=True, message=message)

    elif event.type == EventType.VALUE_LIMIT_CLEARED:
        if not view.exceeded:
            return view
        return ValueLimitView()

    return view


def reduce_value_limit(events: list[Action]) -> ValueLimitView:
    """Reduce events to a ValueLimitView."""
    view = ValueLimitView()
    for event in events:
        view = reduce_value_limit_state(view, event)
    return view
