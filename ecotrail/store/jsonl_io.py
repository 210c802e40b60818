"""JSONL import/export of questionnaire event logs.

One event per line. Importing a log also rebuilds the Session document of
every session it touched, so an imported session can be rehydrated like one
recorded live.
"""

import json
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ecotrail.models.events import EventEnvelope
from ecotrail.reducers.session import reduce_session_state

if TYPE_CHECKING:
    from ecotrail.store.sqlite_store import EventStore


def export_session_jsonl(
    store: "EventStore",
    session_id: str,
    output_path: str | Path,
) -> int:
    """Write a session's events to a JSONL file, in seq order.

    Returns:
        Number of events exported.
    """
    events = store.get_events(session_id)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        f.writelines(event.model_dump_json() + "\n" for event in events)

    return len(events)


def _parse_line(line: str, line_num: int, session_id_override: str | None) -> EventEnvelope:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON on line {line_num}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Invalid event on line {line_num}: expected an object")
    if session_id_override:
        data["session_id"] = session_id_override

    try:
        event = EventEnvelope.model_validate(data)
        event.get_payload_model()
    except ValidationError as e:
        raise ValueError(f"Invalid event on line {line_num}: {e}") from e
    return event


def rebuild_document(store: "EventStore", session_id: str) -> None:
    """Replay a session's events and store the resulting Session document."""
    state = reduce_session_state(session_id, store.get_events(session_id))
    store.save_document(session_id, state.answer.session)


def import_session_jsonl(
    store: "EventStore",
    input_path: str | Path,
    session_id_override: str | None = None,
) -> int:
    """Append the events of a JSONL file and rebuild the affected documents.

    Args:
        store: The event store to write to.
        input_path: Path to the JSONL file.
        session_id_override: If provided, replace all session_ids with this.

    Returns:
        Number of events imported.

    Raises:
        ValueError: If a line is not a valid event, or collides with a stored
            event id or seq. Events before the bad line stay imported.
    """
    imported_sessions: list[str] = []
    count = 0

    try:
        with open(Path(input_path), "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue

                event = _parse_line(line, line_num, session_id_override)
                store.append(event)
                count += 1
                if event.session_id not in imported_sessions:
                    imported_sessions.append(event.session_id)
    finally:
        for session_id in imported_sessions:
            rebuild_document(store, session_id)

    return count
