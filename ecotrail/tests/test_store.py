"""Tests for the SQLite event store."""

import pytest
from datetime import datetime, timezone
from concurrent.futures import ThreadPoolExecutor

from ecotrail.models.events import EventEnvelope, EventType, Actor, ActorKind
from ecotrail.models.derived import AnswerRecord, Session, VariableValue
from ecotrail.store.sqlite_store import EventStore


@pytest.fixture
def store():
    """Create an in-memory store for testing."""
    return EventStore(":memory:")


def make_event(
    event_id: str,
    session_id: str = "test_sess",
    seq: int = 0,
    event_type: EventType = EventType.SELECT_ANSWER,
    payload: dict | None = None,
) -> EventEnvelope:
    """Helper to create test events."""
    return EventEnvelope(
        event_id=event_id,
        session_id=session_id,
        seq=seq,
        ts=datetime.now(timezone.utc),
        type=event_type,
        actor=Actor(kind=ActorKind.USER),
        payload=payload if payload is not None else {"answer_id": 1},
    )


def test_append_and_get(store: EventStore):
    """Test basic append and retrieval."""
    result = store.append(make_event("e001"))
    assert result.event_id == "e001"

    retrieved = store.get_event("e001")
    assert retrieved is not None
    assert retrieved.type == EventType.SELECT_ANSWER
    assert retrieved.payload == {"answer_id": 1}
    assert retrieved.actor.kind == ActorKind.USER


def test_get_missing_event(store: EventStore):
    assert store.get_event("nope") is None


def test_auto_seq(store: EventStore):
    """Test that auto_seq assigns consecutive numbers."""
    first = store.append(make_event("e001", seq=99), auto_seq=True)
    second = store.append(make_event("e002", seq=99), auto_seq=True)

    assert first.seq == 0
    assert second.seq == 1
    assert store.get_latest_seq("test_sess") == 1
    assert store.get_next_seq("test_sess") == 2


def test_auto_seq_per_session(store: EventStore):
    store.append(make_event("e001", session_id="a"), auto_seq=True)
    result = store.append(make_event("e002", session_id="b"), auto_seq=True)
    assert result.seq == 0


def test_duplicate_event_id_rejected(store: EventStore):
    store.append(make_event("e001", seq=0))
    with pytest.raises(ValueError):
        store.append(make_event("e001", seq=1))


def test_duplicate_seq_rejected(store: EventStore):
    store.append(make_event("e001", seq=0))
    with pytest.raises(ValueError):
        store.append(make_event("e002", seq=0))


def test_get_events_filters(store: EventStore):
    store.append(make_event("e000", seq=0))
    store.append(make_event("e001", seq=1, event_type=EventType.SET_SEMINAR_CODE, payload={"code": "WS"}))
    store.append(make_event("e002", seq=2))
    store.append(make_event("e003", seq=3, event_type=EventType.RESTART_SESSION, payload={}))

    assert [e.seq for e in store.get_events("test_sess")] == [0, 1, 2, 3]
    assert [e.seq for e in store.get_events("test_sess", from_seq=1, to_seq=2)] == [1, 2]
    selected = store.get_events("test_sess", event_type=EventType.SELECT_ANSWER)
    assert [e.event_id for e in selected] == ["e000", "e002"]


def test_latest_seq_empty_session(store: EventStore):
    assert store.get_latest_seq("missing") == -1
    assert store.get_next_seq("missing") == 0
    assert not store.session_exists("missing")


def test_list_sessions(store: EventStore):
    store.append(make_event("e001", session_id="a"))
    store.append(make_event("e002", session_id="b"))
    assert sorted(store.list_sessions()) == ["a", "b"]


def test_stores_are_isolated():
    first = EventStore(":memory:")
    second = EventStore(":memory:")
    first.append(make_event("e001"))

    assert first.session_exists("test_sess")
    assert not second.session_exists("test_sess")


def test_file_store_persists(tmp_path):
    db_path = tmp_path / "events.db"
    with EventStore(db_path) as store:
        store.append(make_event("e001"))

    with EventStore(db_path) as store:
        assert store.get_event("e001") is not None


def test_concurrent_auto_seq(store: EventStore):
    """Concurrent appends never reuse a seq."""
    def append(i: int) -> int:
        return store.append(make_event(f"e{i:03d}"), auto_seq=True).seq

    with ThreadPoolExecutor(max_workers=8) as pool:
        seqs = list(pool.map(append, range(40)))

    assert sorted(seqs) == list(range(40))


class TestSessionDocuments:
    """Tests for the persisted Session document."""

    def test_save_and_load(self, store: EventStore):
        session = Session(
            seminar_access_code="WS",
            answers=(
                AnswerRecord(
                    answer_id=1,
                    variable_values=(VariableValue(variable_id=10, value=2.5),),
                ),
                AnswerRecord(answer_id=2),
            ),
            is_kid=True,
        )
        store.save_document("sess", session)

        assert store.load_document("sess") == session
        assert store.list_documents() == ["sess"]

    def test_save_replaces(self, store: EventStore):
        store.save_document("sess", Session(seminar_access_code="A"))
        store.save_document("sess", Session(seminar_access_code="B"))

        assert store.load_document("sess").seminar_access_code == "B"
        assert store.list_documents() == ["sess"]

    def test_missing_document(self, store: EventStore):
        assert store.load_document("missing") is None

    def test_documents_independent_of_events(self, store: EventStore):
        store.save_document("sess", Session())
        assert not store.session_exists("sess")
