"""SQLite-based append-only event store for Ecotrail.

Design principles:
- Events are never edited or deleted
- seq is strictly increasing per session
- The persisted Session document lives in its own table, keyed by session,
  independent of the event log; async slices are never persisted
- Thread-safe for concurrent reads and writes
"""

import json
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

from ecotrail.models.events import EventEnvelope, Actor, EventType
from ecotrail.models.derived import Session


class EventStore:
    """Append-only event store backed by SQLite.

    Thread-safe: uses per-thread connections for concurrent access.
    For in-memory databases, uses a unique shared cache URI to allow multi-threaded access
    while keeping each store instance isolated.
    """

    def __init__(self, db_path: str | Path = ":memory:"):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file, or ":memory:" for in-memory.
        """
        self._original_path = str(db_path)

        # Each in-memory store gets its own shared-cache database
        if self._original_path == ":memory:":
            unique_id = uuid.uuid4().hex[:8]
            self.db_path = f"file:ecotrail_{unique_id}?mode=memory&cache=shared"
            self._uri = True
        else:
            self.db_path = self._original_path
            self._uri = False

        self._local = threading.local()
        self._write_lock = threading.Lock()
        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create a thread-local database connection."""
        if not hasattr(self._local, 'conn') or self._local.conn is None:
            self._local.conn = sqlite3.connect(
                self.db_path,
                uri=self._uri,
                check_same_thread=False,
                timeout=30.0,
            )
            self._local.conn.row_factory = sqlite3.Row
            if not self._uri:
                self._local.conn.execute("PRAGMA journal_mode=WAL")
        return self._local.conn

    def _init_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        conn = self._get_conn()
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
                event_id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL,
                seq INTEGER NOT NULL,
                ts TEXT NOT NULL,
                type TEXT NOT NULL,
                actor_kind TEXT NOT NULL,
                actor_id TEXT,
                payload_json TEXT NOT NULL
            );

            CREATE UNIQUE INDEX IF NOT EXISTS idx_session_seq
                ON events(session_id, seq);

            CREATE INDEX IF NOT EXISTS idx_session_type
                ON events(session_id, type);

            CREATE TABLE IF NOT EXISTS session_documents (
                session_id TEXT PRIMARY KEY,
                document_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )
        conn.commit()

    def append(self, event: EventEnvelope, auto_seq: bool = False) -> EventEnvelope:
        """Append an event to the store.

        Args:
            event: The event to append.
            auto_seq: If True, atomically assign the next seq number.
                     The event.seq value will be ignored.

        Returns:
            The event with seq populated.

        Raises:
            ValueError: If event_id or seq already exists.
        """
        row = (
            event.event_id,
            event.session_id,
            event.ts.isoformat(),
            event.type.value,
            event.actor.kind.value,
            event.actor.id,
            json.dumps(event.payload),
        )

        with self._write_lock:
            conn = self._get_conn()

            if auto_seq:
                try:
                    cursor = conn.execute(
                        """
                        INSERT INTO events (
                            event_id, session_id, seq,
                            ts, type, actor_kind, actor_id, payload_json
                        ) VALUES (
                            ?, ?,
                            COALESCE((SELECT MAX(seq) + 1 FROM events WHERE session_id = ?), 0),
                            ?, ?, ?, ?, ?
                        )
                        RETURNING seq
                        """,
                        (row[0], row[1], event.session_id) + row[2:],
                    )
                    assigned_seq = cursor.fetchone()[0]
                    conn.commit()
                    return event.model_copy(update={"seq": assigned_seq})
                except sqlite3.IntegrityError as e:
                    raise ValueError(f"Event already exists or constraint violation: {e}") from e

            try:
                conn.execute(
                    """
                    INSERT INTO events (
                        event_id, session_id, seq,
                        ts, type, actor_kind, actor_id, payload_json
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (row[0], row[1], event.seq) + row[2:],
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                raise ValueError(f"Event already exists or seq conflict: {e}") from e

            return event

    def get_events(
        self,
        session_id: str,
        from_seq: int | None = None,
        to_seq: int | None = None,
        event_type: EventType | None = None,
    ) -> list[EventEnvelope]:
        """Get events for a session with optional filters.

        Args:
            session_id: The session to query.
            from_seq: Start from this seq (inclusive, optional).
            to_seq: End at this seq (inclusive, optional).
            event_type: Filter by event type (optional).

        Returns:
            List of events ordered by seq.
        """
        conn = self._get_conn()

        query = "SELECT * FROM events WHERE session_id = ?"
        params: list = [session_id]

        if from_seq is not None:
            query += " AND seq >= ?"
            params.append(from_seq)

        if to_seq is not None:
            query += " AND seq <= ?"
            params.append(to_seq)

        if event_type is not None:
            query += " AND type = ?"
            params.append(event_type.value)

        query += " ORDER BY seq"

        cursor = conn.execute(query, params)
        return [self._row_to_event(row) for row in cursor.fetchall()]

    def get_event(self, event_id: str) -> EventEnvelope | None:
        """Get a single event by ID, or None if not found."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT * FROM events WHERE event_id = ?", (event_id,)
        )
        row = cursor.fetchone()
        return self._row_to_event(row) if row else None

    def get_latest_seq(self, session_id: str) -> int:
        """Get the latest sequence number for a session, or -1 if empty."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT MAX(seq) FROM events WHERE session_id = ?", (session_id,)
        )
        result = cursor.fetchone()[0]
        return result if result is not None else -1

    def get_next_seq(self, session_id: str) -> int:
        """Get the next sequence number for a session."""
        return self.get_latest_seq(session_id) + 1

    def session_exists(self, session_id: str) -> bool:
        """Check if a session has any events."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT 1 FROM events WHERE session_id = ? LIMIT 1", (session_id,)
        )
        return cursor.fetchone() is not None

    def list_sessions(self) -> list[str]:
        """List all session IDs that have events."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT DISTINCT session_id FROM events")
        return [row[0] for row in cursor.fetchall()]

    # -------------------------------------------------------------------------
    # Session documents
    # -------------------------------------------------------------------------

    def save_document(self, session_id: str, session: Session) -> None:
        """Store the Session document for a session, replacing any previous one."""
        with self._write_lock:
            conn = self._get_conn()
            conn.execute(
                """
                INSERT INTO session_documents (session_id, document_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    document_json = excluded.document_json,
                    updated_at = excluded.updated_at
                """,
                (
                    session_id,
                    session.model_dump_json(),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            conn.commit()

    def load_document(self, session_id: str) -> Session | None:
        """Load the stored Session document, or None if there is none."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT document_json FROM session_documents WHERE session_id = ?",
            (session_id,),
        )
        row = cursor.fetchone()
        return Session.model_validate_json(row[0]) if row else None

    def list_documents(self) -> list[str]:
        """List session IDs that have a stored document."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT session_id FROM session_documents")
        return [row[0] for row in cursor.fetchall()]

    def close(self) -> None:
        """Close the thread-local database connection."""
        if hasattr(self._local, 'conn') and self._local.conn:
            self._local.conn.close()
            self._local.conn = None

    def _row_to_event(self, row: sqlite3.Row) -> EventEnvelope:
        """Convert a database row to an EventEnvelope."""
        return EventEnvelope(
            event_id=row["event_id"],
            session_id=row["session_id"],
            seq=row["seq"],
            ts=datetime.fromisoformat(row["ts"]),
            type=EventType(row["type"]),
            actor=Actor(kind=row["actor_kind"], id=row["actor_id"]),
            payload=json.loads(row["payload_json"]),
        )

    def __enter__(self) -> "EventStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
