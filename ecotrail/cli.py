"""CLI tools for Ecotrail.

Commands:
- init: Initialize a new database
- import: Import events from JSONL
- export: Export events to JSONL
- state: Print derived state for a session
- events: List events for a session
- sessions: List all sessions
- serve: Start the API server
- doctor: Run health checks on the database
- eligibility: Check whether a session may advance past a question
"""

import argparse
import logging
import sys
from multiprocessing import freeze_support
from pathlib import Path

from pydantic import ValidationError

from ecotrail.models.catalog import load_questionnaire
from ecotrail.navigation.eligibility import evaluate_eligibility
from ecotrail.store.sqlite_store import EventStore
from ecotrail.store.jsonl_io import import_session_jsonl, export_session_jsonl
from ecotrail.reducers.session import reduce_session_state


DEFAULT_DB = "ecotrail.db"


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize a new database."""
    db_path = Path(args.db)

    if db_path.exists() and not args.force:
        print(f"Database already exists: {db_path}")
        print("Use --force to overwrite.")
        return 1

    if db_path.exists():
        db_path.unlink()

    store = EventStore(db_path)
    store.close()
    print(f"Initialized database: {db_path}")
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    """Import events from JSONL."""
    db_path = Path(args.db)
    input_path = Path(args.input)

    if not input_path.exists():
        print(f"Input file not found: {input_path}")
        return 1

    store = EventStore(db_path)
    try:
        count = import_session_jsonl(
            store,
            input_path,
            session_id_override=args.session_id,
        )
        print(f"Imported {count} events from {input_path}")
        return 0
    except ValueError as e:
        print(f"Import error: {e}")
        return 1
    finally:
        store.close()


def cmd_export(args: argparse.Namespace) -> int:
    """Export events to JSONL."""
    db_path = Path(args.db)
    output_path = Path(args.output)

    store = EventStore(db_path)
    try:
        if not store.session_exists(args.session_id):
            print(f"Session not found: {args.session_id}")
            return 1

        count = export_session_jsonl(store, args.session_id, output_path)
        print(f"Exported {count} events to {output_path}")
        return 0
    finally:
        store.close()


def cmd_state(args: argparse.Namespace) -> int:
    """Print derived state for a session."""
    db_path = Path(args.db)

    store = EventStore(db_path)
    try:
        if not store.session_exists(args.session_id):
            print(f"Session not found: {args.session_id}")
            return 1

        events = store.get_events(args.session_id)
        state = reduce_session_state(args.session_id, events)

        if args.json:
            print(state.model_dump_json(indent=2))
        else:
            _print_state_summary(state)

        return 0
    finally:
        store.close()


def _print_state_summary(state) -> None:
    """Print a human-readable state summary."""
    print(f"Session: {state.session_id}")
    print(f"Events: {state.event_count}")
    print(f"Last seq: {state.last_event_seq}")
    print()

    s = state.answer.session
    print("=== Answers ===")
    print(f"  Seminar code: {s.seminar_access_code or '(none)'}")
    print(f"  Kid mode: {s.is_kid}")
    print(f"  Selected: {len(s.answers)}")
    for record in s.answers:
        values = ", ".join(f"{v.variable_id}={v.value}" for v in record.variable_values)
        print(f"    {record.answer_id}: {values or '(no variables)'}")
    print()

    sub = state.answer.submission
    energy = state.answer.energy
    print("=== Requests ===")
    print(f"  Submission: {sub.status.value} {sub.session_id or ''}".rstrip())
    if sub.failure:
        print(f"    error: {sub.failure.error}")
    print(f"  Energy: {energy.status.value}")
    if energy.result:
        print(f"    total score: {energy.result.total_score}")
    if energy.failure:
        print(f"    error: {energy.failure.error}")
    print()

    sem = state.seminar
    print("=== Seminar ===")
    print(f"  Validation: {sem.status.value}")
    if sem.code:
        print(f"  Code: {sem.code} valid={sem.is_valid} open={sem.is_open}")
    if state.value_limit.exceeded:
        print(f"  Value limit: {state.value_limit.message}")


def cmd_events(args: argparse.Namespace) -> int:
    """List events for a session."""
    db_path = Path(args.db)

    store = EventStore(db_path)
    try:
        if not store.session_exists(args.session_id):
            print(f"Session not found: {args.session_id}")
            return 1

        events = store.get_events(
            args.session_id,
            from_seq=args.from_seq,
            to_seq=args.to_seq,
        )

        if args.json:
            print("[")
            for i, event in enumerate(events):
                comma = "," if i < len(events) - 1 else ""
                print(f"  {event.model_dump_json()}{comma}")
            print("]")
        else:
            for event in events:
                print(f"[{event.seq:04d}] {event.type.value} ({event.actor.kind.value})")
                print(f"       id: {event.event_id}")
                print(f"       ts: {event.ts}")
                if event.payload:
                    print(f"       payload: {event.payload}")
                print()

        return 0
    finally:
        store.close()


def cmd_sessions(args: argparse.Namespace) -> int:
    """List all sessions."""
    db_path = Path(args.db)

    store = EventStore(db_path)
    try:
        sessions = store.list_sessions()

        if not sessions:
            print("No sessions found.")
            return 0

        for session_id in sessions:
            events = store.get_events(session_id)
            last_event = events[-1] if events else None
            print(f"{session_id}")
            print(f"  Events: {len(events)}")
            if last_event:
                print(f"  Last: {last_event.ts}")
            print()

        return 0
    finally:
        store.close()


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    import uvicorn
    from ecotrail.api.main import create_app

    try:
        app = create_app(args.db, catalog_path=args.catalog)
    except ValueError as e:
        print(f"Catalog error: {e}")
        return 1

    print(f"Starting Ecotrail API server on http://{args.host}:{args.port}")
    print(f"Database: {args.db}")

    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def cmd_eligibility(args: argparse.Namespace) -> int:
    """Check whether a session may advance past a question."""
    try:
        questionnaire = load_questionnaire(args.catalog)
    except (OSError, ValueError) as e:
        print(f"Catalog error: {e}")
        return 1

    store = EventStore(Path(args.db))
    try:
        if not store.session_exists(args.session_id):
            print(f"Session not found: {args.session_id}")
            return 1

        state = reduce_session_state(args.session_id, store.get_events(args.session_id))
        result = evaluate_eligibility(
            state.answer.session.answers,
            questionnaire.get_question(args.question),
            max_value_exceeded=state.value_limit.exceeded,
        )

        if args.json:
            print(result.model_dump_json(indent=2))
        elif result.allowed:
            print(f"Question {args.question}: can advance")
        else:
            print(f"Question {args.question}: blocked ({result.reason.value})")
            if result.incomplete_answer_ids:
                print(f"  Incomplete answers: {result.incomplete_answer_ids}")

        return 0 if result.allowed else 2
    finally:
        store.close()


def cmd_doctor(args: argparse.Namespace) -> int:
    """Run health checks on the database.

    Checks:
    1. Seq monotonicity (no gaps or duplicates per session)
    2. Event validation (all payloads parse for their type)
    3. Reducer replay (no crashes)
    4. Session document present and matching the replay
    5. No session document without events
    """
    db_path = Path(args.db)

    if not db_path.exists():
        print(f"ERROR: Database not found: {db_path}")
        return 1

    print(f"Checking database: {db_path}")
    print("=" * 50)

    issues = []
    warnings = []

    store = EventStore(db_path)
    try:
        sessions = store.list_sessions()
        print(f"Sessions found: {len(sessions)}")

        total_events = 0
        for session_id in sessions:
            events = store.get_events(session_id)
            total_events += len(events)

            # Check 1: Seq monotonicity
            seqs = [e.seq for e in events]
            if seqs != sorted(seqs):
                issues.append(f"[{session_id}] Seqs not in order")
            if len(seqs) != len(set(seqs)):
                issues.append(f"[{session_id}] Duplicate seqs detected")

            expected_seqs = list(range(len(events)))
            if seqs != expected_seqs:
                warnings.append(f"[{session_id}] Seq gaps: expected {expected_seqs}, got {seqs}")

            # Check 2: Event validation (payload parsing)
            for event in events:
                try:
                    event.get_payload_model()
                except ValidationError as e:
                    issues.append(f"[{session_id}] Invalid payload in {event.event_id}: {e}")

            # Check 3: Reducer replay
            try:
                state = reduce_session_state(session_id, events)
            except Exception as e:
                issues.append(f"[{session_id}] Reducer crash: {e}")
                continue

            session = state.answer.session
            print(f"  {session_id}: {len(events)} events, answers={len(session.answers)}")

            # Check 4: Session document
            try:
                document = store.load_document(session_id)
            except ValidationError as e:
                issues.append(f"[{session_id}] Unreadable session document: {e}")
                continue
            if document is None:
                warnings.append(f"[{session_id}] No session document stored")
            elif document != session:
                warnings.append(f"[{session_id}] Session document differs from replay")

        # Check 5: Documents left behind by sessions with no events
        for session_id in sorted(set(store.list_documents()) - set(sessions)):
            warnings.append(f"[{session_id}] Session document without events")

        print(f"Total events: {total_events}")
        print("=" * 50)

        if warnings:
            print(f"\nWarnings ({len(warnings)}):")
            for w in warnings:
                print(f"  [WARN] {w}")

        if issues:
            print(f"\nIssues ({len(issues)}):")
            for issue in issues:
                print(f"  [FAIL] {issue}")
            print("\nDiagnosis: UNHEALTHY")
            return 1
        else:
            print("\n[OK] All checks passed")
            print("Diagnosis: HEALTHY")
            return 0

    finally:
        store.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Ecotrail CLI - energy self-assessment questionnaire sessions",
        prog="ecotrail",
    )
    parser.add_argument(
        "--db",
        default=DEFAULT_DB,
        help=f"Database path (default: {DEFAULT_DB})",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init
    init_parser = subparsers.add_parser("init", help="Initialize database")
    init_parser.add_argument("--force", action="store_true", help="Overwrite existing")

    # import
    import_parser = subparsers.add_parser("import", help="Import from JSONL")
    import_parser.add_argument("input", help="Input JSONL file")
    import_parser.add_argument("--session-id", help="Override session ID")

    # export
    export_parser = subparsers.add_parser("export", help="Export to JSONL")
    export_parser.add_argument("session_id", help="Session to export")
    export_parser.add_argument("--output", "-o", required=True, help="Output file")

    # state
    state_parser = subparsers.add_parser("state", help="Print derived state")
    state_parser.add_argument("session_id", help="Session to show")
    state_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # events
    events_parser = subparsers.add_parser("events", help="List events")
    events_parser.add_argument("session_id", help="Session to show")
    events_parser.add_argument("--from-seq", type=int, help="Start seq")
    events_parser.add_argument("--to-seq", type=int, help="End seq")
    events_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # sessions
    subparsers.add_parser("sessions", help="List all sessions")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    serve_parser.add_argument("--catalog", help="Questionnaire JSON file")

    # doctor
    subparsers.add_parser("doctor", help="Run health checks on database")

    # eligibility
    eligibility_parser = subparsers.add_parser("eligibility", help="Check a question")
    eligibility_parser.add_argument("session_id", help="Session to check")
    eligibility_parser.add_argument("--catalog", required=True, help="Questionnaire JSON file")
    eligibility_parser.add_argument("--question", type=int, required=True, help="Question index")
    eligibility_parser.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "import": cmd_import,
        "export": cmd_export,
        "state": cmd_state,
        "events": cmd_events,
        "sessions": cmd_sessions,
        "serve": cmd_serve,
        "doctor": cmd_doctor,
        "eligibility": cmd_eligibility,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    freeze_support()
    sys.exit(main())
