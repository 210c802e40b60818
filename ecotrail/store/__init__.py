"""Event and session document storage for Ecotrail."""

from ecotrail.store.sqlite_store import EventStore
from ecotrail.store.jsonl_io import (
    export_session_jsonl,
    import_session_jsonl,
    rebuild_document,
)

__all__ = ["EventStore", "export_session_jsonl", "import_session_jsonl", "rebuild_document"]
