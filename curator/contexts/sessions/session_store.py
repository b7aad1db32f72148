"""
Session Ledger Store

SQLite-backed persistence for per-session usage ledgers.

Each session record holds two flat lists of base ids (used, blocked), the content
ids the session consumed, its allocation mode, and a version counter. A commit
is read-modify-write of one record and is made atomic by:

1. a per-session in-process lock (overlapping requests in one process queue up)
2. an optimistic version check on write (``UPDATE ... WHERE version = ?``), so a
   writer in another process that read an older snapshot retries instead of
   overwriting newer state

Different sessions never share a lock.

Schema:
    session_id (TEXT, PRIMARY KEY)
    mode (TEXT): "interactive" or "batch", fixed at creation
    used_base_ids, blocked_base_ids, used_content_ids (TEXT): JSON lists
    version (INTEGER): incremented by every successful write
    created_at, updated_at (TEXT): ISO 8601 timestamps

Usage:
    store = SessionLedgerStore(Path("outs/sessions/ledger.db"), registry)
    store.create_session("sess-42")
    store.commit("sess-42", ["CH-01"])
    store.blocked_ids("sess-42")   # frozenset({"CH-01", "P1-B02"})
"""

import json
import os
import sqlite3
import threading
import weakref
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional

from dotenv import load_dotenv

from curator.contexts.allocation.conflict_registry import ConflictRegistry
from curator.contexts.allocation.content_data_structures import Allocation
from curator.contexts.allocation.exceptions import (
    AllocationModeError,
    SessionNotFoundError,
    StaleLedgerWriteError,
)
from curator.contexts.allocation.usage_ledger import UsageLedger
from curator.contexts.sessions.logger import (
    _log_debug,
    _log_error,
    _log_info,
    log_commit,
    log_stale_write,
)
from curator.utils.event_logging import log_pipeline_event
from curator.utils.timestamp import now_exact

load_dotenv()
LEDGER_DB_PATH = Path(os.getenv("LEDGER_DB_PATH", "outs/sessions/ledger.db"))

INTERACTIVE = "interactive"
BATCH = "batch"
SESSION_MODES = (INTERACTIVE, BATCH)

EVENT_SOURCE = "sessions"


@dataclass
class SessionRecord:
    """One row of the sessions table."""

    session_id: str
    mode: str
    used_base_ids: List[str] = field(default_factory=list)
    blocked_base_ids: List[str] = field(default_factory=list)
    used_content_ids: List[str] = field(default_factory=list)
    version: int = 0
    created_at: str = ""
    updated_at: str = ""

    def ledger_dict(self) -> Dict[str, List[str]]:
        return {"used_base_ids": self.used_base_ids, "blocked_base_ids": self.blocked_base_ids}


def _merge_ordered(existing: List[str], new: Iterable[str]) -> List[str]:
    merged = dict.fromkeys(existing)
    for item in new:
        merged.setdefault(item, None)
    return list(merged)


class SessionLedgerStore:
    """
    Durable session ledgers with serialized, version-checked commits.

    A session is either interactive (incremental ``commit`` calls, one per
    approved section) or batch (a single ``record_allocation``). Mixing the two
    on one session raises AllocationModeError.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        registry: Optional[ConflictRegistry] = None,
        max_retries: int = 3,
    ):
        """
        Open (creating if needed) the ledger database.

        Args:
            db_path: SQLite file (defaults to LEDGER_DB_PATH from environment)
            registry: Conflict registry used to derive blocked ids
            max_retries: Optimistic-lock retries before StaleLedgerWriteError
        """
        self.db_path = db_path if db_path is not None else LEDGER_DB_PATH
        self.registry = registry if registry is not None else ConflictRegistry()
        self.max_retries = max_retries

        # Entries vanish once no commit holds the lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    session_id TEXT PRIMARY KEY,
                    mode TEXT NOT NULL,
                    used_base_ids TEXT NOT NULL DEFAULT '[]',
                    blocked_base_ids TEXT NOT NULL DEFAULT '[]',
                    used_content_ids TEXT NOT NULL DEFAULT '[]',
                    version INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    def _session_lock(self, session_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(session_id, threading.Lock())

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def create_session(self, session_id: str, mode: str = INTERACTIVE) -> SessionRecord:
        """
        Create an empty ledger record.

        Raises:
            ValueError: If mode is unknown or the session already exists
        """
        if mode not in SESSION_MODES:
            raise ValueError(f"Unknown session mode '{mode}'. Expected one of: {SESSION_MODES}")

        timestamp = now_exact()
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    "INSERT INTO sessions (session_id, mode, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?)",
                    (session_id, mode, timestamp, timestamp),
                )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Session '{session_id}' already exists") from e

        _log_info(f"{session_id}: created ({mode})")
        log_pipeline_event("session_created", session_id, EVENT_SOURCE, mode=mode)
        return self.get_session(session_id)

    def get_session(self, session_id: str) -> SessionRecord:
        """
        Raises:
            SessionNotFoundError: If no record exists
        """
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT * FROM sessions WHERE session_id = ?", (session_id,)
            ).fetchone()

        if row is None:
            raise SessionNotFoundError(session_id)

        return SessionRecord(
            session_id=row["session_id"],
            mode=row["mode"],
            used_base_ids=json.loads(row["used_base_ids"]),
            blocked_base_ids=json.loads(row["blocked_base_ids"]),
            used_content_ids=json.loads(row["used_content_ids"]),
            version=row["version"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def session_exists(self, session_id: str) -> bool:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT 1 FROM sessions WHERE session_id = ?", (session_id,)
            ).fetchone()
        return row is not None

    def list_sessions(self) -> List[SessionRecord]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT session_id FROM sessions ORDER BY created_at, rowid"
            ).fetchall()
        return [self.get_session(row["session_id"]) for row in rows]

    def _write(
        self,
        session_id: str,
        ledger: UsageLedger,
        used_content_ids: List[str],
        expected_version: int,
    ) -> bool:
        """Compare-and-swap on version. Returns False if the record changed since it was read."""
        state = ledger.to_dict()
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                """
                UPDATE sessions
                SET used_base_ids = ?, blocked_base_ids = ?, used_content_ids = ?,
                    version = version + 1, updated_at = ?
                WHERE session_id = ? AND version = ?
                """,
                (
                    json.dumps(state["used_base_ids"]),
                    json.dumps(state["blocked_base_ids"]),
                    json.dumps(used_content_ids),
                    now_exact(),
                    session_id,
                    expected_version,
                ),
            )
            return cursor.rowcount == 1

    # ------------------------------------------------------------------
    # Ledger access
    # ------------------------------------------------------------------

    def load_ledger(self, session_id: str) -> UsageLedger:
        """In-memory ledger rebuilt from the session record (version carried over)."""
        record = self.get_session(session_id)
        return UsageLedger.from_dict(record.ledger_dict(), self.registry, version=record.version)

    def blocked_ids(self, session_id: str) -> FrozenSet[str]:
        return frozenset(self.get_session(session_id).blocked_base_ids)

    def is_available(self, session_id: str, content_id: str) -> bool:
        return self.load_ledger(session_id).is_available(content_id)

    def commit(self, session_id: str, content_ids: Iterable[str]) -> FrozenSet[str]:
        """
        Atomically commit approved content ids to an interactive session.

        Args:
            session_id: Session identifier
            content_ids: Content ids of the approved section

        Returns:
            The session's full blocked set after the commit

        Raises:
            SessionNotFoundError: If the session doesn't exist
            AllocationModeError: If the session is a batch session
            StaleLedgerWriteError: If the record kept changing underneath the
                                   writer for more than max_retries attempts
        """
        content_ids = list(content_ids)

        with self._session_lock(session_id):
            expected_version = None

            for attempt in range(self.max_retries + 1):
                record = self.get_session(session_id)
                if record.mode != INTERACTIVE:
                    raise AllocationModeError(session_id, record.mode, INTERACTIVE)

                ledger = UsageLedger.from_dict(record.ledger_dict(), self.registry)
                blocked = ledger.commit(content_ids)
                if not content_ids:
                    return blocked

                used_content_ids = _merge_ordered(record.used_content_ids, content_ids)
                expected_version = record.version

                if self._write(session_id, ledger, used_content_ids, expected_version):
                    log_commit(session_id, content_ids, len(blocked), expected_version + 1)
                    log_pipeline_event(
                        "ledger_commit",
                        session_id,
                        EVENT_SOURCE,
                        content_ids=content_ids,
                        version=expected_version + 1,
                        blocked_count=len(blocked),
                    )
                    return blocked

                if attempt < self.max_retries:
                    log_stale_write(session_id, expected_version, attempt + 1, self.max_retries)

        actual_version = self.get_session(session_id).version
        _log_error(
            f"{session_id}: giving up after {self.max_retries} retries at version {actual_version}"
        )
        raise StaleLedgerWriteError(session_id, expected_version, actual_version)

    def record_allocation(self, session_id: str, allocation: Allocation) -> SessionRecord:
        """
        Persist a batch allocation as the session's consumed content.

        Args:
            session_id: Session identifier (must be a batch session)
            allocation: Allocation produced by allocate()

        Returns:
            Updated session record

        Raises:
            SessionNotFoundError: If the session doesn't exist
            AllocationModeError: If the session is interactive
            ValueError: If an allocation was already recorded for the session
            StaleLedgerWriteError: If another writer recorded concurrently
        """
        with self._session_lock(session_id):
            record = self.get_session(session_id)
            if record.mode != BATCH:
                raise AllocationModeError(session_id, record.mode, BATCH)
            if record.version > 0:
                raise ValueError(f"Allocation already recorded for session '{session_id}'")

            content_ids = allocation.used_content_ids()
            ledger = UsageLedger(self.registry)
            ledger.commit(content_ids)

            if not self._write(session_id, ledger, content_ids, expected_version=0):
                raise StaleLedgerWriteError(session_id, 0, self.get_session(session_id).version)

        _log_debug(f"{session_id}: recorded {len(content_ids)} allocated item(s)")
        log_pipeline_event(
            "allocation_recorded",
            session_id,
            EVENT_SOURCE,
            content_ids=content_ids,
            unassigned_slots=allocation.unassigned_slot_keys(),
        )
        return self.get_session(session_id)
