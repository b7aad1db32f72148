"""Custom exceptions for the allocation and sessions contexts."""

from pathlib import Path
from typing import Optional


class ConflictTableError(ValueError):
    """
    Exception raised when the static conflict table is malformed.

    Attributes:
        message: Error description
        entry_index: Position of the offending entry in the table (if known)
        table_path: Path of the YAML file the table was loaded from (if any)
    """

    def __init__(
        self,
        message: str,
        entry_index: Optional[int] = None,
        table_path: Optional[Path] = None,
    ):
        self.message = message
        self.entry_index = entry_index
        self.table_path = table_path

        parts = [message]
        if entry_index is not None:
            parts.append(f"Entry: #{entry_index}")
        if table_path is not None:
            parts.append(f"Conflict table: {table_path}")

        super().__init__("\n".join(parts))


class StaleLedgerWriteError(Exception):
    """
    Exception raised when a ledger commit was computed from an outdated snapshot.

    The session store retries internally; this surfaces only once retries are exhausted.

    Attributes:
        session_id: Session whose record changed underneath the writer
        expected_version: Version the writer read
        actual_version: Version found at write time (None if unknown)
    """

    def __init__(
        self,
        session_id: str,
        expected_version: int,
        actual_version: Optional[int] = None,
    ):
        self.session_id = session_id
        self.expected_version = expected_version
        self.actual_version = actual_version

        message = (
            f"Stale ledger write for session '{session_id}': "
            f"expected version {expected_version}"
        )
        if actual_version is not None:
            message += f", found version {actual_version}"

        super().__init__(message)


class AllocationModeError(Exception):
    """
    Exception raised when a session is driven through the wrong allocation discipline.

    A session is either "interactive" (incremental ledger commits) or "batch"
    (one recorded Allocation), never both.

    Attributes:
        session_id: Session identifier
        session_mode: Mode the session was created with
        attempted_mode: Mode of the rejected operation
    """

    def __init__(self, session_id: str, session_mode: str, attempted_mode: str):
        self.session_id = session_id
        self.session_mode = session_mode
        self.attempted_mode = attempted_mode

        super().__init__(
            f"Session '{session_id}' uses {session_mode} allocation; "
            f"{attempted_mode} operations are not allowed"
        )


class SessionNotFoundError(KeyError):
    """Exception raised when a session id has no ledger record."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")

    def __str__(self) -> str:
        # KeyError would repr() the message
        return self.args[0]
