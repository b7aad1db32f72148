"""
Sessions Context

Responsibilities:
- Persists each session's usage ledger as flat lists of base ids
- Serializes ledger commits per session (in-process lock + optimistic version check)
- Fixes each session to one allocation discipline (interactive or batch)
- Records the content ids a session consumed

Owns: Session ledger records, commit atomicity, session mode enforcement
Never: Decides which content fills a slot
"""

from curator.contexts.sessions.session_store import (
    BATCH,
    INTERACTIVE,
    SESSION_MODES,
    SessionLedgerStore,
    SessionRecord,
)

__all__ = [
    "BATCH",
    "INTERACTIVE",
    "SESSION_MODES",
    "SessionLedgerStore",
    "SessionRecord",
]
