"""
Pipeline event logging utilities for CURATOR (Tier 2 logging).

Appends session-level events (session creation, ledger commits, recorded
allocations) to a JSON Lines file so that the history of what a session
consumed can be audited independently of the ledger database.

For detailed within-context logging (Tier 1), use curator.utils.logger instead.

Usage:
    from curator.utils.event_logging import log_pipeline_event

    log_pipeline_event(
        event_type="ledger_commit",
        session_id="sess-42",
        source="sessions",
        content_ids=["CH-01"],
        version=3,
    )
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from curator.utils.timestamp import now_exact

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))
PIPELINE_EVENTS_FILE = Path(
    os.getenv("PIPELINE_EVENTS_FILE", str(LOGS_PATH / "curator_pipeline_events.log"))
)

# Event types that change what a session has consumed
MUTATIVE_EVENTS = {"ledger_commit", "allocation_recorded"}


def log_pipeline_event(event_type: str, session_id: str, source: str, **extra_fields) -> None:
    """
    Log an event to the master pipeline event log.

    Events are appended in JSON Lines format (one JSON object per line).

    Args:
        event_type: Type of event (e.g., "session_created", "ledger_commit")
        session_id: Session identifier
        source: Event source (e.g., "sessions", "cli")
        **extra_fields: Additional event-specific fields (must be JSON serializable)
    """
    PIPELINE_EVENTS_FILE.parent.mkdir(parents=True, exist_ok=True)

    event = {
        "timestamp": now_exact(),
        "event_type": event_type,
        "session_id": session_id,
        "source": source,
        **extra_fields,
    }

    with open(PIPELINE_EVENTS_FILE, "a", encoding="utf-8") as f:
        f.write(json.dumps(event) + "\n")


def _read_events() -> List[Dict]:
    if not PIPELINE_EVENTS_FILE.exists():
        return []

    events = []
    with open(PIPELINE_EVENTS_FILE, "r", encoding="utf-8") as f:
        for line in f:
            try:
                events.append(json.loads(line.strip()))
            except json.JSONDecodeError:
                # Skip malformed lines
                continue
    return events


def get_recent_events(
    n: int = 10, session_id: Optional[str] = None, event_type: Optional[str] = None
) -> List[Dict]:
    """
    Get the last n events from the pipeline log, optionally filtered.

    Args:
        n: Number of recent events to return (default: 10)
        session_id: Filter to only events for this session (optional)
        event_type: Filter to only events of this type (optional)

    Returns:
        List of event dicts (most recent last)

    Example:
        # Last 5 commits for a session
        events = get_recent_events(5, session_id="sess-42", event_type="ledger_commit")
    """
    events = _read_events()

    if session_id:
        events = [e for e in events if e.get("session_id") == session_id]

    if event_type:
        events = [e for e in events if e.get("event_type") == event_type]

    return events[-n:] if len(events) > n else events


def consumed_ids_from_events(session_id: str) -> List[str]:
    """
    Replay mutative events to list every content id a session consumed, in order.

    Useful for cross-checking the ledger database against the event history.

    Args:
        session_id: Session identifier

    Returns:
        Content ids in the order they were committed or recorded (duplicates removed)
    """
    seen: Dict[str, None] = {}
    for event in _read_events():
        if event.get("session_id") != session_id:
            continue
        if event.get("event_type") not in MUTATIVE_EVENTS:
            continue
        for content_id in event.get("content_ids", []):
            seen.setdefault(content_id, None)
    return list(seen)
