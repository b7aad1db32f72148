"""
Integration tests for the SQLite session ledger store.
Tests: session records -> commits / recorded allocations -> ledger state and event log.
"""

import threading

import pytest

from curator.contexts.allocation import ContentAtom, ScoredCandidate, Slot, allocate
from curator.contexts.allocation.exceptions import (
    AllocationModeError,
    SessionNotFoundError,
    StaleLedgerWriteError,
)
from curator.contexts.allocation.identity import HIGHLIGHT, POSITION_BULLET
from curator.contexts.sessions import BATCH, INTERACTIVE, SessionLedgerStore
from curator.utils.event_logging import consumed_ids_from_events, get_recent_events


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "sessions" / "ledger.db"


@pytest.fixture
def store(db_path, registry):
    return SessionLedgerStore(db_path=db_path, registry=registry)


def _batch_allocation(registry):
    slots = [
        Slot("ch-1", HIGHLIGHT, 0, [ScoredCandidate(ContentAtom.from_id("CH-01-V2"), 5.0)]),
        Slot(
            "p1-bullet-1",
            POSITION_BULLET,
            1,
            [ScoredCandidate(ContentAtom.from_id("P1-B02"), 9.0)],
            position_number=1,
        ),
    ]
    return allocate(slots, registry)


@pytest.mark.integration
def test_create_and_get_session(store):
    """Test creating an empty session record."""
    record = store.create_session("sess-1")

    assert record.mode == INTERACTIVE
    assert record.version == 0
    assert record.used_base_ids == []
    assert record.blocked_base_ids == []
    assert record.created_at == record.updated_at
    assert store.session_exists("sess-1")
    assert not store.session_exists("sess-2")


@pytest.mark.integration
def test_create_session_rejects_unknown_mode_and_duplicates(store):
    """Test create_session validation."""
    with pytest.raises(ValueError, match="Unknown session mode"):
        store.create_session("sess-1", mode="hybrid")

    store.create_session("sess-1")
    with pytest.raises(ValueError, match="already exists"):
        store.create_session("sess-1", mode=BATCH)


@pytest.mark.integration
def test_missing_session(store):
    """Test that operations on an unknown session raise SessionNotFoundError."""
    with pytest.raises(SessionNotFoundError) as exc_info:
        store.get_session("nope")
    assert str(exc_info.value) == "Session not found: nope"
    with pytest.raises(SessionNotFoundError):
        store.commit("nope", ["CH-01"])


@pytest.mark.integration
def test_commit_blocks_partners_and_persists(store, db_path, registry):
    """Test that a commit is visible to a fresh store on the same database."""
    store.create_session("sess-1")

    blocked = store.commit("sess-1", ["CH-01-V2"])

    assert blocked == frozenset({"CH-01", "P1-B02"})

    reopened = SessionLedgerStore(db_path=db_path, registry=registry)
    record = reopened.get_session("sess-1")
    assert record.version == 1
    assert record.used_base_ids == ["CH-01"]
    assert record.used_content_ids == ["CH-01-V2"]
    assert not reopened.is_available("sess-1", "P1-B02")
    assert reopened.blocked_ids("sess-1") == blocked


@pytest.mark.integration
def test_successive_commits_accumulate(store):
    """Test incremental section approvals on one session."""
    store.create_session("sess-1")

    store.commit("sess-1", ["SUM-01", "CH-01"])
    store.commit("sess-1", ["CH-01", "P2-B05"])
    store.commit("sess-1", [])

    record = store.get_session("sess-1")
    assert record.version == 2
    assert record.used_content_ids == ["SUM-01", "CH-01", "P2-B05"]
    assert store.load_ledger("sess-1").version == 2


@pytest.mark.integration
def test_modes_are_not_mixed(store, registry):
    """Test that batch and interactive operations stay on their own sessions."""
    store.create_session("inter", mode=INTERACTIVE)
    store.create_session("batch", mode=BATCH)

    with pytest.raises(AllocationModeError) as exc_info:
        store.commit("batch", ["CH-01"])
    assert exc_info.value.session_mode == BATCH

    with pytest.raises(AllocationModeError):
        store.record_allocation("inter", _batch_allocation(registry))


@pytest.mark.integration
def test_record_allocation_once(store, registry):
    """Test that a batch session records exactly one allocation."""
    store.create_session("batch", mode=BATCH)
    allocation = _batch_allocation(registry)

    record = store.record_allocation("batch", allocation)

    assert record.version == 1
    assert record.used_content_ids == ["CH-01-V2"]
    assert set(record.blocked_base_ids) == {"CH-01", "P1-B02"}

    with pytest.raises(ValueError, match="already recorded"):
        store.record_allocation("batch", allocation)


@pytest.mark.integration
def test_concurrent_commits_on_shared_store(store):
    """Test that overlapping commits through one store are serialized."""
    store.create_session("sess-1")
    ids = [f"P3-B{i:02d}" for i in range(16)]
    barrier = threading.Barrier(len(ids))

    def worker(content_id):
        barrier.wait()
        store.commit("sess-1", [content_id])

    threads = [threading.Thread(target=worker, args=(content_id,)) for content_id in ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    record = store.get_session("sess-1")
    assert record.version == len(ids)
    assert set(record.used_base_ids) == set(ids)


@pytest.mark.integration
def test_concurrent_commits_from_separate_stores(db_path, registry):
    """Test that writers without a shared lock retry instead of losing updates."""
    SessionLedgerStore(db_path=db_path, registry=registry).create_session("sess-1")
    ids = [f"P5-B{i:02d}" for i in range(6)]
    errors = []

    def worker(content_id):
        writer = SessionLedgerStore(db_path=db_path, registry=registry, max_retries=len(ids))
        try:
            writer.commit("sess-1", [content_id])
        except StaleLedgerWriteError as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(content_id,)) for content_id in ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    record = SessionLedgerStore(db_path=db_path, registry=registry).get_session("sess-1")
    assert errors == []
    assert record.version == len(ids)
    assert set(record.used_base_ids) == set(ids)


@pytest.mark.integration
def test_stale_write_is_retried_against_fresh_state(store, db_path, registry, monkeypatch):
    """Test that a commit racing another writer re-reads and keeps both updates."""
    store.create_session("sess-1")
    other = SessionLedgerStore(db_path=db_path, registry=registry)
    real_write = store._write
    raced = []

    def racing_write(*args, **kwargs):
        if not raced:
            raced.append(True)
            other.commit("sess-1", ["SUM-01"])
        return real_write(*args, **kwargs)

    monkeypatch.setattr(store, "_write", racing_write)

    blocked = store.commit("sess-1", ["CH-01"])

    assert blocked == frozenset({"SUM-01", "CH-01", "P1-B02"})
    record = store.get_session("sess-1")
    assert record.version == 2
    assert record.used_content_ids == ["SUM-01", "CH-01"]


@pytest.mark.integration
def test_stale_write_raises_after_retries(store, monkeypatch):
    """Test StaleLedgerWriteError once every retry loses the race."""
    store.create_session("sess-1")
    attempts = []

    def always_stale(*args, **kwargs):
        attempts.append(True)
        return False

    monkeypatch.setattr(store, "_write", always_stale)

    with pytest.raises(StaleLedgerWriteError) as exc_info:
        store.commit("sess-1", ["CH-01"])

    assert len(attempts) == store.max_retries + 1
    assert exc_info.value.expected_version == 0
    assert exc_info.value.actual_version == 0
    assert store.get_session("sess-1").version == 0


@pytest.mark.integration
def test_list_sessions(store):
    """Test listing sessions in creation order."""
    store.create_session("a")
    store.create_session("b", mode=BATCH)

    records = store.list_sessions()
    assert [(r.session_id, r.mode) for r in records] == [("a", INTERACTIVE), ("b", BATCH)]


@pytest.mark.integration
def test_pipeline_events_recorded(store, registry, isolated_event_log):
    """Test that session events land in the pipeline event log."""
    store.create_session("inter")
    store.commit("inter", ["CH-01", "SUM-02"])
    store.create_session("batch", mode=BATCH)
    store.record_allocation("batch", _batch_allocation(registry))

    assert isolated_event_log.exists()
    inter_events = get_recent_events(session_id="inter")
    assert [e["event_type"] for e in inter_events] == ["session_created", "ledger_commit"]
    assert inter_events[-1]["version"] == 1

    recorded = get_recent_events(session_id="batch", event_type="allocation_recorded")
    assert recorded[0]["unassigned_slots"] == ["p1-bullet-1"]

    assert consumed_ids_from_events("inter") == ["CH-01", "SUM-02"]
    assert consumed_ids_from_events("batch") == ["CH-01-V2"]


@pytest.mark.integration
def test_session_locks_are_released(store):
    """Test that per-session locks do not accumulate once commits finish."""
    for i in range(5):
        session_id = f"sess-{i}"
        store.create_session(session_id)
        store.commit(session_id, ["SUM-01"])

    assert len(store._locks) == 0
