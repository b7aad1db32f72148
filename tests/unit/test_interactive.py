"""Unit tests for interactive section proposals."""

import pytest

from curator.contexts.allocation import (
    ContentAtom,
    ScoredCandidate,
    UsageLedger,
    approve_section,
    plan_slots,
    propose_section,
    slots_for_section,
    verify_allocation,
)
from curator.contexts.allocation.identity import HIGHLIGHT, POSITION_BULLET

RANKED = {
    "ch-1": [("CH-05-V1", 9.0), ("CH-01", 8.0)],
    "ch-2": [("CH-05-V2", 9.0), ("CH-01", 4.0)],
    "p1-bullet-1": [("P1-B02", 10.0), ("P1-B05", 3.0)],
    "p1-bullet-2": [("P1-B05-V2", 6.0), ("P1-B06", 5.0)],
}


class RecordingRanker:
    """Fake ranker returning fixed candidates and recording the exclusions it saw."""

    def __init__(self, honour_exclusions=True):
        self.honour_exclusions = honour_exclusions
        self.calls = []

    def __call__(self, slot, exclude):
        self.calls.append((slot.slot_key, exclude))
        candidates = [
            ScoredCandidate(ContentAtom.from_id(content_id), score)
            for content_id, score in RANKED.get(slot.slot_key, [])
        ]
        if self.honour_exclusions:
            candidates = [c for c in candidates if c.base_id not in exclude]
        return candidates


def _sections():
    slots = plan_slots()
    highlights = slots_for_section(slots, HIGHLIGHT)[:2]
    bullets = slots_for_section(slots, POSITION_BULLET, 1)[:2]
    return highlights, bullets


@pytest.mark.unit
def test_proposal_does_not_touch_ledger(registry):
    """Test that proposing a section leaves the ledger unchanged."""
    ledger = UsageLedger(registry)
    highlights, _ = _sections()

    proposal = propose_section(highlights, RecordingRanker(), ledger)

    assert proposal.used_content_ids() == ["CH-05-V1", "CH-01"]
    assert ledger.version == 0
    assert ledger.consumed_ids() == frozenset()


@pytest.mark.unit
def test_approved_section_blocks_later_sections(registry):
    """Test that the next section is ranked and allocated against approved content."""
    ledger = UsageLedger(registry)
    ranker = RecordingRanker()
    highlights, bullets = _sections()

    approve_section(ledger, propose_section(highlights, ranker, ledger))
    proposal = propose_section(bullets, ranker, ledger)

    assert ranker.calls[-1][1] == frozenset({"CH-05", "CH-01", "P1-B02"})
    assert proposal.get("p1-bullet-1").content_id == "P1-B05"
    assert proposal.get("p1-bullet-2").content_id == "P1-B06"


@pytest.mark.unit
def test_ranker_ignoring_exclusions_cannot_break_exclusivity(registry):
    """Test that the allocator re-checks candidates returned by a careless ranker."""
    ledger = UsageLedger(registry)
    ranker = RecordingRanker(honour_exclusions=False)
    highlights, bullets = _sections()

    first = propose_section(highlights, ranker, ledger)
    approve_section(ledger, first)
    second = propose_section(bullets, ranker, ledger)
    approve_section(ledger, second)

    combined = {**first.to_dict()["assignments"], **second.to_dict()["assignments"]}
    mapping = {key: (value or {}).get("content_id") for key, value in combined.items()}

    assert verify_allocation(mapping, registry).valid
    assert "P1-B02" not in second.used_content_ids()


@pytest.mark.unit
def test_approve_returns_blocked_set(registry):
    """Test the blocked set returned after approval."""
    ledger = UsageLedger(registry)
    highlights, _ = _sections()

    blocked = approve_section(ledger, propose_section(highlights, RecordingRanker(), ledger))

    assert blocked == frozenset({"CH-05", "CH-01", "P1-B02"})
    assert ledger.version == 1
