"""
Batch Allocator

One-shot greedy allocation of ranked candidates to slots.

Rules:
1. Each base content id can be assigned to only ONE slot
   (if CH-05-V2 fills ch-1, then CH-05-V1 and CH-05-V3 are blocked everywhere)
2. Ids paired in the conflict registry block each other across categories
   (if CH-01 fills a highlight slot, P1-B02 is blocked for every bullet slot)
3. Slots fill in priority order; earlier slots get first pick of high-scoring content
4. Within a slot the highest-scoring available candidate wins, ties going to the
   candidate listed first
5. A slot with nothing available is skipped and logged, never an error

The pass is single and forward, so the result is not globally score-optimal: an
early slot may take a candidate a later slot also wanted. Priority order decides
which section wins that contention.
"""

import time
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from curator.contexts.allocation.conflict_registry import ConflictRegistry
from curator.contexts.allocation.content_data_structures import (
    ALL_BLOCKED_REASON,
    NO_CANDIDATES_REASON,
    AllocatedSlot,
    Allocation,
    AllocationAction,
    AllocationLogEntry,
    ScoredCandidate,
    Slot,
)
from curator.contexts.allocation.logger import log_allocation_result, log_slot_decision

# Owner recorded for ids that were consumed before this allocation ran
PRIOR_USE = "earlier session step"


def _rejection_reason(
    candidate: ScoredCandidate,
    used_by: Dict[str, str],
    registry: ConflictRegistry,
) -> Optional[str]:
    """Why a candidate is unavailable, or None if it can be assigned."""
    if candidate.base_id in used_by:
        return f"base id {candidate.base_id} already used by {used_by[candidate.base_id]}"
    if candidate.id in used_by:
        return f"{candidate.id} already blocked by {used_by[candidate.id]}"

    hits = sorted(registry.resolve_conflicts(candidate.id).intersection(used_by))
    if hits:
        owners = ", ".join(f"{hit} ({used_by[hit]})" for hit in hits)
        return f"conflicts with {owners}"

    return None


def _pick_best(available: List[ScoredCandidate]) -> ScoredCandidate:
    # max() keeps the first of equal scores, so ties resolve by input order
    return max(available, key=lambda candidate: candidate.score)


def _order_slots(slots: Iterable[Slot]) -> List[Slot]:
    ordered = sorted(slots, key=lambda slot: slot.priority_rank)

    seen = set()
    for slot in ordered:
        if slot.slot_key in seen:
            raise ValueError(f"Duplicate slot key: {slot.slot_key}")
        seen.add(slot.slot_key)

    return ordered


def allocate_slot(
    slot: Slot,
    used_by: Dict[str, str],
    registry: ConflictRegistry,
) -> Tuple[Optional[AllocatedSlot], AllocationLogEntry]:
    """
    Decide a single slot against the current usage map.

    ``used_by`` maps consumed ids to the slot that consumed them: base ids of
    assigned content, the exact assigned ids (so partners written as one variant
    match only that variant), and any seeded exclusions. On assignment it is
    updated in place.

    Returns:
        (AllocatedSlot or None, log entry)
    """
    candidates = slot.candidates

    if not candidates:
        return None, AllocationLogEntry(
            action=AllocationAction.SKIPPED,
            slot_key=slot.slot_key,
            content_id=None,
            reason=NO_CANDIDATES_REASON,
        )

    available = []
    rejected = {}
    for candidate in candidates:
        reason = _rejection_reason(candidate, used_by, registry)
        if reason is None:
            available.append(candidate)
        else:
            rejected.setdefault(candidate.id, reason)

    if not available:
        return None, AllocationLogEntry(
            action=AllocationAction.SKIPPED,
            slot_key=slot.slot_key,
            content_id=None,
            reason=ALL_BLOCKED_REASON,
            blocked_siblings=[c.id for c in candidates],
            rejected=rejected,
        )

    chosen = _pick_best(available)
    used_by[chosen.base_id] = slot.slot_key
    used_by[chosen.id] = slot.slot_key

    assigned = AllocatedSlot(
        slot_key=slot.slot_key,
        content_id=chosen.id,
        content=chosen.content,
        score=chosen.score,
    )
    entry = AllocationLogEntry(
        action=AllocationAction.ASSIGNED,
        slot_key=slot.slot_key,
        content_id=chosen.id,
        reason=f"Best available (score: {chosen.score:g})",
        score=chosen.score,
        blocked_siblings=[c.id for c in candidates if c is not chosen],
        rejected=rejected,
    )
    return assigned, entry


def allocate(
    slots: Iterable[Slot],
    registry: Optional[ConflictRegistry] = None,
    exclude: FrozenSet[str] = frozenset(),
) -> Allocation:
    """
    Assign at most one candidate to every slot, keeping base ids and conflict pairs exclusive.

    Pure and deterministic: identical input always yields an identical Allocation
    (assignments and log order).

    Args:
        slots: Slots with their ranked candidates (any order; filled by priority_rank)
        registry: Conflict registry (defaults to an empty registry)
        exclude: Ids consumed before this run (e.g., a session ledger's used +
                 blocked ids); candidates touching them are rejected

    Returns:
        Allocation with one assignment (or None) and one log entry per slot

    Raises:
        ValueError: If two slots share a slot key
    """
    if registry is None:
        registry = ConflictRegistry()

    start = time.perf_counter()
    ordered = _order_slots(slots)
    used_by: Dict[str, str] = {base: PRIOR_USE for base in sorted(exclude)}

    allocation = Allocation()
    for slot in ordered:
        assigned, entry = allocate_slot(slot, used_by, registry)
        allocation.assignments[slot.slot_key] = assigned
        allocation.slot_categories[slot.slot_key] = slot.category
        allocation.allocation_log.append(entry)
        log_slot_decision(entry)

    log_allocation_result(allocation, time.perf_counter() - start)
    return allocation
