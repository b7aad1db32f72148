"""
Interactive Section Proposals

In the interactive flow the user approves one resume section at a time. For each
section the ranker is queried with the ledger's blocked ids as an exclusion
filter, the same greedy allocator picks candidates (seeded with everything the
session already consumed), and the proposal is committed to the ledger only
once the user approves it.
"""

from typing import Callable, FrozenSet, List

from curator.contexts.allocation.allocator import allocate
from curator.contexts.allocation.content_data_structures import Allocation, ScoredCandidate, Slot
from curator.contexts.allocation.logger import _log_debug, _log_info
from curator.contexts.allocation.usage_ledger import UsageLedger

# Ranker boundary: (slot to fill, base ids to exclude) -> candidates, any order
CandidateRanker = Callable[[Slot, FrozenSet[str]], List[ScoredCandidate]]


def propose_section(
    slots: List[Slot], ranker: CandidateRanker, ledger: UsageLedger
) -> Allocation:
    """
    Propose content for one section without changing the ledger.

    The exclusion set passed to the ranker saves it from ranking blocked content;
    the allocator re-checks every candidate anyway, so a ranker that ignores the
    filter still cannot break exclusivity.

    Args:
        slots: The section's slots (candidates, if any, are replaced)
        ranker: Candidate source for each slot
        ledger: The session's usage ledger

    Returns:
        Allocation for the section's slots
    """
    exclude = ledger.consumed_ids()
    _log_debug(f"Ranking {len(slots)} slot(s) excluding {len(exclude)} base id(s)")

    filled = [
        Slot(
            slot_key=slot.slot_key,
            category=slot.category,
            priority_rank=slot.priority_rank,
            candidates=list(ranker(slot, exclude)),
            position_number=slot.position_number,
        )
        for slot in slots
    ]
    return allocate(filled, ledger.registry, exclude=exclude)


def approve_section(ledger: UsageLedger, proposal: Allocation) -> FrozenSet[str]:
    """
    Commit an approved proposal to an in-memory ledger.

    Returns:
        The ledger's blocked set after the commit
    """
    content_ids = proposal.used_content_ids()
    blocked = ledger.commit(content_ids)
    _log_info(f"Approved {len(content_ids)} item(s); {len(blocked)} base id(s) now blocked")
    return blocked
