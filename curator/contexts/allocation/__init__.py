"""
Allocation Context

Responsibilities:
- Resolves the base identity of content atoms (variant grouping)
- Holds the static conflict registry of cross-category pairs
- Allocates ranked candidates to resume slots with greedy, exclusive selection
- Tracks consumed identities across an interactive session (usage ledger)
- Verifies that final output holds no duplicate identity or conflict pair

Owns: Content identity, exclusivity rules, slot allocation, allocation diagnostics
Never: Computes relevance scores, rewrites prose, or persists session records
"""

from curator.contexts.allocation.allocator import allocate
from curator.contexts.allocation.conflict_registry import ConflictRegistry, ConflictRule
from curator.contexts.allocation.content_data_structures import (
    ALL_BLOCKED_REASON,
    NO_CANDIDATES_REASON,
    AllocatedSlot,
    Allocation,
    AllocationAction,
    AllocationLogEntry,
    ContentAtom,
    ScoredCandidate,
    Slot,
)
from curator.contexts.allocation.identity import base_id, parse_content_id
from curator.contexts.allocation.interactive import approve_section, propose_section
from curator.contexts.allocation.slot_plan import (
    SlotPlanConfig,
    build_slots,
    load_slot_plan_config,
    plan_slots,
    slots_for_section,
)
from curator.contexts.allocation.usage_ledger import UsageLedger
from curator.contexts.allocation.verifier import (
    ConflictViolation,
    DuplicateBaseId,
    VerificationReport,
    get_allocation_summary,
    verify_allocation,
    verify_no_conflicts,
    verify_no_duplicates,
)

__all__ = [
    # Identity
    "base_id",
    "parse_content_id",
    # Conflict registry
    "ConflictRegistry",
    "ConflictRule",
    # Data structures
    "ContentAtom",
    "ScoredCandidate",
    "Slot",
    "AllocatedSlot",
    "Allocation",
    "AllocationAction",
    "AllocationLogEntry",
    "NO_CANDIDATES_REASON",
    "ALL_BLOCKED_REASON",
    # Slot planning
    "SlotPlanConfig",
    "build_slots",
    "load_slot_plan_config",
    "plan_slots",
    "slots_for_section",
    # Allocation
    "allocate",
    "UsageLedger",
    "propose_section",
    "approve_section",
    # Verification
    "ConflictViolation",
    "DuplicateBaseId",
    "VerificationReport",
    "get_allocation_summary",
    "verify_allocation",
    "verify_no_conflicts",
    "verify_no_duplicates",
]
