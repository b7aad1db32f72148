"""
Allocation Verifier

Post-hoc checks that no base identity, and no conflict pair, is claimed by more
than one slot. Used as the correctness oracle in tests and as a runtime sanity
check before content is handed to the rewriting/export stage.

Problems are reported, never raised: by the time they are detectable the content
already exists, and a human or downstream process decides whether to regenerate.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

from curator.contexts.allocation.conflict_registry import ConflictRegistry
from curator.contexts.allocation.content_data_structures import Allocation, AllocationAction
from curator.contexts.allocation.identity import base_id
from curator.contexts.allocation.logger import log_verification_result

# Either an Allocation, or any slot_key -> content_id mapping assembled elsewhere
Assignments = Union[Allocation, Mapping[str, Optional[str]]]


@dataclass
class DuplicateBaseId:
    """A base id claimed by more than one slot."""

    base_id: str
    slots: List[str]


@dataclass
class ConflictViolation:
    """Two registry-paired ids both present in the output."""

    id_a: str
    id_b: str
    slots: List[str]
    reason: str = ""


@dataclass
class VerificationReport:
    """Combined verifier findings."""

    duplicates: List[DuplicateBaseId] = field(default_factory=list)
    conflicts: List[ConflictViolation] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.duplicates and not self.conflicts


def _content_ids_by_slot(assignments: Assignments) -> Dict[str, str]:
    if isinstance(assignments, Allocation):
        return {slot.slot_key: slot.content_id for slot in assignments.assigned_slots()}
    return {key: content_id for key, content_id in assignments.items() if content_id}


def verify_no_duplicates(assignments: Assignments) -> VerificationReport:
    """
    Group every assigned id by base id; any base id held by two slots is a duplicate.

    Overview slots share the identity space with every other slot and are included.

    Args:
        assignments: Allocation, or a slot_key -> content_id mapping

    Returns:
        VerificationReport with duplicates filled in (conflicts left empty)
    """
    slots_by_base: Dict[str, List[str]] = defaultdict(list)
    for slot_key, content_id in _content_ids_by_slot(assignments).items():
        slots_by_base[base_id(content_id)].append(slot_key)

    duplicates = [
        DuplicateBaseId(base_id=base, slots=slots)
        for base, slots in slots_by_base.items()
        if len(slots) > 1
    ]
    return VerificationReport(duplicates=duplicates)


def _matches(content_id: str, table_id: str) -> bool:
    # A table entry names an exact id; a base-id entry also covers its variants
    return content_id == table_id or base_id(content_id) == table_id


def verify_no_conflicts(
    assignments: Assignments, registry: ConflictRegistry
) -> VerificationReport:
    """
    Report every registry pair whose two members both appear among assigned content.

    Works on content that never went through the allocator (e.g., free-form
    generation), which is where ConflictViolations come from.

    Args:
        assignments: Allocation, or a slot_key -> content_id mapping
        registry: Conflict registry to check against

    Returns:
        VerificationReport with conflicts filled in (duplicates left empty)
    """
    by_slot = _content_ids_by_slot(assignments)
    violations = []

    for rule in registry.rules:
        slots_a = [key for key, content_id in by_slot.items() if _matches(content_id, rule.id_a)]
        slots_b = [key for key, content_id in by_slot.items() if _matches(content_id, rule.id_b)]
        if any(key_a != key_b for key_a in slots_a for key_b in slots_b):
            violations.append(
                ConflictViolation(
                    id_a=rule.id_a,
                    id_b=rule.id_b,
                    slots=slots_a + [key for key in slots_b if key not in slots_a],
                    reason=rule.reason,
                )
            )

    return VerificationReport(conflicts=violations)


def verify_allocation(
    assignments: Assignments, registry: Optional[ConflictRegistry] = None
) -> VerificationReport:
    """
    Run both checks and log the findings.

    Args:
        assignments: Allocation, or a slot_key -> content_id mapping
        registry: Conflict registry (duplicates only if omitted)

    Returns:
        VerificationReport; ``report.valid`` is True when nothing was found
    """
    report = verify_no_duplicates(assignments)
    if registry is not None:
        report.conflicts = verify_no_conflicts(assignments, registry).conflicts

    log_verification_result(report)
    return report


def get_allocation_summary(allocation: Allocation) -> Dict[str, int]:
    """
    Slot counts for diagnostics.

    Returns:
        Dict with total_slots, assigned_slots, skipped_slots and unique_base_ids
    """
    assigned = sum(1 for e in allocation.allocation_log if e.action is AllocationAction.ASSIGNED)
    skipped = sum(1 for e in allocation.allocation_log if e.action is AllocationAction.SKIPPED)

    return {
        "total_slots": assigned + skipped,
        "assigned_slots": assigned,
        "skipped_slots": skipped,
        "unique_base_ids": len({slot.base_id for slot in allocation.assigned_slots()}),
    }
