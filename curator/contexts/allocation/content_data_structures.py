"""
Allocation Data Structures

Defines the data classes that flow through the allocation context: content atoms,
scored candidates supplied by the external ranker, slots, and the Allocation
result with its decision log.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from curator.contexts.allocation.identity import base_id, parse_content_id


class AllocationAction(Enum):
    """Outcome of a single slot decision."""

    ASSIGNED = "assigned"
    SKIPPED = "skipped"


# Skip reasons (AllocationExhausted): kept distinct so diagnostics can tell
# "no data" apart from "fully blocked"
NO_CANDIDATES_REASON = "no candidates available"
ALL_BLOCKED_REASON = "all candidates blocked by earlier slots"


@dataclass(frozen=True)
class ContentAtom:
    """
    Immutable unit of candidate text from the content bank.

    Attributes:
        id: Content id (e.g., "CH-05-V2")
        content: Raw text, never mutated by the allocation context
        category: summary, highlight, position-overview or position-bullet (None if unknown)
        position_number: Position for position-scoped categories
        tags: Classification labels (industry, function, theme), opaque to allocation
    """

    id: str
    content: str = ""
    category: Optional[str] = None
    position_number: Optional[int] = None
    tags: Dict[str, Tuple[str, ...]] = field(default_factory=dict, compare=False)

    @property
    def base_id(self) -> str:
        return base_id(self.id)

    @classmethod
    def from_id(cls, content_id: str, content: str = "", **kwargs) -> "ContentAtom":
        """Build an atom, inferring category and position from the id when not given."""
        parts = parse_content_id(content_id)
        kwargs.setdefault("category", parts.category)
        kwargs.setdefault("position_number", parts.position_number)
        return cls(id=content_id, content=content, **kwargs)


@dataclass(frozen=True)
class ScoredCandidate:
    """
    A content atom offered for one slot, with the ranker's relevance score.

    Attributes:
        atom: The candidate content atom
        score: Relevance score (higher is better), final as supplied
        matched_tags: Tags the ranker matched against the job description
    """

    atom: ContentAtom
    score: float
    matched_tags: Tuple[str, ...] = ()

    @property
    def id(self) -> str:
        return self.atom.id

    @property
    def content(self) -> str:
        return self.atom.content

    @property
    def base_id(self) -> str:
        return self.atom.base_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoredCandidate":
        """
        Build a candidate from a ranker record: {id, content, score, matched_tags}.

        Raises:
            ValueError: If id is missing or not a string, or score is not numeric
        """
        content_id = data.get("id")
        if isinstance(content_id, int) and not isinstance(content_id, bool):
            # YAML reads a bare numeric id as an int
            content_id = str(content_id)
        if not isinstance(content_id, str) or not content_id:
            raise ValueError(f"Candidate needs a non-empty string 'id': {data}")

        try:
            score = float(data.get("score", 0))
        except (TypeError, ValueError) as e:
            raise ValueError(
                f"Candidate '{content_id}' has non-numeric score: {data.get('score')!r}"
            ) from e

        return cls(
            atom=ContentAtom.from_id(content_id, str(data.get("content", ""))),
            score=score,
            matched_tags=tuple(data.get("matched_tags") or ()),
        )


@dataclass
class Slot:
    """
    A single allocation target in the output resume.

    Attributes:
        slot_key: Unique slot name (e.g., "ch-3", "p1-bullet-2")
        category: Content category the slot holds
        priority_rank: Fill order (lower fills first)
        candidates: Candidates offered for this slot by the ranker
        position_number: Position for position-scoped slots
    """

    slot_key: str
    category: str
    priority_rank: int
    candidates: List[ScoredCandidate] = field(default_factory=list)
    position_number: Optional[int] = None


@dataclass(frozen=True)
class AllocatedSlot:
    """Content assigned to one slot."""

    slot_key: str
    content_id: str
    content: str
    score: float

    @property
    def base_id(self) -> str:
        return base_id(self.content_id)


@dataclass
class AllocationLogEntry:
    """
    One decision in the allocation log.

    Attributes:
        action: ASSIGNED or SKIPPED
        slot_key: Slot the decision is about
        content_id: Chosen content id (None when skipped)
        reason: Human-readable explanation
        score: Score of the chosen candidate (None when skipped)
        blocked_siblings: Every other candidate id offered for the slot, in input order
        rejected: Candidate id -> why it was unavailable (base id used, or conflict)
    """

    action: AllocationAction
    slot_key: str
    content_id: Optional[str]
    reason: str
    score: Optional[float] = None
    blocked_siblings: List[str] = field(default_factory=list)
    rejected: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "slot": self.slot_key,
            "content_id": self.content_id,
            "reason": self.reason,
            "score": self.score,
            "blocked_siblings": list(self.blocked_siblings),
            "rejected": dict(self.rejected),
        }


@dataclass
class Allocation:
    """
    Aggregate allocation result.

    Attributes:
        assignments: slot_key -> AllocatedSlot, or None for unassigned slots.
                     Insertion order follows slot priority.
        allocation_log: One entry per slot, in fill order
        slot_categories: slot_key -> category, for grouping results by section
    """

    assignments: Dict[str, Optional[AllocatedSlot]] = field(default_factory=dict)
    allocation_log: List[AllocationLogEntry] = field(default_factory=list)
    slot_categories: Dict[str, str] = field(default_factory=dict)

    def assigned_slots(self) -> List[AllocatedSlot]:
        return [slot for slot in self.assignments.values() if slot is not None]

    def unassigned_slot_keys(self) -> List[str]:
        return [key for key, slot in self.assignments.items() if slot is None]

    def get(self, slot_key: str) -> Optional[AllocatedSlot]:
        return self.assignments.get(slot_key)

    def by_category(self, category: str) -> List[AllocatedSlot]:
        """Assigned slots of one category, in priority order."""
        return [
            slot
            for key, slot in self.assignments.items()
            if slot is not None and self.slot_categories.get(key) == category
        ]

    def used_content_ids(self) -> List[str]:
        """
        Content ids consumed by this allocation, in priority order.

        This is the authoritative record of what was used; persist it as the
        session's used content ids.
        """
        return [slot.content_id for slot in self.assigned_slots()]

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view (stable key order) for YAML/JSON output."""
        return {
            "assignments": {
                key: (
                    None
                    if slot is None
                    else {
                        "content_id": slot.content_id,
                        "content": slot.content,
                        "score": slot.score,
                    }
                )
                for key, slot in self.assignments.items()
            },
            "allocation_log": [entry.to_dict() for entry in self.allocation_log],
        }
