"""
Usage Ledger

Per-session record of which base identities have been consumed (used) and which
ids are unavailable (blocked: used base ids plus their conflict partners). Blocked
partners are kept as the conflict table writes them, so a partner named as one
specific variant blocks only that variant. Drives the
interactive flow where sections are approved one at a time across requests.

The ledger only ever grows: an approved section's identities stay consumed for
the life of the session. It is a low-level store, not a policy enforcer, so
``commit`` accepts ids that are already blocked; validation belongs to the
allocator and verifier.
"""

import threading
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from curator.contexts.allocation.conflict_registry import ConflictRegistry
from curator.contexts.allocation.content_data_structures import ScoredCandidate
from curator.contexts.allocation.identity import base_id


class UsageLedger:
    """
    Thread-safe used/blocked base-id sets for one session.

    ``commit`` is the only mutator and runs as a single critical section, so two
    overlapping commits on the same ledger object cannot each read the pre-update
    blocked set. Cross-process serialization is the session store's job.

    Example:
        ledger = UsageLedger(ConflictRegistry.from_yaml())
        ledger.commit(["CH-01"])            # frozenset({"CH-01", "P1-B02"})
        ledger.is_available("P1-B02")       # False
    """

    def __init__(
        self,
        registry: Optional[ConflictRegistry] = None,
        used_base_ids: Iterable[str] = (),
        blocked_base_ids: Iterable[str] = (),
        version: int = 0,
    ):
        self._registry = registry if registry is not None else ConflictRegistry()
        self._used = set(used_base_ids)
        self._blocked = set(blocked_base_ids)
        self._version = version
        self._lock = threading.RLock()

    @property
    def registry(self) -> ConflictRegistry:
        return self._registry

    @property
    def version(self) -> int:
        """Number of non-empty commits applied since the ledger was created."""
        with self._lock:
            return self._version

    def used_base_ids(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._used)

    def blocked_ids(self) -> FrozenSet[str]:
        """
        Snapshot of blocked ids (base ids, or exact variant ids where the conflict
        table names one).

        Pass this to the ranker as an exclusion filter so it never spends a rank
        on content that is already unavailable.
        """
        with self._lock:
            return frozenset(self._blocked)

    def consumed_ids(self) -> FrozenSet[str]:
        """Union of used and blocked base ids (everything a new candidate must avoid)."""
        with self._lock:
            return frozenset(self._used | self._blocked)

    def is_available(self, content_id: str) -> bool:
        """
        True iff neither the id, its base id, nor any of its conflicts is used or blocked.
        """
        with self._lock:
            consumed = self._used | self._blocked
            if content_id in consumed or base_id(content_id) in consumed:
                return False
            return not self._registry.resolve_conflicts(content_id).intersection(consumed)

    def filter_available(self, candidates: Iterable[ScoredCandidate]) -> List[ScoredCandidate]:
        """Keep only candidates that are still available, preserving order."""
        with self._lock:
            return [c for c in candidates if self.is_available(c.id)]

    def commit(self, content_ids: Iterable[str]) -> FrozenSet[str]:
        """
        Mark ids as used and block their conflicts.

        Never fails: ids that are already blocked are committed anyway.

        Args:
            content_ids: Approved content ids (variants allowed)

        Returns:
            The full blocked set after the commit
        """
        content_ids = list(content_ids)

        with self._lock:
            if not content_ids:
                return frozenset(self._blocked)

            self._used.update(base_id(content_id) for content_id in content_ids)
            self._blocked.update(self._registry.all_conflicts(content_ids))
            self._version += 1
            return frozenset(self._blocked)

    def copy(self) -> "UsageLedger":
        with self._lock:
            return UsageLedger(self._registry, self._used, self._blocked, self._version)

    # ------------------------------------------------------------------
    # Serialization (two flat string lists for any session record)
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "used_base_ids": sorted(self._used),
                "blocked_base_ids": sorted(self._blocked),
            }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        registry: Optional[ConflictRegistry] = None,
        version: int = 0,
    ) -> "UsageLedger":
        """
        Rebuild a ledger from its serialized form.

        Missing keys are treated as empty lists (a freshly created session).
        """
        return cls(
            registry=registry,
            used_base_ids=data.get("used_base_ids") or [],
            blocked_base_ids=data.get("blocked_base_ids") or [],
            version=version,
        )
