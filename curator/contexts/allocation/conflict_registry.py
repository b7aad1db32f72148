"""
Conflict Registry

Static, bidirectional table of cross-category id pairs that describe the same
real-world fact (e.g., a career highlight and a position bullet citing the same
metric). Two layers of exclusivity exist:

- "same achievement, different wording" is handled by base-id grouping (identity.base_id)
- "different achievement, same fact" is handled here, by explicit pairs

Pairs are matched on ids exactly as written in the table, on both sides of the
pair. A table entry naming a base id covers every variant of it (callers resolve
variants through ``resolve_conflicts``), while an entry naming one specific variant
neither triggers for, nor blocks, its siblings.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from dotenv import load_dotenv
from omegaconf import OmegaConf

from curator.contexts.allocation.exceptions import ConflictTableError
from curator.contexts.allocation.identity import base_id

load_dotenv()
DEFAULT_CONFLICT_RULES_PATH = Path(__file__).parent / "config" / "conflict_rules.yaml"
CONFLICT_RULES_PATH = Path(os.getenv("CONFLICT_RULES_PATH", str(DEFAULT_CONFLICT_RULES_PATH)))


@dataclass(frozen=True)
class ConflictRule:
    """
    Unordered pair of ids that must never co-occur.

    Attributes:
        id_a: First id (as written in the table)
        id_b: Second id (as written in the table)
        reason: Human-readable explanation, diagnostics only
    """

    id_a: str
    id_b: str
    reason: str = ""

    @property
    def pair(self) -> FrozenSet[str]:
        return frozenset((self.id_a, self.id_b))


class ConflictRegistry:
    """
    Immutable, bidirectionally indexed conflict table.

    Built once (usually from YAML at startup) and injected into the allocator,
    usage ledger and verifier. Lookups are dict hits.

    Example:
        registry = ConflictRegistry.from_yaml()
        registry.conflicts_of("CH-01")        # frozenset({"CH-01", "P1-B02"})
        registry.resolve_conflicts("CH-01-V2")  # same, via the base id "CH-01"
    """

    def __init__(self, rules: Iterable[ConflictRule] = ()):
        self._rules: Tuple[ConflictRule, ...] = tuple(rules)
        self._partners: Dict[str, Set[str]] = {}
        self._reasons: Dict[FrozenSet[str], str] = {}

        for rule in self._rules:
            self._partners.setdefault(rule.id_a, set()).add(rule.id_b)
            self._partners.setdefault(rule.id_b, set()).add(rule.id_a)
            self._reasons.setdefault(rule.pair, rule.reason)

        # Precomputed answers for conflicts_of(): own base id plus partners as written
        self._conflicts: Dict[str, FrozenSet[str]] = {
            content_id: frozenset({base_id(content_id)} | partners)
            for content_id, partners in self._partners.items()
        }

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_entries(
        cls, entries: List[Dict[str, Any]], table_path: Optional[Path] = None
    ) -> "ConflictRegistry":
        """
        Build a registry from plain {id_a, id_b, reason} mappings.

        Raises:
            ConflictTableError: If an entry is missing an id, has an empty id,
                                or pairs an id with itself
        """
        rules = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ConflictTableError(
                    f"Conflict entry must be a mapping, got {type(entry).__name__}",
                    entry_index=index,
                    table_path=table_path,
                )

            id_a = str(entry.get("id_a") or "").strip()
            id_b = str(entry.get("id_b") or "").strip()

            if not id_a or not id_b:
                raise ConflictTableError(
                    "Conflict entry requires non-empty 'id_a' and 'id_b'",
                    entry_index=index,
                    table_path=table_path,
                )
            if id_a == id_b:
                raise ConflictTableError(
                    f"Conflict entry pairs '{id_a}' with itself",
                    entry_index=index,
                    table_path=table_path,
                )

            rules.append(ConflictRule(id_a=id_a, id_b=id_b, reason=str(entry.get("reason") or "")))

        return cls(rules)

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "ConflictRegistry":
        """
        Load the conflict table from YAML (top-level ``conflicts:`` list).

        Args:
            path: Table location (defaults to CONFLICT_RULES_PATH from environment,
                  falling back to the bundled table)

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConflictTableError: If the table is malformed
        """
        if path is None:
            path = CONFLICT_RULES_PATH

        if not path.exists():
            raise FileNotFoundError(f"Conflict table not found at {path}")

        data = OmegaConf.to_container(OmegaConf.load(path), resolve=True) or {}
        if not isinstance(data, dict) or not isinstance(data.get("conflicts", []), list):
            raise ConflictTableError(
                "Conflict table must contain a 'conflicts' list", table_path=path
            )

        return cls.from_entries(data.get("conflicts") or [], table_path=path)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def rules(self) -> Tuple[ConflictRule, ...]:
        return self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def partners_of(self, content_id: str) -> FrozenSet[str]:
        """Ids paired with ``content_id`` in the table (exact match, as written)."""
        return frozenset(self._partners.get(content_id, ()))

    def conflicts_of(self, content_id: str) -> FrozenSet[str]:
        """
        Ids that become unavailable once ``content_id`` is consumed.

        Always includes the id's own base id. Partners are returned as written in
        the table: a base id blocks every variant of that achievement, a variant id
        blocks only that variant. Table entries are matched on the exact id given;
        see resolve_conflicts() for variant-aware lookup.
        """
        conflicts = self._conflicts.get(content_id)
        if conflicts is None:
            return frozenset({base_id(content_id)})
        return conflicts

    def resolve_conflicts(self, content_id: str) -> FrozenSet[str]:
        """
        Conflicts of an id together with those of its base id.

        This is the lookup the allocator and ledger use: a table entry on "CH-01"
        applies to "CH-01-V2", but an entry on "CH-01-V2" does not apply to "CH-01-V3".
        Compare the result against consumed ids by exact membership (base ids of
        used content plus the exact ids of used content).
        """
        return self.conflicts_of(content_id) | self.conflicts_of(base_id(content_id))

    def all_conflicts(self, content_ids: Iterable[str]) -> FrozenSet[str]:
        """Union of resolve_conflicts() over several ids."""
        blocked: Set[str] = set()
        for content_id in content_ids:
            blocked |= self.resolve_conflicts(content_id)
        return frozenset(blocked)

    def reason_for(self, id_a: str, id_b: str) -> Optional[str]:
        """Reason recorded for a pair (either order), or None if the ids are not paired."""
        return self._reasons.get(frozenset((id_a, id_b)))
