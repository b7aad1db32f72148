"""
Slot Planning

Turns the ranker's per-section output into the ordered Slot list the allocator
consumes. Fill order is fixed by category, then position, then slot index:

    summary-1..N  ->  ch-1..N  ->  p1-bullet-1..N  ->  p2-bullet-1..N  ->  p1-overview, p2-overview

Selection input shape (YAML or dict), with candidates as {id, content, score, matched_tags}:

    summaries: [...]                 # one flat pool, offered to every summary slot
    career_highlights: [[...], ...]  # one ranked list per highlight slot
    position_bullets:
      1: [[...], ...]                # one ranked list per bullet slot of position 1
    overviews:
      1: [...]                       # overview candidates for position 1
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from omegaconf import OmegaConf

from curator.contexts.allocation.content_data_structures import ScoredCandidate, Slot
from curator.contexts.allocation.defaults import (
    BULLET_SLOT_KEY,
    DEFAULT_HIGHLIGHT_COUNT,
    DEFAULT_OVERVIEW_POSITIONS,
    DEFAULT_POSITION_BULLET_COUNTS,
    DEFAULT_SUMMARY_COUNT,
    HIGHLIGHT_SLOT_KEY,
    OVERVIEW_SLOT_KEY,
    SUMMARY_SLOT_KEY,
)
from curator.contexts.allocation.identity import (
    HIGHLIGHT,
    POSITION_BULLET,
    POSITION_OVERVIEW,
    SUMMARY,
)

load_dotenv()
DEFAULT_SLOT_PLAN_PATH = Path(__file__).parent / "config" / "slot_plan.yaml"
SLOT_PLAN_PATH = Path(os.getenv("SLOT_PLAN_PATH", str(DEFAULT_SLOT_PLAN_PATH)))


@dataclass
class SlotPlanConfig:
    """Number of slots per resume section."""

    summary_count: int = DEFAULT_SUMMARY_COUNT
    highlight_count: int = DEFAULT_HIGHLIGHT_COUNT
    position_bullet_counts: Dict[int, int] = field(
        default_factory=lambda: dict(DEFAULT_POSITION_BULLET_COUNTS)
    )
    overview_positions: List[int] = field(default_factory=lambda: list(DEFAULT_OVERVIEW_POSITIONS))


def load_slot_plan_config(path: Optional[Path] = None) -> SlotPlanConfig:
    """
    Load slot counts from YAML; missing keys keep their defaults.

    Args:
        path: Config location (defaults to SLOT_PLAN_PATH from environment,
              falling back to the bundled slot_plan.yaml)

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    if path is None:
        path = SLOT_PLAN_PATH

    if not path.exists():
        raise FileNotFoundError(f"Slot plan config not found at {path}")

    data = OmegaConf.to_container(OmegaConf.load(path), resolve=True) or {}
    config = SlotPlanConfig()

    if "summary_count" in data:
        config.summary_count = int(data["summary_count"])
    if "highlight_count" in data:
        config.highlight_count = int(data["highlight_count"])
    if "position_bullet_counts" in data:
        config.position_bullet_counts = {
            int(position): int(count) for position, count in data["position_bullet_counts"].items()
        }
    if "overview_positions" in data:
        config.overview_positions = [int(position) for position in data["overview_positions"]]

    return config


def plan_slots(config: Optional[SlotPlanConfig] = None) -> List[Slot]:
    """
    Empty slots (no candidates) in fill order, with sequential priority ranks.

    Used directly by the interactive flow, which asks the ranker for each slot's
    candidates only when its section comes up.
    """
    if config is None:
        config = SlotPlanConfig()

    slots: List[Slot] = []

    def add(slot_key: str, category: str, position_number: Optional[int] = None) -> None:
        slots.append(
            Slot(
                slot_key=slot_key,
                category=category,
                priority_rank=len(slots),
                position_number=position_number,
            )
        )

    for i in range(config.summary_count):
        add(SUMMARY_SLOT_KEY.format(index=i + 1), SUMMARY)

    for i in range(config.highlight_count):
        add(HIGHLIGHT_SLOT_KEY.format(index=i + 1), HIGHLIGHT)

    for position in sorted(config.position_bullet_counts):
        for i in range(config.position_bullet_counts[position]):
            add(BULLET_SLOT_KEY.format(position=position, index=i + 1), POSITION_BULLET, position)

    for position in sorted(config.overview_positions):
        add(OVERVIEW_SLOT_KEY.format(position=position), POSITION_OVERVIEW, position)

    return slots


def slots_for_section(
    slots: List[Slot], category: str, position_number: Optional[int] = None
) -> List[Slot]:
    """Slots of one resume section (e.g., position 1 bullets), in fill order."""
    return [
        slot
        for slot in slots
        if slot.category == category
        and (position_number is None or slot.position_number == position_number)
    ]


def _parse_candidates(raw: Any, slot_key: str) -> List[ScoredCandidate]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(
            f"Candidates for slot '{slot_key}' must be a list, got {type(raw).__name__}"
        )

    candidates = []
    for item in raw:
        if isinstance(item, ScoredCandidate):
            candidates.append(item)
            continue
        try:
            candidates.append(ScoredCandidate.from_dict(item))
        except (ValueError, AttributeError) as e:
            raise ValueError(f"Invalid candidate for slot '{slot_key}': {e}") from e
    return candidates


def _by_position(raw: Any) -> Dict[int, Any]:
    # YAML keys may arrive as ints or strings ("1")
    return {int(position): value for position, value in (raw or {}).items()}


def _nth(lists: Any, index: int) -> Any:
    lists = lists or []
    return lists[index] if index < len(lists) else None


def build_slots(selection: Dict[str, Any], config: Optional[SlotPlanConfig] = None) -> List[Slot]:
    """
    Build the full slot list from a ranked selection.

    Args:
        selection: Ranker output in the shape documented at module level
        config: Slot counts (defaults to SlotPlanConfig())

    Returns:
        Slots in fill order, each carrying its candidate list

    Raises:
        ValueError: If a candidate is malformed (missing id, non-numeric score)
    """
    slots = plan_slots(config)

    summaries = selection.get("summaries")
    highlights = selection.get("career_highlights")
    bullets = _by_position(selection.get("position_bullets"))
    overviews = _by_position(selection.get("overviews"))

    highlight_index = 0
    bullet_index: Dict[int, int] = {}

    for slot in slots:
        if slot.category == SUMMARY:
            raw = summaries
        elif slot.category == HIGHLIGHT:
            raw = _nth(highlights, highlight_index)
            highlight_index += 1
        elif slot.category == POSITION_BULLET:
            index = bullet_index.get(slot.position_number, 0)
            raw = _nth(bullets.get(slot.position_number), index)
            bullet_index[slot.position_number] = index + 1
        else:
            raw = overviews.get(slot.position_number)

        slot.candidates = _parse_candidates(raw, slot.slot_key)

    return slots
