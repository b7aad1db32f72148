"""Unit tests for slot planning and selection parsing."""

import pytest

from curator.contexts.allocation import (
    SlotPlanConfig,
    build_slots,
    load_slot_plan_config,
    plan_slots,
    slots_for_section,
)
from curator.contexts.allocation.identity import (
    HIGHLIGHT,
    POSITION_BULLET,
    POSITION_OVERVIEW,
    SUMMARY,
)
from curator.contexts.allocation.slot_plan import DEFAULT_SLOT_PLAN_PATH


@pytest.mark.unit
def test_default_plan_order():
    """Test the fill order: summaries, highlights, bullets by position, overviews."""
    slots = plan_slots()

    assert [s.slot_key for s in slots] == [
        "summary-1",
        "summary-2",
        "ch-1",
        "ch-2",
        "ch-3",
        "ch-4",
        "ch-5",
        "p1-bullet-1",
        "p1-bullet-2",
        "p1-bullet-3",
        "p1-bullet-4",
        "p2-bullet-1",
        "p2-bullet-2",
        "p2-bullet-3",
        "p1-overview",
        "p2-overview",
    ]
    assert [s.priority_rank for s in slots] == list(range(len(slots)))
    assert all(s.candidates == [] for s in slots)


@pytest.mark.unit
def test_plan_slot_categories_and_positions():
    """Test category and position metadata on planned slots."""
    slots = {s.slot_key: s for s in plan_slots()}

    assert slots["summary-1"].category == SUMMARY
    assert slots["ch-3"].category == HIGHLIGHT
    assert slots["p2-bullet-1"].category == POSITION_BULLET
    assert slots["p2-bullet-1"].position_number == 2
    assert slots["p1-overview"].category == POSITION_OVERVIEW
    assert slots["p1-overview"].position_number == 1


@pytest.mark.unit
def test_custom_plan():
    """Test slot counts taken from a config."""
    config = SlotPlanConfig(
        summary_count=0,
        highlight_count=1,
        position_bullet_counts={3: 1, 1: 2},
        overview_positions=[],
    )

    keys = [s.slot_key for s in plan_slots(config)]

    assert keys == ["ch-1", "p1-bullet-1", "p1-bullet-2", "p3-bullet-1"]


@pytest.mark.unit
def test_slots_for_section():
    """Test selecting the slots of one section."""
    slots = plan_slots()

    assert [s.slot_key for s in slots_for_section(slots, POSITION_BULLET, 2)] == [
        "p2-bullet-1",
        "p2-bullet-2",
        "p2-bullet-3",
    ]
    assert len(slots_for_section(slots, HIGHLIGHT)) == 5


@pytest.mark.unit
def test_build_slots_from_selection():
    """Test distributing ranked candidates onto planned slots."""
    selection = {
        "summaries": [{"id": "SUM-01", "score": 3}, {"id": "SUM-02", "score": 2}],
        "career_highlights": [
            [{"id": "CH-05-V2", "content": "Grew pipeline 3x", "score": 9}],
            [{"id": "CH-03", "score": "6.5", "matched_tags": ["growth"]}],
        ],
        "position_bullets": {"1": [[{"id": "P1-B02", "score": 4}]]},
        "overviews": {2: [{"id": "OV-P2-01", "score": 1}]},
    }
    config = SlotPlanConfig(
        summary_count=2,
        highlight_count=3,
        position_bullet_counts={1: 1},
        overview_positions=[1, 2],
    )

    slots = {s.slot_key: s for s in build_slots(selection, config)}

    assert [c.id for c in slots["summary-1"].candidates] == ["SUM-01", "SUM-02"]
    assert [c.id for c in slots["summary-2"].candidates] == ["SUM-01", "SUM-02"]
    assert slots["ch-1"].candidates[0].content == "Grew pipeline 3x"
    assert slots["ch-2"].candidates[0].score == 6.5
    assert slots["ch-2"].candidates[0].matched_tags == ("growth",)
    assert slots["ch-3"].candidates == []
    assert [c.id for c in slots["p1-bullet-1"].candidates] == ["P1-B02"]
    assert slots["p1-overview"].candidates == []
    assert [c.id for c in slots["p2-overview"].candidates] == ["OV-P2-01"]


@pytest.mark.unit
def test_build_slots_empty_selection():
    """Test that a selection without any section yields empty slots."""
    slots = build_slots({})
    assert len(slots) == 16
    assert all(s.candidates == [] for s in slots)


@pytest.mark.unit
@pytest.mark.parametrize(
    "candidate",
    [
        {"content": "no id", "score": 1},
        {"id": "CH-01", "score": "high"},
        {"id": ["CH-01"], "score": 1},
        {"id": True, "score": 1},
        "CH-01",
    ],
)
def test_build_slots_rejects_malformed_candidate(candidate):
    """Test that a bad candidate names the slot it was offered for."""
    selection = {"career_highlights": [[candidate]]}

    with pytest.raises(ValueError, match="ch-1"):
        build_slots(selection)


@pytest.mark.unit
def test_build_slots_accepts_numeric_id():
    """Test that a bare numeric YAML id is read as a string id."""
    slots = build_slots({"career_highlights": [[{"id": 123, "score": 1}]]})

    candidate = slots[2].candidates[0]
    assert slots[2].slot_key == "ch-1"
    assert candidate.id == "123"
    assert candidate.base_id == "123"


@pytest.mark.unit
def test_load_bundled_slot_plan():
    """Test that the bundled slot plan matches the defaults."""
    assert load_slot_plan_config(DEFAULT_SLOT_PLAN_PATH) == SlotPlanConfig()


@pytest.mark.unit
def test_load_partial_slot_plan(tmp_path):
    """Test that keys missing from the YAML keep their defaults."""
    path = tmp_path / "plan.yaml"
    path.write_text("highlight_count: 3\nposition_bullet_counts:\n  1: 6\n", encoding="utf-8")

    config = load_slot_plan_config(path)

    assert config.highlight_count == 3
    assert config.position_bullet_counts == {1: 6}
    assert config.summary_count == SlotPlanConfig().summary_count


@pytest.mark.unit
def test_load_missing_slot_plan(tmp_path):
    """Test FileNotFoundError for a missing plan."""
    with pytest.raises(FileNotFoundError):
        load_slot_plan_config(tmp_path / "missing.yaml")
