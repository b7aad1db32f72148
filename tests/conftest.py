"""Shared pytest fixtures."""

import pytest

from curator.contexts.allocation import ConflictRegistry, ConflictRule
from curator.utils import event_logging


@pytest.fixture(autouse=True)
def isolated_event_log(tmp_path, monkeypatch):
    """Send pipeline events to a per-test file instead of outs/logs."""
    events_file = tmp_path / "logs" / "pipeline_events.log"
    monkeypatch.setattr(event_logging, "PIPELINE_EVENTS_FILE", events_file)
    return events_file


@pytest.fixture
def registry():
    """Small conflict table covering one highlight/bullet pair and one one-to-many pair."""
    return ConflictRegistry(
        [
            ConflictRule("CH-01", "P1-B02", "same $40M metric"),
            ConflictRule("CH-10", "P4-B01", "same awards"),
            ConflictRule("CH-10", "P4-B02", "same awards"),
        ]
    )
