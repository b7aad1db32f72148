"""
Default values for CURATOR slot planning.

Slot counts mirror the one-page resume layout: two summary sources, five career
highlights, and bullet budgets for the two most recent positions.
"""

DEFAULT_SUMMARY_COUNT = 2
DEFAULT_HIGHLIGHT_COUNT = 5
DEFAULT_POSITION_BULLET_COUNTS = {1: 4, 2: 3}
DEFAULT_OVERVIEW_POSITIONS = [1, 2]

# Slot key templates
SUMMARY_SLOT_KEY = "summary-{index}"
HIGHLIGHT_SLOT_KEY = "ch-{index}"
BULLET_SLOT_KEY = "p{position}-bullet-{index}"
OVERVIEW_SLOT_KEY = "p{position}-overview"
