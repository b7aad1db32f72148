"""
Shared utilities for CURATOR.

Common functionality used across contexts:
- Logger setup
- Pipeline event logging
- Timestamps
- Text report formatting
"""

from curator.utils.timestamp import now, now_exact

__all__ = ["now", "now_exact"]
