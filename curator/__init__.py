"""
CURATOR - Conflict-aware Unique Resume Atom Tailoring, Optimized for Recruiters

Selects a non-redundant subset of pre-written resume content atoms (summaries,
career highlights, position overviews, position bullets) to fill a fixed set of
resume slots for a given job description.

Architecture:
- Allocation Context: Identity resolution, conflict registry, greedy slot allocation,
  usage ledger, and post-hoc verification
- Sessions Context: Durable per-session ledger state with serialized commits

Relevance ranking, prose rewriting, and document export are external collaborators.
"""

__version__ = "0.1.0"
