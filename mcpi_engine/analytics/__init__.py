"""
Analytics Layer
===============

Bounded Context: Sample accumulation and snapshot cadence.

Responsibilities:
- Append-only classified sample sets (stateful, single writer)
- Cadence policy (pure, integer-only)
"""

from mcpi_engine.analytics.cadence import cadence_step, should_snapshot, count_snapshots
from mcpi_engine.analytics.samples import ClassifiedSet

__all__ = [
    "cadence_step",
    "should_snapshot",
    "count_snapshots",
    "ClassifiedSet",
]
