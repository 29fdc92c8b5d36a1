"""
Geometry Layer
==============

Bounded Context: Sample classification.

Responsibilities:
- Sample representation (immutable)
- Inside/outside test against the unit circle
- Pi estimate from classified counts
- NO state, NO rendering
"""

from mcpi_engine.geometry.classifier import (
    Sample,
    Region,
    SampleClassifier,
    classify,
    estimate_pi,
)

__all__ = [
    "Sample",
    "Region",
    "SampleClassifier",
    "classify",
    "estimate_pi",
]
