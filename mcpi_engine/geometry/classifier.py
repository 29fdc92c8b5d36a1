"""
Sample Classifier Module
========================

Pure classification of 2D samples against the unit quarter circle.

Design:
- Immutable samples (NamedTuple)
- Total over all real inputs (NaN falls through to OUTER)
- No state, no side effects
"""

from enum import Enum
from typing import NamedTuple, Optional


class Sample(NamedTuple):
    """A single (x, y) observation submitted for classification."""

    x: float
    y: float


class Region(str, Enum):
    """Classification outcome of a sample."""
    INNER = "inner"    # x² + y² < r²
    OUTER = "outer"


class SampleClassifier:
    """
    Classifies samples as inside or outside a circle centred on the origin.

    The comparison is strict: a sample lying exactly on the circle is OUTER.

    Usage:
        classifier = SampleClassifier()
        classifier.classify(Sample(0.5, 0.5))  # Region.INNER
    """

    def __init__(self, radius: float = 1.0):
        if radius <= 0:
            raise ValueError(f"radius must be > 0, got {radius}")
        self.radius = radius
        self._radius_sq = radius * radius

    def classify(self, sample: Sample) -> Region:
        x, y = sample
        if x * x + y * y < self._radius_sq:
            return Region.INNER
        return Region.OUTER


_UNIT = SampleClassifier()


def classify(x: float, y: float) -> Region:
    """Classify (x, y) against the unit circle."""
    return _UNIT.classify(Sample(x, y))


def estimate_pi(inner_count: int, n: int) -> Optional[float]:
    """
    Monte-Carlo estimate of pi from the running counts.

    Args:
        inner_count: Number of samples classified INNER
        n: Total number of samples

    Returns:
        4 * inner_count / n, or None when no samples were taken
    """
    if n <= 0:
        return None
    return 4.0 * inner_count / n
