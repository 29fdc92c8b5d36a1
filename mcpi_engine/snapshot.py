"""
Snapshot Value Object
=====================

Immutable rendered artifact summarizing the accumulated samples at a
given running count. Shared freely between threads once published.
"""

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Snapshot:
    """
    Rendered state of the sampler at running count `n`.

    Attributes:
        n: Running count at which the snapshot was produced
        inner_count: Size of the INNER set (full, not capped)
        outer_count: Size of the OUTER set (full, not capped)
        pi_estimate: 4 * inner_count / n (None when n == 0)
        image: Encoded image bytes
        image_format: Encoding of `image` (e.g. "png")
        created_at: Unix time of production
    """

    n: int
    inner_count: int
    outer_count: int
    pi_estimate: Optional[float]
    image: bytes = field(repr=False)
    image_format: str = "png"
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        """Validate invariants."""
        if self.n < 0:
            raise ValueError(f"Snapshot n must be >= 0, got {self.n}")
        if self.inner_count + self.outer_count != self.n:
            raise ValueError(
                f"inner_count + outer_count must equal n "
                f"({self.inner_count} + {self.outer_count} != {self.n})"
            )
