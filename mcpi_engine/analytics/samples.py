"""
Classified Sample Sets
======================

Append-only storage for samples sharing one classification outcome.

Design:
- Grows monotonically, never reorders or shrinks
- Owned by a single writer (the Coordinator thread)
- head(limit) gives bounded views for rendering
"""

from typing import Iterator, List

from mcpi_engine.geometry.classifier import Region, Sample


class ClassifiedSet:
    """
    Ordered, append-only sequence of samples with one Region.

    Not thread-safe: only the owning thread may append.
    """

    def __init__(self, region: Region):
        self.region = region
        self._samples: List[Sample] = []

    def append(self, sample: Sample) -> None:
        self._samples.append(sample)

    def head(self, limit: int) -> List[Sample]:
        """
        First `limit` samples (a copy).

        Args:
            limit: Maximum number of samples to return

        Returns:
            List with at most `limit` samples, in insertion order
        """
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        return self._samples[:limit]

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def __getitem__(self, index):
        return self._samples[index]

    def __repr__(self) -> str:
        return f"ClassifiedSet(region={self.region.value}, size={len(self._samples)})"
