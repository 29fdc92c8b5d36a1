"""
Snapshot Cadence Module
=======================

Decides which running counts deserve a new snapshot.

Policy:
    For n in [10^k, 10^(k+1)), a snapshot is produced exactly when
    n is a multiple of 10^k. This gives one snapshot per sample up to 9,
    then every 10th up to 90, every 100th up to 900, and so on without
    an upper bound.

Design:
- Integer arithmetic only (no log10, no float decade boundaries)
- Pure functions of n
"""


def cadence_step(n: int) -> int:
    """
    Largest power of ten that is <= n.

    Args:
        n: Running count (must be >= 1)

    Returns:
        10^k such that 10^k <= n < 10^(k+1)

    Raises:
        ValueError: If n < 1
    """
    if n < 1:
        raise ValueError(f"cadence_step requires n >= 1, got {n}")

    step = 1
    while step * 10 <= n:
        step *= 10
    return step


def should_snapshot(n: int) -> bool:
    """
    Whether a snapshot should be produced at running count n.

    Examples:
        >>> should_snapshot(10), should_snapshot(15), should_snapshot(1000)
        (True, False, True)
    """
    if n < 1:
        return False
    return n % cadence_step(n) == 0


def count_snapshots(n: int) -> int:
    """Number of counts in [1, n] for which should_snapshot() fires."""
    total = 0
    step = 1
    while step <= n:
        # multiples of step inside [step, min(n, 10*step - 1)]
        upper = min(n, step * 10 - 1)
        total += upper // step
        step *= 10
    return total
