"""
Sampling engine tests: classification, cadence and classified sets.

Usage:
    pytest test_engine.py
"""

import math

import pytest

from mcpi_engine import (
    ClassifiedSet,
    Region,
    Sample,
    SampleClassifier,
    cadence_step,
    classify,
    count_snapshots,
    estimate_pi,
    should_snapshot,
)


# ─────────────────────────────────────────────────────────────────────────────
# Classification
# ─────────────────────────────────────────────────────────────────────────────

def test_classify_inside_unit_circle():
    assert classify(0.0, 0.0) is Region.INNER
    assert classify(0.5, 0.5) is Region.INNER
    assert classify(0.99, 0.0) is Region.INNER


def test_classify_boundary_is_outer():
    assert classify(1.0, 0.0) is Region.OUTER
    assert classify(0.0, 1.0) is Region.OUTER


def test_classify_outside_and_negative_coordinates():
    assert classify(2.0, 2.0) is Region.OUTER
    assert classify(1.0, 1.0) is Region.OUTER
    # Only the squared distance matters
    assert classify(-0.5, -0.5) is Region.INNER


def test_classify_non_finite_is_outer():
    assert classify(math.nan, 0.0) is Region.OUTER
    assert classify(math.inf, 0.0) is Region.OUTER


def test_classifier_custom_radius():
    classifier = SampleClassifier(radius=2.0)
    assert classifier.classify(Sample(1.5, 1.0)) is Region.INNER
    assert classifier.classify(Sample(2.0, 0.0)) is Region.OUTER

    with pytest.raises(ValueError):
        SampleClassifier(radius=0)


def test_region_values_are_strings():
    assert Region.INNER == "inner"
    assert Region.OUTER.value == "outer"


def test_estimate_pi():
    assert estimate_pi(2, 3) == pytest.approx(8 / 3)
    assert estimate_pi(0, 5) == 0.0
    assert estimate_pi(0, 0) is None


# ─────────────────────────────────────────────────────────────────────────────
# Cadence
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("n, expected", [
    (1, True),
    (9, True),
    (10, True),
    (15, False),
    (20, True),
    (100, True),
    (110, False),
    (999, False),
    (1000, True),
    (5000, True),
    (5500, False),
    (10**7, True),
    (3 * 10**9, True),
    (3 * 10**9 + 10**8, False),
])
def test_should_snapshot(n, expected):
    assert should_snapshot(n) is expected


def test_should_snapshot_non_positive():
    assert should_snapshot(0) is False
    assert should_snapshot(-10) is False


def test_cadence_step():
    assert cadence_step(1) == 1
    assert cadence_step(9) == 1
    assert cadence_step(10) == 10
    assert cadence_step(99) == 10
    assert cadence_step(12345) == 10000

    with pytest.raises(ValueError):
        cadence_step(0)


def test_count_snapshots_matches_predicate():
    for n in (0, 1, 9, 10, 11, 99, 100, 1234, 10000):
        expected = sum(1 for i in range(1, n + 1) if should_snapshot(i))
        assert count_snapshots(n) == expected

    assert count_snapshots(10000) == 37


# ─────────────────────────────────────────────────────────────────────────────
# ClassifiedSet
# ─────────────────────────────────────────────────────────────────────────────

def test_classified_set_keeps_insertion_order():
    inner = ClassifiedSet(Region.INNER)
    for i in range(5):
        inner.append(Sample(i / 10, 0.0))

    assert len(inner) == 5
    assert [s.x for s in inner] == [0.0, 0.1, 0.2, 0.3, 0.4]
    assert inner[0] == Sample(0.0, 0.0)
    assert inner[1:3] == [Sample(0.1, 0.0), Sample(0.2, 0.0)]


def test_classified_set_head():
    outer = ClassifiedSet(Region.OUTER)
    outer.append(Sample(2.0, 2.0))
    outer.append(Sample(3.0, 3.0))

    assert outer.head(1) == [Sample(2.0, 2.0)]
    assert outer.head(10) == [Sample(2.0, 2.0), Sample(3.0, 3.0)]
    assert outer.head(0) == []

    # head() returns a copy
    outer.head(2).clear()
    assert len(outer) == 2

    with pytest.raises(ValueError):
        outer.head(-1)


def test_classified_set_repr():
    assert repr(ClassifiedSet(Region.INNER)) == "ClassifiedSet(region=inner, size=0)"
