"""
Coordinator tests: accumulation, cadence, finalize and liveness.

A recording renderer stands in for the PNG renderer so that the tests
measure the coordination logic only.

Usage:
    pytest test_coordinator.py
"""

import random
import threading

import pytest

from mcpi_engine import (
    Coordinator,
    CoordinatorClosedError,
    RenderError,
    Sample,
    Snapshot,
    SnapshotBus,
    estimate_pi,
)


class RecordingRenderer:
    """Builds image-less snapshots and remembers every render call."""

    def __init__(self, fail_at=()):
        self.calls = []
        self.caps = []
        self.fail_at = set(fail_at)

    def render(self, n, inner, outer, cap):
        self.calls.append(n)
        self.caps.append(cap)
        if n in self.fail_at:
            self.fail_at.discard(n)
            raise RenderError(f"boom at n={n}")
        return Snapshot(
            n=n,
            inner_count=len(inner),
            outer_count=len(outer),
            pi_estimate=estimate_pi(len(inner), n),
            image=b"",
        )


def make_coordinator(renderer=None, settle_delay=0.0, **kwargs):
    bus = SnapshotBus()
    renderer = renderer or RecordingRenderer()
    return Coordinator(renderer, bus, settle_delay=settle_delay, **kwargs), renderer, bus


def test_three_point_scenario():
    coordinator, renderer, bus = make_coordinator()
    subscription = bus.subscribe()

    snapshots = [coordinator.submit(Sample(x, y)) for x, y in [(0, 0), (0.5, 0.5), (2, 2)]]

    assert [s.n for s in snapshots] == [1, 2, 3]
    assert coordinator.n == 3
    assert len(coordinator.inner) == 2
    assert len(coordinator.outer) == 1
    assert snapshots[-1].pi_estimate == pytest.approx(8 / 3)

    # Already published at n=3: no forced render
    assert coordinator.finalize() is None
    assert renderer.calls == [1, 2, 3]

    assert [s.n for s in subscription] == [3]


def test_cadence_gates_renders():
    coordinator, renderer, _ = make_coordinator()

    for _ in range(15):
        coordinator.submit(Sample(0.1, 0.1))

    assert renderer.calls == list(range(1, 11))
    assert coordinator.last_published_n == 10


def test_finalize_forces_terminal_snapshot():
    coordinator, renderer, bus = make_coordinator()
    subscription = bus.subscribe()

    for _ in range(15):
        coordinator.submit(Sample(0.1, 0.1))
    final = coordinator.finalize()

    assert final.n == 15
    assert renderer.calls[-1] == 15
    assert bus.closed
    assert [s.n for s in subscription] == [15]


def test_finalize_is_idempotent():
    coordinator, renderer, bus = make_coordinator()
    coordinator.submit(Sample(0.1, 0.1))
    coordinator.submit(Sample(0.2, 0.2))

    coordinator.finalize()
    calls = list(renderer.calls)

    assert coordinator.finalize() is None
    assert renderer.calls == calls
    assert coordinator.is_finalized


def test_finalize_without_samples_publishes_empty_snapshot():
    coordinator, renderer, bus = make_coordinator()
    subscription = bus.subscribe()

    final = coordinator.finalize()

    assert renderer.calls == [0]
    assert final.n == 0
    assert final.pi_estimate is None
    assert [s.n for s in subscription] == [0]


def test_submit_after_finalize_is_ignored():
    coordinator, _, _ = make_coordinator()
    coordinator.finalize()

    assert coordinator.submit(Sample(0.1, 0.1)) is None
    assert coordinator.n == 0


def test_ten_thousand_points_render_37_times():
    coordinator, renderer, _ = make_coordinator()
    rng = random.Random(1234)

    for _ in range(10_000):
        coordinator.submit(Sample(rng.random(), rng.random()))
    coordinator.finalize()

    assert len(renderer.calls) == 37
    assert renderer.calls[-1] == 10_000
    assert coordinator.render_count == 37


def test_render_failure_does_not_stop_ingestion():
    coordinator, renderer, bus = make_coordinator(RecordingRenderer(fail_at={3}))
    subscription = bus.subscribe()

    for _ in range(3):
        coordinator.submit(Sample(0.1, 0.1))

    # n=3 failed, so it does not count as published
    assert coordinator.last_published_n == 2
    assert coordinator.render_count == 2

    final = coordinator.finalize()
    assert final.n == 3
    assert renderer.calls == [1, 2, 3, 3]
    assert [s.n for s in subscription] == [3]


def test_render_cap_is_forwarded():
    coordinator, renderer, _ = make_coordinator(render_cap=5)
    coordinator.submit(Sample(0.1, 0.1))

    assert renderer.caps == [5]


def test_invalid_parameters():
    with pytest.raises(ValueError):
        make_coordinator(render_cap=0)
    with pytest.raises(ValueError):
        make_coordinator(settle_delay=-1)


def test_threaded_subscriber_sees_increasing_counts():
    coordinator, renderer, bus = make_coordinator(settle_delay=1.0)
    subscription = bus.subscribe()
    seen = []

    viewer = threading.Thread(target=lambda: seen.extend(s.n for s in subscription))
    viewer.start()
    coordinator.start()

    rng = random.Random(7)
    for _ in range(5_000):
        coordinator.enqueue(Sample(rng.random(), rng.random()))

    assert coordinator.request_finalize(timeout=10.0)
    viewer.join(timeout=10.0)

    assert not viewer.is_alive()
    assert seen, "viewer received nothing"
    assert all(a < b for a, b in zip(seen, seen[1:]))
    assert seen[-1] == 5_000
    assert seen.count(5_000) == 1
    assert coordinator.is_done


def test_concurrent_producers_lose_nothing():
    coordinator, _, _ = make_coordinator()
    coordinator.start()

    def produce():
        for _ in range(1_000):
            coordinator.enqueue(Sample(0.5, 0.5))

    producers = [threading.Thread(target=produce) for _ in range(4)]
    for producer in producers:
        producer.start()
    for producer in producers:
        producer.join()

    assert coordinator.request_finalize(timeout=10.0)
    assert coordinator.n == 4_000
    assert len(coordinator.inner) == 4_000


def test_enqueue_after_finalize_raises():
    coordinator, _, _ = make_coordinator()
    coordinator.start()
    assert coordinator.request_finalize(timeout=5.0)

    with pytest.raises(CoordinatorClosedError):
        coordinator.enqueue(Sample(0.1, 0.1))

    # Later calls only wait
    assert coordinator.request_finalize(timeout=1.0)


def test_request_finalize_without_start_processes_backlog():
    coordinator, renderer, _ = make_coordinator()
    coordinator.enqueue(Sample(0.1, 0.1))
    coordinator.enqueue(Sample(2.0, 2.0))

    assert coordinator.request_finalize(timeout=5.0)
    assert coordinator.n == 2
    assert renderer.calls == [1, 2]


def test_start_twice_raises():
    coordinator, _, _ = make_coordinator()
    coordinator.start()
    try:
        with pytest.raises(RuntimeError):
            coordinator.start()
    finally:
        coordinator.request_finalize(timeout=5.0)
