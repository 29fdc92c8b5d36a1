"""
SnapshotBus tests: single-slot mailboxes, fan-out and end-of-stream.

Usage:
    pytest test_bus.py
"""

import threading

import pytest

from mcpi_engine import Snapshot, SnapshotBus, SnapshotStreamClosed


def snap(n: int) -> Snapshot:
    return Snapshot(n=n, inner_count=n, outer_count=0, pi_estimate=4.0 if n else None, image=b"")


def test_publish_reaches_every_subscriber():
    bus = SnapshotBus()
    first = bus.subscribe()
    second = bus.subscribe()

    assert bus.publish(snap(1)) == 2

    assert first.get(timeout=0).n == 1
    assert second.get(timeout=0).n == 1
    assert bus.published_count == 1


def test_never_draining_subscriber_keeps_only_newest():
    bus = SnapshotBus()
    stalled = bus.subscribe()

    for n in range(1, 1001):
        bus.publish(snap(n))

    assert stalled.pending
    assert stalled.dropped == 999
    assert stalled.get(timeout=0).n == 1000
    assert not stalled.pending
    assert stalled.get(timeout=0) is None


def test_offer_reports_replacement():
    bus = SnapshotBus()
    subscription = bus.subscribe()

    assert subscription.offer(snap(1)) is False
    assert subscription.offer(snap(2)) is True
    assert subscription.get(timeout=0).n == 2
    assert subscription.delivered == 1


def test_late_subscriber_only_sees_future_snapshots():
    bus = SnapshotBus()
    bus.publish(snap(1))

    late = bus.subscribe()
    assert late.get(timeout=0) is None

    bus.publish(snap(2))
    assert late.get(timeout=0).n == 2


def test_close_drains_pending_then_ends_stream():
    bus = SnapshotBus()
    subscription = bus.subscribe()
    bus.publish(snap(7))
    bus.close()

    assert subscription.get(timeout=0).n == 7
    with pytest.raises(SnapshotStreamClosed):
        subscription.get(timeout=0)


def test_iteration_stops_at_end_of_stream():
    bus = SnapshotBus()
    subscription = bus.subscribe()
    bus.publish(snap(3))
    bus.close()

    assert [s.n for s in subscription] == [3]


def test_publish_after_close_is_dropped():
    bus = SnapshotBus()
    subscription = bus.subscribe()
    bus.close()
    bus.close()  # idempotent

    assert bus.publish(snap(1)) == 0
    assert bus.closed
    assert list(subscription) == []


def test_subscribe_after_close_is_already_closed():
    bus = SnapshotBus()
    bus.close()

    subscription = bus.subscribe()
    assert subscription.closed
    assert bus.subscriber_count == 0


def test_unsubscribe_stops_delivery():
    bus = SnapshotBus()
    subscription = bus.subscribe()
    bus.unsubscribe(subscription)

    assert bus.publish(snap(1)) == 0
    assert subscription.closed
    assert bus.subscriber_count == 0


def test_get_blocks_until_publish():
    bus = SnapshotBus()
    subscription = bus.subscribe()
    received = []

    def consume():
        received.append(subscription.get(timeout=5.0))

    consumer = threading.Thread(target=consume)
    consumer.start()
    bus.publish(snap(42))
    consumer.join(timeout=5.0)

    assert not consumer.is_alive()
    assert received[0].n == 42


def test_wait_drained():
    bus = SnapshotBus()
    subscription = bus.subscribe()
    assert bus.wait_drained(timeout=0)

    bus.publish(snap(1))
    assert bus.wait_drained(timeout=0.01) is False

    subscription.get(timeout=0)
    assert bus.wait_drained(timeout=0)
