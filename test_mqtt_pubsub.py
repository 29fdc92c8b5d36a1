"""
Test MQTT Pub/Sub (Without Real Broker)
========================================

Tests the snapshot publish/subscribe flow without a running MQTT broker,
by handing serialized payloads straight to the subscriber callbacks.

Usage:
    pytest test_mqtt_pubsub.py
    python test_mqtt_pubsub.py
"""

import json
from types import SimpleNamespace

import pytest

from mcpi_engine import Snapshot
from mcpi_mqtt import (
    SnapshotPublisher,
    SnapshotSubscriber,
    create_logger,
)
from mcpi_mqtt.schemas import SnapshotMessage, Timestamp

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(64))

SNAPSHOT_TOPIC = "mcpi/data/snapshots/test"
STATUS_TOPIC = "mcpi/control/test/status"


def make_message(n=1000, inner=787, image=PNG_BYTES) -> SnapshotMessage:
    snapshot = Snapshot(
        n=n,
        inner_count=inner,
        outer_count=n - inner,
        pi_estimate=4.0 * inner / n if n else None,
        image=image,
    )
    return SnapshotMessage.from_snapshot(snapshot, service_id="test")


def make_subscriber(received, statuses=None) -> SnapshotSubscriber:
    return SnapshotSubscriber(
        broker_host="localhost",
        snapshot_topic=SNAPSHOT_TOPIC,
        status_topic=STATUS_TOPIC,
        on_snapshot=received.append,
        on_status=statuses.append if statuses is not None else None,
        logger=create_logger("test"),
    )


def test_message_serialization():
    """Snapshot messages survive the publisher's JSON formatting."""
    print("\n" + "=" * 60)
    print("TEST: Message Serialization/Deserialization")
    print("=" * 60)

    publisher = SnapshotPublisher(
        broker_host="localhost",
        topic=SNAPSHOT_TOPIC,
        logger=create_logger("test"),
    )
    print("\n✓ SnapshotPublisher created")

    msg = make_message()
    serialized = publisher.format_message(msg)
    json_str = json.dumps(serialized)
    print(f"✓ Serialized to JSON ({len(json_str)} bytes)")

    # Image travels as base64 text
    assert isinstance(serialized["image"], str)
    assert serialized["n"] == 1000
    assert serialized["pi_estimate"] == pytest.approx(3.148)

    reconstructed = SnapshotMessage.from_dict(json.loads(json_str))
    assert reconstructed.n == msg.n
    assert reconstructed.inner_count == 787
    assert reconstructed.outer_count == 213
    assert reconstructed.image == PNG_BYTES
    assert reconstructed.image_size == len(PNG_BYTES)
    assert reconstructed.timestamp == msg.timestamp
    print("✓ Verification passed: Original == Reconstructed")


def test_empty_snapshot_has_no_estimate():
    msg = make_message(n=0, inner=0)
    data = json.loads(json.dumps(msg.to_dict()))

    assert data["pi_estimate"] is None
    assert SnapshotMessage.from_dict(data).pi_estimate is None


def test_message_rejects_inconsistent_counts():
    data = make_message().to_dict()
    data["outer_count"] = 1

    with pytest.raises(ValueError):
        SnapshotMessage.from_dict(data)


def test_message_rejects_missing_and_corrupt_fields():
    data = make_message().to_dict()
    del data["n"]
    with pytest.raises(ValueError, match="Missing"):
        SnapshotMessage.from_dict(data)

    data = make_message().to_dict()
    data["image"] = "not base64!!"
    with pytest.raises(ValueError):
        SnapshotMessage.from_dict(data)


def test_timestamp_from_unix_is_utc():
    ts = Timestamp.from_unix(0.0)
    assert ts.value.startswith("1970-01-01T00:00:00")
    assert ts.to_datetime().utcoffset().total_seconds() == 0


def test_publish_without_broker_fails_cleanly():
    publisher = SnapshotPublisher(
        broker_host="localhost",
        topic=SNAPSHOT_TOPIC,
        logger=create_logger("test"),
    )

    assert publisher.publish_snapshot(make_message()) is False

    stats = publisher.get_stats()
    assert stats["message_count"] == 0
    assert stats["failed_count"] == 1
    assert stats["connected"] is False


def test_publisher_tracks_broker_connection():
    publisher = SnapshotPublisher(
        broker_host="localhost",
        topic=SNAPSHOT_TOPIC,
        logger=create_logger("test"),
    )
    ok = SimpleNamespace(is_failure=False)
    refused = SimpleNamespace(is_failure=True)

    publisher._on_connect(None, None, None, refused, None)
    assert not publisher.is_connected()

    publisher._on_connect(None, None, None, ok, None)
    assert publisher.is_connected()

    publisher._on_disconnect(None, None, None, refused, None)
    assert not publisher.is_connected()
    assert publisher.get_stats()["connected"] is False


def test_subscriber_callbacks():
    """Subscriber callback invocation (simulated)."""
    print("\n" + "=" * 60)
    print("TEST: Subscriber Callbacks")
    print("=" * 60)

    received = []
    statuses = []
    subscriber = make_subscriber(received, statuses)
    print("✓ SnapshotSubscriber created with callbacks")

    subscriber._handle_snapshot_message(make_message(n=10, inner=8).to_dict())
    subscriber._handle_snapshot_message(make_message(n=20, inner=15).to_dict())
    subscriber._handle_status_message({"status": "running", "client_id": "mcpi_test"})

    assert [m.n for m in received] == [10, 20]
    assert received[1].pi_estimate == pytest.approx(3.0)
    assert statuses == [{"status": "running", "client_id": "mcpi_test"}]

    stats = subscriber.get_stats()
    print(f"✓ Subscriber stats: {stats}")
    assert stats["snapshots_received"] == 2
    assert stats["status_received"] == 1
    assert stats["last_n"] == 20


def test_subscriber_routes_raw_mqtt_messages():
    received = []
    statuses = []
    subscriber = make_subscriber(received, statuses)

    payload = json.dumps(make_message(n=3, inner=2).to_dict()).encode("utf-8")
    subscriber._on_message(None, None, SimpleNamespace(topic=SNAPSHOT_TOPIC, payload=payload))
    subscriber._on_message(
        None, None, SimpleNamespace(topic=STATUS_TOPIC, payload=b'{"status": "stopped"}')
    )
    subscriber._on_message(None, None, SimpleNamespace(topic="other/topic", payload=b"{}"))
    subscriber._on_message(None, None, SimpleNamespace(topic=SNAPSHOT_TOPIC, payload=b"{not json"))

    assert [m.n for m in received] == [3]
    assert [s["status"] for s in statuses] == ["stopped"]


def test_subscriber_drops_invalid_snapshot():
    received = []
    subscriber = make_subscriber(received)

    subscriber._handle_snapshot_message({"n": 5})

    assert received == []
    assert subscriber.get_stats()["snapshots_received"] == 0


def test_status_without_callback_is_counted():
    subscriber = make_subscriber([])

    subscriber._handle_status_message({"status": "ready"})

    assert subscriber.get_stats()["status_received"] == 1


def main():
    """Run the callback tests without pytest."""
    print("\n🥧 mcpi_mqtt - Pub/Sub Integration Tests")
    print("=" * 60)
    print("Testing without real MQTT broker (simulated)")
    print("=" * 60)

    test_message_serialization()
    test_subscriber_callbacks()

    print("\n" + "=" * 60)
    print("✅ ALL TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    main()
