"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

This module defines typed event names for structured logging.

Design:
- Enum-based (prevents typos, enables autocomplete)
- Hierarchical naming (namespace.category.action)
- Searchable in log aggregators (Elasticsearch, CloudWatch Insights)

Event Naming Convention:
    <component>.<category>.<action>

    component: mqtt, snapshot, status, error
    category: connected, publish, received
    action: success, failed

Example Log Query (CloudWatch Insights):
    fields @timestamp, event, message, metadata.n
    | filter event = "snapshot.published"
    | stats count() by bin(5m)
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - mqtt.*: MQTT broker interactions
    - snapshot.*: Snapshot serialization and delivery
    - status.*: Service status messages seen by viewers
    - error.*: Error conditions
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message successfully published to broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    # ========== Snapshot Events ==========
    SNAPSHOT_SERIALIZED = "snapshot.serialized"
    """Snapshot message serialized to JSON."""

    SNAPSHOT_PUBLISHED = "snapshot.published"
    """Snapshot delivered to the broker."""

    SNAPSHOT_RECEIVED = "snapshot.received"
    """Snapshot message received by a viewer."""

    # ========== Status Events ==========
    STATUS_RECEIVED = "status.received"
    """Service status message received by a viewer."""

    # ========== Error Events ==========
    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize message to JSON."""

    DESERIALIZATION_ERROR = "error.deserialization"
    """Failed to deserialize message from JSON."""

    SCHEMA_VALIDATION_ERROR = "error.schema_validation"
    """Message failed schema validation."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""
