"""
mcpi MQTT Communication Package
===============================

Bounded Context: Live snapshot delivery

This package provides MQTT-based messaging between the sampling service
(which renders snapshots) and any number of remote viewers.

Architecture:
- schemas/: Immutable wire structures (SnapshotMessage, Timestamp)
- publishers/: Message producers (SnapshotPublisher)
- subscriber.py: Viewer-side consumer (SnapshotSubscriber)
- logging/: Structured JSON logging for observability

Public API
----------
Schemas:
    Timestamp, SnapshotMessage

Publishers:
    SnapshotPublisher
    BasePublisher (for custom publishers)

Subscriber:
    SnapshotSubscriber

Logging:
    LogEvent, StructuredLogger, create_logger

Example (Service side):
    >>> from mcpi_mqtt import SnapshotPublisher, SnapshotMessage, create_logger
    >>>
    >>> publisher = SnapshotPublisher(
    ...     broker_host="localhost",
    ...     topic="mcpi/data/snapshots/mcpi_01",
    ...     logger=create_logger("publisher")
    ... )
    >>> publisher.connect()
    >>> publisher.publish_snapshot(SnapshotMessage.from_snapshot(snapshot, "mcpi_01"))
"""

# Version
__version__ = "1.0.0"

# Schemas
from .schemas import (
    Timestamp,
    SnapshotMessage,
)

# Publishers
from .publishers import (
    BasePublisher,
    SnapshotPublisher,
)

# Subscriber
from .subscriber import SnapshotSubscriber

# Logging
from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    # Version
    '__version__',
    # Schemas
    'Timestamp',
    'SnapshotMessage',
    # Publishers
    'BasePublisher',
    'SnapshotPublisher',
    # Subscriber
    'SnapshotSubscriber',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
