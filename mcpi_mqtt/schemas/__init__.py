"""
mcpi MQTT Schemas
=================

Bounded Context: Data Structures

Immutable, typed data structures for MQTT messages.

Design:
- Frozen dataclasses (immutability)
- to_dict() for JSON serialization
- from_dict() for deserialization
- Schema versioning for evolution

Public API
----------
Common Types:
    Timestamp: ISO 8601 timestamp wrapper

Snapshot Types:
    SnapshotMessage: Rendered snapshot with counts and base64 image
"""

from .common import Timestamp
from .snapshot import SnapshotMessage

__all__ = [
    'Timestamp',
    'SnapshotMessage',
]
