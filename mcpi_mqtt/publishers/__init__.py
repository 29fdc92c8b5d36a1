"""
MQTT Publishers
===============

Bounded Context: Message Production

Publishers:
    BasePublisher: Abstract base (connection management, JSON publish)
    SnapshotPublisher: Rendered snapshots for live viewers
"""

from .base import BasePublisher
from .snapshot import SnapshotPublisher

__all__ = [
    'BasePublisher',
    'SnapshotPublisher',
]
