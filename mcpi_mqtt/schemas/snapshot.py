"""
Snapshot Message Schema
=======================

Bounded Context: Snapshot wire format

This module defines the JSON message a viewer receives for every snapshot.

Message Flow:
    Coordinator → Snapshot → SnapshotMessage → SnapshotPublisher → MQTT → Viewer

Wire format:
    {
        "schema_version": "1.0",
        "timestamp": "2025-10-24T15:30:45.123456+00:00",
        "service_id": "mcpi_01",
        "n": 1000,
        "inner_count": 787,
        "outer_count": 213,
        "pi_estimate": 3.148,
        "image_format": "png",
        "image": "<base64>"
    }
"""

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from mcpi_engine.snapshot import Snapshot
from .common import Timestamp


@dataclass(frozen=True)
class SnapshotMessage:
    """
    Serializable form of an engine Snapshot.

    Attributes:
        schema_version: Message schema version
        timestamp: Production time
        service_id: Producing service
        n: Running count tag
        inner_count: Samples inside the quarter circle
        outer_count: Samples outside
        pi_estimate: 4 * inner_count / n (None when n == 0)
        image: Encoded image bytes (base64 on the wire)
        image_format: Image encoding

    Invariants:
        - n >= 0
        - inner_count + outer_count == n
    """
    schema_version: str
    timestamp: Timestamp
    service_id: str
    n: int
    inner_count: int
    outer_count: int
    pi_estimate: Optional[float]
    image: bytes = field(repr=False)
    image_format: str = "png"

    def __post_init__(self):
        """Validate invariants."""
        if self.n < 0:
            raise ValueError(f"n must be >= 0, got {self.n}")
        if self.inner_count + self.outer_count != self.n:
            raise ValueError(
                f"inner_count + outer_count must equal n "
                f"({self.inner_count} + {self.outer_count} != {self.n})"
            )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: Snapshot,
        service_id: str,
        schema_version: str = "1.0"
    ) -> 'SnapshotMessage':
        """Build the wire message for an engine snapshot."""
        return cls(
            schema_version=schema_version,
            timestamp=Timestamp.from_unix(snapshot.created_at),
            service_id=service_id,
            n=snapshot.n,
            inner_count=snapshot.inner_count,
            outer_count=snapshot.outer_count,
            pi_estimate=snapshot.pi_estimate,
            image=snapshot.image,
            image_format=snapshot.image_format,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'service_id': self.service_id,
            'n': self.n,
            'inner_count': self.inner_count,
            'outer_count': self.outer_count,
            'pi_estimate': self.pi_estimate,
            'image_format': self.image_format,
            'image': base64.b64encode(self.image).decode('ascii'),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SnapshotMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required keys missing or invalid values
        """
        try:
            pi_estimate = data.get('pi_estimate')
            return cls(
                schema_version=str(data['schema_version']),
                timestamp=Timestamp(value=data['timestamp']),
                service_id=str(data['service_id']),
                n=int(data['n']),
                inner_count=int(data['inner_count']),
                outer_count=int(data['outer_count']),
                pi_estimate=None if pi_estimate is None else float(pi_estimate),
                image=base64.b64decode(data['image'], validate=True),
                image_format=str(data.get('image_format', 'png')),
            )
        except KeyError as e:
            raise ValueError(f"Missing required snapshot field: {e}")
        except (TypeError, binascii.Error) as e:
            raise ValueError(f"Invalid snapshot data: {e}")

    @property
    def image_size(self) -> int:
        """Decoded image size in bytes."""
        return len(self.image)
