"""
mcpi Engine
===========

Bounded Context: Monte-Carlo sample accumulation and live snapshot delivery.

Design Philosophy:
- Separation of Concerns: geometry, analytics, rendering, delivery separated
- One writer: the Coordinator thread owns every mutable sample
- Producers never wait on viewers (single-slot, newest-wins mailboxes)

Architecture:

    mcpi_engine/
    ├── geometry/          # Pure classification (immutable, stateless)
    │   └── classifier.py  # Sample, Region, SampleClassifier, estimate_pi
    │
    ├── analytics/         # Accumulation & cadence
    │   ├── samples.py     # ClassifiedSet (append-only)
    │   └── cadence.py     # should_snapshot (log-decade cadence)
    │
    ├── rendering/         # Visualization (stateless drawing)
    │   └── renderer.py    # SnapshotRenderer → PNG Snapshot
    │
    ├── snapshot.py        # Snapshot value object
    ├── bus.py             # SnapshotBus, Subscription
    └── coordinator.py     # Coordinator (single-writer owner thread)

Usage:

    from mcpi_engine import Coordinator, SnapshotBus, SnapshotRenderer, Sample

    bus = SnapshotBus()
    viewer = bus.subscribe()

    coordinator = Coordinator(SnapshotRenderer(), bus, render_cap=1_000_000)
    coordinator.start()

    coordinator.enqueue(Sample(0.25, 0.5))
    coordinator.request_finalize()

    for snapshot in viewer:
        print(snapshot.n, snapshot.pi_estimate)
"""

# Geometry Layer (immutable, stateless)
from mcpi_engine.geometry.classifier import (
    Sample,
    Region,
    SampleClassifier,
    classify,
    estimate_pi,
)

# Analytics Layer
from mcpi_engine.analytics.cadence import cadence_step, should_snapshot, count_snapshots
from mcpi_engine.analytics.samples import ClassifiedSet

# Rendering Layer
from mcpi_engine.rendering.renderer import SnapshotRenderer, RenderError

# Delivery
from mcpi_engine.snapshot import Snapshot
from mcpi_engine.bus import SnapshotBus, Subscription, SnapshotStreamClosed

# Orchestration
from mcpi_engine.coordinator import Coordinator, CoordinatorClosedError

__all__ = [
    # Geometry
    "Sample",
    "Region",
    "SampleClassifier",
    "classify",
    "estimate_pi",
    # Analytics
    "cadence_step",
    "should_snapshot",
    "count_snapshots",
    "ClassifiedSet",
    # Rendering
    "SnapshotRenderer",
    "RenderError",
    # Delivery
    "Snapshot",
    "SnapshotBus",
    "Subscription",
    "SnapshotStreamClosed",
    # Orchestration
    "Coordinator",
    "CoordinatorClosedError",
]

__version__ = "1.0.0"
