"""
Rendering Layer
===============

Bounded Context: Snapshot visualization and encoding.

Responsibilities:
- Draw classified samples, grid and quarter circle
- Render title (n, pi estimate)
- Encode to PNG
- Pure rendering - no accumulation, no cadence decisions
"""

from mcpi_engine.rendering.renderer import SnapshotRenderer, RenderError

__all__ = [
    "SnapshotRenderer",
    "RenderError",
]
