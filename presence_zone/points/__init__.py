"""
Points Layer
============

Bounded Context: Ownership and reconciliation of placed points (stateful).

Responsibilities:
- Point identity (monotonic ids, never reused)
- Grow/shrink to a target count
- Delta notifications to renderers
"""

from presence_zone.points.registry import (
    Point,
    PointRegistry,
    PointRenderer,
    RecordingRenderer,
    ResizeResult,
)

__all__ = [
    "Point",
    "PointRegistry",
    "PointRenderer",
    "RecordingRenderer",
    "ResizeResult",
]
