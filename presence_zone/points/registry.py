"""
Point Registry Module
=====================

Stateful, ordered collection of placed points that tracks a target count.

Design:
- Exclusive owner of all Points (callers get immutable snapshots)
- Incremental: grow appends newly sampled points, shrink drops newest first
- Ids strictly increasing within a session, never reused
- Emits add/remove deltas to a PointRenderer (no full redraws)
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

from presence_zone.geometry.clip import ClipRegion
from presence_zone.sampling.sampler import DeterministicSampler


@dataclass(frozen=True)
class Point:
    """Immutable placed point in view box coordinates (id >= 1)."""

    id: int
    x: float
    y: float


@dataclass(frozen=True)
class ResizeResult:
    """Outcome of one reconciliation step."""

    added: int
    removed: int
    size: int

    @property
    def changed(self) -> bool:
        return self.added > 0 or self.removed > 0


class PointRenderer(Protocol):
    """Protocol for rendering backends driven by registry deltas."""

    def add_point(self, point: Point) -> None:
        """Show a newly placed point."""
        ...

    def remove_point(self, point_id: int) -> None:
        """Stop showing a point."""
        ...

    def install_clip(self, clip: ClipRegion) -> None:
        """Restrict all drawing to the clip region."""
        ...


class RecordingRenderer:
    """
    Headless renderer that records deltas.

    Used when no visual output is wanted, and by tests.
    """

    def __init__(self):
        self.deltas: List[Tuple[str, int]] = []
        self.visible: Dict[int, Point] = {}
        self.clip: Optional[ClipRegion] = None

    def add_point(self, point: Point) -> None:
        self.deltas.append(("add", point.id))
        self.visible[point.id] = point

    def remove_point(self, point_id: int) -> None:
        self.deltas.append(("remove", point_id))
        self.visible.pop(point_id, None)

    def install_clip(self, clip: ClipRegion) -> None:
        self.clip = clip


class PointRegistry:
    """
    Reconciles the placed point set with a target count.

    Usage:
        registry = PointRegistry(sampler, renderer=visualizer)
        registry.resize(5)   # ids 1..5
        registry.resize(2)   # ids 1, 2 remain
        registry.resize(3)   # ids 1, 2, 6

    Thread Safety:
        Not synchronized. Call resize() from a single thread (the sync driver).
    """

    def __init__(
        self,
        sampler: DeterministicSampler,
        renderer: Optional[PointRenderer] = None,
    ):
        self.sampler = sampler
        self.renderer = renderer

        # Insertion order == id order, so the newest point is always last
        self._points: Dict[int, Point] = {}
        self._next_id = 1

    def size(self) -> int:
        return len(self._points)

    __len__ = size

    def ids(self) -> Tuple[int, ...]:
        """Snapshot of current ids, ascending."""
        return tuple(self._points)

    def points(self) -> Tuple[Point, ...]:
        """Snapshot of current points, ascending by id."""
        return tuple(self._points.values())

    def resize(self, target_count: int) -> ResizeResult:
        """
        Grow or shrink to ``max(target_count, 0)`` points.

        Raises:
            TypeError: If target_count is not an integer
        """
        if isinstance(target_count, bool) or not isinstance(target_count, int):
            raise TypeError(f"target_count must be int, got {type(target_count).__name__}")

        target = max(target_count, 0)
        added = removed = 0

        while len(self._points) < target:
            x, y = self.sampler.sample()
            point = Point(id=self._next_id, x=x, y=y)
            self._next_id += 1
            self._points[point.id] = point
            if self.renderer is not None:
                self.renderer.add_point(point)
            added += 1

        while len(self._points) > target:
            point_id, _ = self._points.popitem()
            if self.renderer is not None:
                self.renderer.remove_point(point_id)
            removed += 1

        return ResizeResult(added=added, removed=removed, size=len(self._points))
