"""
Presence Zone
=============

Bounded Context: Deterministic placement of presence dots inside a boundary.

Design Philosophy:
- Separation of Concerns: Geometry, Sampling, Points, Rendering separated
- Immutable geometry built once, stateful registry mutated in one place
- Reproducible: same boundary + same seed = same layout

Architecture:

    presence_zone/
    ├── geometry/          # Boundary, mask, clip (immutable)
    │   ├── boundary.py    # ViewBox, Boundary, BoundaryLoader
    │   ├── path_parser.py # SVG path data -> polygons
    │   ├── mask.py        # MaskRasterizer, Mask
    │   └── clip.py        # ClipInstaller, ClipRegion
    │
    ├── sampling/          # Reproducible randomness
    │   ├── rng.py         # Mulberry32
    │   └── sampler.py     # DeterministicSampler
    │
    ├── points/            # Point ownership (stateful)
    │   └── registry.py    # PointRegistry, PointRenderer
    │
    └── rendering/         # Visualization
        └── visualizer.py  # DotVisualizer

Usage:

    from presence_zone import (
        BoundaryLoader, MaskRasterizer, ClipInstaller,
        DeterministicSampler, PointRegistry, DotVisualizer,
    )

    boundary = BoundaryLoader("assets/boundary.svg").load()
    mask = MaskRasterizer().build(boundary.view_box, boundary.paths)
    clip = ClipInstaller(boundary.view_box).install(boundary.paths)

    visualizer = DotVisualizer(boundary.view_box)
    visualizer.install_clip(clip)

    registry = PointRegistry(DeterministicSampler(mask, seed=123456), visualizer)
    registry.resize(7)
    frame = visualizer.render()
"""

# Geometry Layer (immutable)
from presence_zone.geometry.boundary import (
    Boundary,
    BoundaryLoader,
    InitializationError,
    ViewBox,
    parse_boundary,
)
from presence_zone.geometry.mask import Mask, MaskBuildError, MaskRasterizer
from presence_zone.geometry.clip import ClipInstaller, ClipRegion

# Sampling Layer
from presence_zone.sampling.rng import Mulberry32
from presence_zone.sampling.sampler import DeterministicSampler

# Points Layer (stateful)
from presence_zone.points.registry import (
    Point,
    PointRegistry,
    PointRenderer,
    RecordingRenderer,
    ResizeResult,
)

# Rendering Layer
from presence_zone.rendering.visualizer import DotVisualizer

__all__ = [
    # Geometry
    "Boundary",
    "BoundaryLoader",
    "InitializationError",
    "ViewBox",
    "parse_boundary",
    "Mask",
    "MaskBuildError",
    "MaskRasterizer",
    "ClipInstaller",
    "ClipRegion",
    # Sampling
    "Mulberry32",
    "DeterministicSampler",
    # Points
    "Point",
    "PointRegistry",
    "PointRenderer",
    "RecordingRenderer",
    "ResizeResult",
    # Rendering
    "DotVisualizer",
]

__version__ = "1.0.0"
