"""
Geometry Layer
==============

Bounded Context: Boundary geometry and spatial queries.

Responsibilities:
- Boundary loading (SVG document -> view box + path data)
- Path parsing and flattening
- Occupancy mask (fast approximate containment)
- Clip region (exact containment at render time)
- NO sampling, NO point bookkeeping, NO drawing

Design Philosophy:
- Immutable value objects
- Fail-fast validation
- Built once, queried many times
"""

from presence_zone.geometry.boundary import (
    Boundary,
    BoundaryLoader,
    BoundaryPaths,
    InitializationError,
    ViewBox,
    parse_boundary,
)
from presence_zone.geometry.path_parser import PathSyntaxError, parse_path
from presence_zone.geometry.mask import Mask, MaskBuildError, MaskRasterizer
from presence_zone.geometry.clip import ClipInstaller, ClipRegion

__all__ = [
    "Boundary",
    "BoundaryLoader",
    "BoundaryPaths",
    "InitializationError",
    "ViewBox",
    "parse_boundary",
    "PathSyntaxError",
    "parse_path",
    "Mask",
    "MaskBuildError",
    "MaskRasterizer",
    "ClipInstaller",
    "ClipRegion",
]
