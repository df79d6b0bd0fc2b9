"""
Render-Time Clip Module
=======================

Exact clip region derived from the same boundary paths as the mask.

The mask is a finite-resolution approximation with an inset, so sampled
points are almost always inside the true outline. The clip region is applied
by renderers on top of that, so nothing is drawn outside the outline even
where the mask is off by a cell.

Design:
- Immutable region (frozen dataclass)
- Finer curve flattening than the mask
- Per-size raster cache for compositing
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple

import cv2
import numpy as np

from presence_zone.geometry.boundary import BoundaryPaths, ViewBox
from presence_zone.geometry.mask import fill_nonzero, to_pixel_polygons, winding_sign
from presence_zone.geometry.path_parser import (
    PathSyntaxError,
    fillable_subpaths,
    parse_path,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ClipRegion:
    """
    Exact clip geometry in view box coordinates.

    Attributes:
        view_box: Frame of the geometry
        paths: Per path, the tuple of its closed sub-polygons (Nx2 arrays)
        signs: Orientation sign of every sub-polygon, shaped like paths
    """

    view_box: ViewBox
    paths: Tuple[Tuple[np.ndarray, ...], ...]
    signs: Tuple[Tuple[int, ...], ...] = field(init=False, repr=False, compare=False)
    _rasters: Dict[Tuple[int, int], np.ndarray] = field(
        default_factory=dict, repr=False, compare=False
    )

    def __post_init__(self):
        signs = tuple(tuple(winding_sign(sp) for sp in subpaths) for subpaths in self.paths)
        object.__setattr__(self, "signs", signs)

    @property
    def polygon_count(self) -> int:
        return sum(len(p) for p in self.paths)

    def contains(self, x: float, y: float) -> bool:
        """
        Exact containment test.

        Nonzero winding within one path, union across paths. Points on an
        edge count as inside.
        """
        point = (float(x), float(y))
        for subpaths, signs in zip(self.paths, self.signs):
            winding = 0
            for sp, sign in zip(subpaths, signs):
                result = cv2.pointPolygonTest(sp.astype(np.float32), point, False)
                if result == 0:
                    return True
                if result > 0:
                    winding += sign
            if winding != 0:
                return True
        return False

    def raster(self, width: int, height: int) -> np.ndarray:
        """
        Clip as an HxW uint8 raster (255 = visible), cached per size.

        The returned array is read-only.
        """
        key = (width, height)
        cached = self._rasters.get(key)
        if cached is not None:
            return cached

        cells = np.zeros((height, width), dtype=np.uint8)
        for subpaths, signs in zip(self.paths, self.signs):
            fill_nonzero(cells, to_pixel_polygons(subpaths, self.view_box, width, height), signs)
        cells.flags.writeable = False
        self._rasters[key] = cells
        return cells


class ClipInstaller:
    """
    Builds clip regions for renderers.

    Usage:
        installer = ClipInstaller(boundary.view_box)
        clip = installer.install(boundary.paths)
        visualizer.install_clip(clip)
    """

    def __init__(self, view_box: ViewBox, curve_samples: int = 48):
        self.view_box = view_box
        self.curve_samples = curve_samples

    def install(self, paths: BoundaryPaths) -> ClipRegion:
        """
        Derive the clip region from boundary paths.

        Paths that fail to parse are skipped with a warning, matching the
        mask rasterizer.
        """
        parsed = []
        for index, d in enumerate(paths):
            try:
                subpaths = fillable_subpaths(parse_path(d, self.curve_samples))
            except PathSyntaxError as e:
                logger.warning(f"Clip skips path #{index}: {e}")
                continue
            if subpaths:
                parsed.append(tuple(subpaths))

        region = ClipRegion(view_box=self.view_box, paths=tuple(parsed))
        logger.info(f"Clip region installed: {region.polygon_count} polygon(s)")
        return region
