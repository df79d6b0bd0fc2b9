"""
Occupancy Mask Module
=====================

Rasterizes boundary paths into a fixed-resolution occupancy grid.

Design:
- Mask built once (O(W*H)), queried in O(1) per point
- Immutable (frozen dataclass, read-only array)
- cv2.fillPoly for rasterization, with sub-pixel precision
- Each path filled on its own with the nonzero winding rule, paths union

The view box is stretched onto the full raster on both axes, which is the
exact inverse of the lookup done by Mask.cell_for().
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import cv2
import numpy as np

from presence_zone.geometry.boundary import BoundaryPaths, ViewBox
from presence_zone.geometry.path_parser import (
    PathSyntaxError,
    fillable_subpaths,
    parse_path,
)

logger = logging.getLogger(__name__)

MASK_WIDTH = 900
MIN_MASK_HEIGHT = 300

# cv2.fillPoly fractional bits
_SUBPIXEL_SHIFT = 4


class MaskBuildError(Exception):
    """Raised when the boundary cannot be rasterized into a usable mask."""
    pass


def mask_height(width: int, view_box: ViewBox) -> int:
    """Derived raster height: ``max(300, round(W * vb.height / vb.width))``, half-up."""
    return max(MIN_MASK_HEIGHT, int(np.floor(width * view_box.aspect + 0.5)))


def to_pixel_polygons(
    subpaths: Sequence[np.ndarray],
    view_box: ViewBox,
    width: int,
    height: int,
) -> List[np.ndarray]:
    """
    Map view box sub-polygons to cv2.fillPoly fixed-point pixel coordinates.

    Cell (px, py) covers [px, px+1) x [py, py+1) in raster units; cv2 treats
    integer coordinates as pixel centers, hence the half-pixel offset.
    """
    scale = float(1 << _SUBPIXEL_SHIFT)
    polygons = []
    for sp in subpaths:
        px = (sp[:, 0] - view_box.x) / view_box.width * width - 0.5
        py = (sp[:, 1] - view_box.y) / view_box.height * height - 0.5
        pts = np.stack([px, py], axis=1) * scale
        polygons.append(np.round(pts).astype(np.int32).reshape((-1, 1, 2)))
    return polygons


def winding_sign(polygon: np.ndarray) -> int:
    """+1 or -1 by orientation, 0 for a sub-polygon without area."""
    area = cv2.contourArea(polygon.astype(np.float32).reshape((-1, 1, 2)), oriented=True)
    return int(np.sign(area))


def fill_nonzero(
    cells: np.ndarray,
    polygons: List[np.ndarray],
    signs: Sequence[int],
) -> None:
    """
    Fill one path's sub-polygons into ``cells`` (in place, value 255).

    Nonzero rule: each sub-polygon adds its orientation sign to the cells it
    covers, and cells with a nonzero total are inside. Nested sub-paths with
    the same orientation stay filled, opposite ones cut holes.
    """
    winding = np.zeros(cells.shape, dtype=np.int16)
    layer = np.zeros(cells.shape, dtype=np.uint8)
    for polygon, sign in zip(polygons, signs):
        if sign == 0:
            continue
        layer[:] = 0
        cv2.fillPoly(layer, [polygon], color=1, lineType=cv2.LINE_8, shift=_SUBPIXEL_SHIFT)
        if sign > 0:
            winding += layer
        else:
            winding -= layer
    cells[winding != 0] = 255


@dataclass(frozen=True, eq=False)
class Mask:
    """
    Immutable occupancy grid for fast approximate containment tests.

    Attributes:
        cells: HxW uint8 array, nonzero = inside the boundary
        view_box: Frame the grid covers
    """

    cells: np.ndarray
    view_box: ViewBox

    def __post_init__(self):
        if not isinstance(self.cells, np.ndarray):
            raise TypeError(f"cells must be np.ndarray, got {type(self.cells)}")
        if self.cells.ndim != 2:
            raise ValueError(f"cells must be a 2D array, got shape {self.cells.shape}")
        self.cells.flags.writeable = False

    @property
    def width(self) -> int:
        return self.cells.shape[1]

    @property
    def height(self) -> int:
        return self.cells.shape[0]

    @property
    def occupied_fraction(self) -> float:
        """Fraction of cells inside the boundary."""
        return float(np.count_nonzero(self.cells)) / self.cells.size

    def cell_for(self, x: float, y: float) -> Tuple[int, int]:
        """Map a view box point to its (px, py) cell, clamped to the grid."""
        u, v = self.view_box.to_unit(x, y)
        px = min(self.width - 1, max(0, int(u * self.width)))
        py = min(self.height - 1, max(0, int(v * self.height)))
        return px, py

    def contains(self, x: float, y: float) -> bool:
        """
        Check if a view box point falls in an occupied cell (O(1)).

        Points outside the view box are never inside.
        """
        u, v = self.view_box.to_unit(x, y)
        if u < 0 or u > 1 or v < 0 or v > 1:
            return False
        px, py = self.cell_for(x, y)
        return bool(self.cells[py, px])


class MaskRasterizer:
    """
    Builds a Mask from a view box and boundary paths.

    Usage:
        rasterizer = MaskRasterizer(width=900)
        mask = rasterizer.build(boundary.view_box, boundary.paths)
        mask.contains(120.5, 340.0)
    """

    def __init__(self, width: int = MASK_WIDTH, curve_samples: int = 16):
        """
        Args:
            width: Raster width in cells (height is derived from the view box)
            curve_samples: Flattening resolution per curve segment
        """
        if width < 1:
            raise ValueError(f"Mask width must be >= 1, got {width}")
        self.width = width
        self.curve_samples = curve_samples

    def build(self, view_box: ViewBox, paths: BoundaryPaths) -> Mask:
        """
        Rasterize the filled interior of all paths.

        Raises:
            MaskBuildError: If there are no paths, none yields a fill, or the
                raster backend fails
        """
        if not paths:
            raise MaskBuildError("Cannot build mask: boundary has no paths")

        height = mask_height(self.width, view_box)
        cells = np.zeros((height, self.width), dtype=np.uint8)

        filled = 0
        for index, d in enumerate(paths):
            try:
                subpaths = fillable_subpaths(parse_path(d, self.curve_samples))
            except PathSyntaxError as e:
                logger.warning(f"Skipping path #{index}: {e}")
                continue
            if not subpaths:
                continue

            try:
                fill_nonzero(
                    cells,
                    to_pixel_polygons(subpaths, view_box, self.width, height),
                    [winding_sign(sp) for sp in subpaths],
                )
            except cv2.error as e:
                raise MaskBuildError(f"Mask render failed on path #{index}: {e}") from e
            filled += 1

        if filled == 0 or not cells.any():
            raise MaskBuildError("Boundary paths produced no fillable area")

        mask = Mask(cells=cells, view_box=view_box)
        logger.info(
            f"Mask built: {self.width}x{height}, {filled}/{len(paths)} path(s), "
            f"{mask.occupied_fraction:.1%} occupied"
        )
        return mask
