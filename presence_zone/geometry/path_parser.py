"""
SVG Path Parser
===============

Turns an SVG path ``d`` attribute into flattened, closed sub-polygons.

Design:
- svgpathtools does the parsing (all commands, relative forms, shorthands)
- Every continuous sub-path becomes an Nx2 float64 array in the path's frame
- Lines contribute their endpoint, curves and arcs ``curve_samples`` points
"""

from typing import List, Sequence

import numpy as np
from svgpathtools import Line, parse_path as svg_parse_path


class PathSyntaxError(ValueError):
    """Raised when path data cannot be parsed."""
    pass


def _flatten(subpath, curve_samples: int) -> np.ndarray:
    points = [subpath[0].start]
    ts = np.linspace(0.0, 1.0, curve_samples + 1)[1:]
    for seg in subpath:
        if isinstance(seg, Line):
            points.append(seg.end)
        else:
            points.extend(seg.point(t) for t in ts)

    pts = np.array([(p.real, p.imag) for p in points], dtype=np.float64)
    # Fill semantics close every sub-path, drop the repeated start
    if len(pts) > 1 and np.allclose(pts[0], pts[-1]):
        pts = pts[:-1]
    return pts


def parse_path(d: str, curve_samples: int = 16) -> List[np.ndarray]:
    """
    Parse SVG path data into flattened sub-polygons.

    Args:
        d: Path data string (the ``d`` attribute)
        curve_samples: Points generated per curve or arc segment

    Returns:
        List of Nx2 float64 arrays, one per continuous sub-path. The closing
        vertex is not repeated.

    Raises:
        PathSyntaxError: If the data is malformed
    """
    if curve_samples < 1:
        raise ValueError(f"curve_samples must be >= 1, got {curve_samples}")

    data = d.strip(" \t\r\n,")
    if not data:
        return []
    if data[0] not in "Mm":
        raise PathSyntaxError("Path data must begin with a moveto command")

    try:
        path = svg_parse_path(data)
    except (ValueError, IndexError) as e:
        # IndexError: the command ran out of coordinates
        raise PathSyntaxError(f"Malformed path data: {e}") from e
    except AssertionError as e:
        # Raised by svgpathtools for degenerate arcs
        raise PathSyntaxError(f"Degenerate segment in path data: {e}") from e

    if len(path) == 0:
        return []
    return [_flatten(sub, curve_samples) for sub in path.continuous_subpaths() if len(sub)]


def fillable_subpaths(subpaths: Sequence[np.ndarray]) -> List[np.ndarray]:
    """Keep only sub-polygons that can enclose area (3+ vertices)."""
    return [sp for sp in subpaths if len(sp) >= 3]
