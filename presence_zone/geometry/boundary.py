"""
Boundary Module
===============

Bounded Context: Loading the vector boundary that points must fall within.

Design:
- Immutable value objects (ViewBox, Boundary)
- Loader accepts a local path or an http(s) URL
- Fail-fast: anything unusable raises InitializationError
- Explicit fetch timeout (no unbounded waits on a missing asset)

Dependencies:
- xml.etree.ElementTree (SVG document parsing)
- urllib.request (remote fetch)
"""

import logging
import re
import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"

# Ordered path data strings, each in the view box frame
BoundaryPaths = Tuple[str, ...]

_LENGTH_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*(px)?\s*$")


class InitializationError(Exception):
    """Raised when the boundary asset is missing, malformed or has no usable paths."""
    pass


@dataclass(frozen=True)
class ViewBox:
    """
    Immutable rectangular coordinate frame shared by boundary, mask and points.

    Attributes:
        x: Left edge
        y: Top edge
        width: Frame width (> 0)
        height: Frame height (> 0)
    """

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        if self.width <= 0:
            raise ValueError(f"ViewBox width must be > 0, got {self.width}")
        if self.height <= 0:
            raise ValueError(f"ViewBox height must be > 0, got {self.height}")

    @classmethod
    def from_attribute(cls, value: str) -> "ViewBox":
        """Parse an SVG ``viewBox`` attribute (``"min-x min-y width height"``)."""
        parts = [p for p in re.split(r"[\s,]+", value.strip()) if p]
        if len(parts) != 4:
            raise ValueError(f"viewBox must have 4 numbers, got {value!r}")
        try:
            x, y, width, height = (float(p) for p in parts)
        except ValueError as e:
            raise ValueError(f"Invalid viewBox {value!r}: {e}")
        return cls(x=x, y=y, width=width, height=height)

    @property
    def aspect(self) -> float:
        """Height over width."""
        return self.height / self.width

    def to_unit(self, x: float, y: float) -> Tuple[float, float]:
        """Map view box coordinates to the unit square."""
        return (x - self.x) / self.width, (y - self.y) / self.height


@dataclass(frozen=True)
class Boundary:
    """
    Immutable boundary: an ordered, non-empty set of path data strings in a
    view box frame.
    """

    view_box: ViewBox
    paths: BoundaryPaths

    def __post_init__(self):
        if not self.paths:
            raise ValueError("Boundary must have at least one non-empty path")
        if any(not p.strip() for p in self.paths):
            raise ValueError("Boundary paths must be non-empty")

    @property
    def path_count(self) -> int:
        return len(self.paths)


def _local_name(tag: str) -> str:
    """Strip an ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _parse_length(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    match = _LENGTH_RE.match(value)
    return float(match.group(1)) if match else None


def parse_boundary(document: Union[str, bytes]) -> Boundary:
    """
    Parse an SVG document into a Boundary.

    The view box comes from the root ``viewBox`` attribute, or from numeric
    ``width``/``height`` attributes when absent. Every ``<path>`` element with
    non-empty ``d`` data contributes, in document order.

    Raises:
        InitializationError: If the document has no usable root, frame or paths
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise InitializationError(f"Boundary document is not valid XML: {e}") from e

    if _local_name(root.tag) != "svg":
        raise InitializationError(
            f"Boundary document root must be <svg>, got <{_local_name(root.tag)}>"
        )

    try:
        view_box_attr = root.get("viewBox")
        if view_box_attr is not None:
            view_box = ViewBox.from_attribute(view_box_attr)
        else:
            width = _parse_length(root.get("width"))
            height = _parse_length(root.get("height"))
            if width is None or height is None:
                raise ValueError("SVG has neither viewBox nor numeric width/height")
            view_box = ViewBox(x=0.0, y=0.0, width=width, height=height)
    except ValueError as e:
        raise InitializationError(f"Boundary has no usable view box: {e}") from e

    paths = tuple(
        element.get("d").strip()
        for element in root.iter()
        if _local_name(element.tag) == "path" and (element.get("d") or "").strip()
    )
    if not paths:
        raise InitializationError("SVG has no <path> with drawing commands")

    return Boundary(view_box=view_box, paths=paths)


class BoundaryLoader:
    """
    Fetches and parses the boundary asset.

    Usage:
        loader = BoundaryLoader("assets/boundary.svg")
        boundary = loader.load()

        remote = BoundaryLoader("https://example.org/map.svg", timeout=5.0)
    """

    def __init__(self, source: str, timeout: float = 10.0):
        """
        Args:
            source: Local file path or http(s) URL of the SVG document
            timeout: Network timeout in seconds for remote sources
        """
        self.source = str(source)
        self.timeout = timeout

    @property
    def is_remote(self) -> bool:
        return self.source.startswith(("http://", "https://"))

    def fetch(self) -> bytes:
        """
        Read the raw document bytes.

        Raises:
            InitializationError: If the asset is missing or unreachable
        """
        if self.is_remote:
            try:
                with urllib.request.urlopen(self.source, timeout=self.timeout) as response:
                    return response.read()
            except (urllib.error.URLError, OSError) as e:
                raise InitializationError(
                    f"Boundary asset unreachable: {self.source} ({e})"
                ) from e

        path = Path(self.source)
        if not path.is_file():
            raise InitializationError(f"Boundary asset not found: {self.source}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise InitializationError(f"Cannot read boundary asset {self.source}: {e}") from e

    def load(self) -> Boundary:
        """Fetch and parse the boundary document."""
        boundary = parse_boundary(self.fetch())
        logger.info(
            f"Boundary loaded from {self.source}: {boundary.path_count} path(s), "
            f"viewBox={boundary.view_box}"
        )
        return boundary
