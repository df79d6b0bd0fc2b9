"""
Dot Visualizer Module
=====================

Renders the boundary, the placed dots and a status line into a BGR frame.

Design:
- Implements the PointRenderer protocol (deltas only, no registry access)
- Dots are drawn on their own layer and composited through the clip raster
- Uses supervision drawing utilities for outline and text

Dependencies:
- supervision (draw utilities, Color, Point)
- opencv (circles)
- numpy (frames, compositing)
"""

from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np
import supervision as sv

from presence_zone.geometry.boundary import ViewBox
from presence_zone.geometry.clip import ClipRegion
from presence_zone.geometry.mask import mask_height
from presence_zone.points.registry import Point


class DotVisualizer:
    """
    Stateful renderer for the presence map.

    Holds only what it needs to draw: visible dot positions, the installed
    clip and the current status text.

    Usage:
        visualizer = DotVisualizer(boundary.view_box, frame_width=900)
        visualizer.install_clip(clip)
        registry = PointRegistry(sampler, renderer=visualizer)
        registry.resize(12)
        visualizer.set_status("Connected", count=12)
        frame = visualizer.render()
    """

    def __init__(
        self,
        view_box: ViewBox,
        frame_width: int = 900,
        dot_radius: int = 6,
        background_color: sv.Color = sv.Color(r=24, g=24, b=28),
        fill_color: sv.Color = sv.Color(r=60, g=90, b=140),
        outline_color: sv.Color = sv.Color(r=200, g=210, b=230),
        dot_color: sv.Color = sv.Color(r=255, g=196, b=0),
        text_color: sv.Color = sv.Color(r=255, g=255, b=255),
        text_background_color: sv.Color = sv.Color(r=0, g=0, b=0),
        fill_opacity: float = 0.35,
        outline_thickness: int = 2,
        text_scale: float = 0.6,
        text_thickness: int = 1,
        text_padding: int = 8,
    ):
        """
        Args:
            view_box: Coordinate frame of the points and the clip
            frame_width: Output width in pixels (height follows the view box)
            dot_radius: Dot radius in pixels
            background_color: Frame background
            fill_color: Boundary fill color
            outline_color: Boundary outline color
            dot_color: Dot color
            text_color: Status text color
            text_background_color: Status text box color
            fill_opacity: Opacity of the boundary fill (0-1)
            outline_thickness: Outline thickness in pixels
            text_scale: Scale factor for text
            text_thickness: Thickness for text
            text_padding: Padding for text background
        """
        if frame_width < 1:
            raise ValueError(f"frame_width must be >= 1, got {frame_width}")
        if dot_radius < 1:
            raise ValueError(f"dot_radius must be >= 1, got {dot_radius}")
        if not 0.0 <= fill_opacity <= 1.0:
            raise ValueError(f"fill_opacity must be in [0, 1], got {fill_opacity}")

        self.view_box = view_box
        self.width = frame_width
        self.height = mask_height(frame_width, view_box)
        self.dot_radius = dot_radius
        self.background_color = background_color
        self.fill_color = fill_color
        self.outline_color = outline_color
        self.dot_color = dot_color
        self.text_color = text_color
        self.text_background_color = text_background_color
        self.fill_opacity = fill_opacity
        self.outline_thickness = outline_thickness
        self.text_scale = text_scale
        self.text_thickness = text_thickness
        self.text_padding = text_padding

        self._dots: Dict[int, Tuple[int, int]] = {}
        self._clip: Optional[ClipRegion] = None
        self._outline: List[np.ndarray] = []
        self._status = ""
        self._count: Optional[int] = None

    @property
    def frame_size(self) -> Tuple[int, int]:
        """(width, height) of rendered frames."""
        return self.width, self.height

    @property
    def dot_count(self) -> int:
        return len(self._dots)

    @property
    def status_text(self) -> str:
        if self._count is None:
            return self._status
        return f"{self._status} | online: {self._count}"

    def to_pixel(self, x: float, y: float) -> Tuple[int, int]:
        """Map view box coordinates to integer pixel coordinates."""
        u, v = self.view_box.to_unit(x, y)
        return int(round(u * self.width - 0.5)), int(round(v * self.height - 0.5))

    # PointRenderer protocol

    def add_point(self, point: Point) -> None:
        self._dots[point.id] = self.to_pixel(point.x, point.y)

    def remove_point(self, point_id: int) -> None:
        self._dots.pop(point_id, None)

    def install_clip(self, clip: ClipRegion) -> None:
        self._clip = clip
        self._outline = [
            np.array([self.to_pixel(px, py) for px, py in polygon], dtype=np.int32)
            for subpaths in clip.paths
            for polygon in subpaths
        ]

    def set_status(self, text: str, count: Optional[int] = None) -> None:
        self._status = text
        self._count = count

    def render(self) -> np.ndarray:
        """
        Draw a fresh frame.

        Returns:
            HxWx3 BGR uint8 frame
        """
        frame = np.full(
            (self.height, self.width, 3),
            self.background_color.as_bgr(),
            dtype=np.uint8,
        )

        clip_cells = None
        if self._clip is not None:
            clip_cells = self._clip.raster(self.width, self.height) > 0
            self._fill_boundary(frame, clip_cells)
            for polygon in self._outline:
                frame = sv.draw_polygon(
                    scene=frame,
                    polygon=polygon,
                    color=self.outline_color,
                    thickness=self.outline_thickness,
                )

        frame = self._draw_dots(frame, clip_cells)

        if self.status_text:
            frame = sv.draw_text(
                scene=frame,
                text=self.status_text,
                text_anchor=sv.Point(x=self.width // 2, y=20),
                text_color=self.text_color,
                text_scale=self.text_scale,
                text_thickness=self.text_thickness,
                text_padding=self.text_padding,
                background_color=self.text_background_color,
            )

        return frame

    def _fill_boundary(self, frame: np.ndarray, clip_cells: np.ndarray) -> None:
        fill = np.array(self.fill_color.as_bgr(), dtype=np.float32)
        region = frame[clip_cells].astype(np.float32)
        blended = region * (1.0 - self.fill_opacity) + fill * self.fill_opacity
        frame[clip_cells] = blended.astype(np.uint8)

    def _draw_dots(self, frame: np.ndarray, clip_cells: Optional[np.ndarray]) -> np.ndarray:
        if not self._dots:
            return frame

        layer = frame.copy()
        for cx, cy in self._dots.values():
            cv2.circle(
                layer,
                (cx, cy),
                self.dot_radius,
                self.dot_color.as_bgr(),
                thickness=-1,
                lineType=cv2.LINE_AA,
            )

        if clip_cells is None:
            return layer

        # Dots only show inside the clip
        frame[clip_cells] = layer[clip_cells]
        return frame
