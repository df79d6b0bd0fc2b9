"""
Rendering Layer
===============

Bounded Context: Visualization of the presence map.

Responsibilities:
- Boundary fill and outline
- Clipped dot drawing
- Status text
- NO sampling, NO counting
"""

from presence_zone.rendering.visualizer import DotVisualizer

__all__ = ["DotVisualizer"]
