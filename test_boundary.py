"""
Test boundary document parsing and loading.

Usage:
    pytest test_boundary.py
"""

import pytest

from presence_zone.geometry.boundary import (
    BoundaryLoader,
    InitializationError,
    ViewBox,
    parse_boundary,
)

SQUARE_SVG = """<?xml version="1.0"?>
<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 100 100">
  <g><path d="M 10 10 H 90 V 90 H 10 Z"/></g>
  <path d="   "/>
  <path d="M 0 0 L 5 0 L 5 5 Z"/>
</svg>
"""


def test_view_box_from_attribute():
    vb = ViewBox.from_attribute("-10, 20 300 150")
    assert vb == ViewBox(x=-10, y=20, width=300, height=150)
    assert vb.aspect == pytest.approx(0.5)
    assert vb.to_unit(140, 95) == pytest.approx((0.5, 0.5))


@pytest.mark.parametrize("value", ["0 0 100", "0 0 0 100", "0 0 100 -5", "a b c d"])
def test_view_box_rejects_invalid(value):
    with pytest.raises(ValueError):
        ViewBox.from_attribute(value)


def test_parse_collects_non_empty_paths_in_order():
    boundary = parse_boundary(SQUARE_SVG)
    assert boundary.view_box == ViewBox(0, 0, 100, 100)
    assert boundary.paths == ("M 10 10 H 90 V 90 H 10 Z", "M 0 0 L 5 0 L 5 5 Z")
    assert boundary.path_count == 2


def test_parse_falls_back_to_width_height():
    boundary = parse_boundary(
        '<svg xmlns="http://www.w3.org/2000/svg" width="640px" height="480">'
        '<path d="M0 0H10V10Z"/></svg>'
    )
    assert boundary.view_box == ViewBox(0, 0, 640, 480)


@pytest.mark.parametrize("document, reason", [
    ("<svg", "not valid XML"),
    ('<html><path d="M0 0H1V1Z"/></html>', "root must be <svg>"),
    ('<svg><path d="M0 0H1V1Z"/></svg>', "view box"),
    ('<svg viewBox="0 0 10 10"><path d=""/><rect/></svg>', "no <path>"),
])
def test_parse_rejects_unusable_documents(document, reason):
    with pytest.raises(InitializationError, match=reason):
        parse_boundary(document)


def test_loader_reads_local_file(tmp_path):
    svg = tmp_path / "boundary.svg"
    svg.write_text(SQUARE_SVG, encoding="utf-8")

    loader = BoundaryLoader(str(svg))
    assert not loader.is_remote
    assert loader.load().path_count == 2


def test_loader_missing_file(tmp_path):
    loader = BoundaryLoader(str(tmp_path / "missing.svg"))
    with pytest.raises(InitializationError, match="not found"):
        loader.load()


def test_loader_recognizes_urls():
    assert BoundaryLoader("https://example.org/map.svg").is_remote
    assert BoundaryLoader("http://localhost:8000/map.svg", timeout=1.0).timeout == 1.0
