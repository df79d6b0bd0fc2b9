"""
Test SVG path parsing and flattening.

Usage:
    pytest test_path_parser.py
"""

import numpy as np
import pytest

from presence_zone.geometry.path_parser import (
    PathSyntaxError,
    fillable_subpaths,
    parse_path,
)


def test_absolute_polygon():
    (square,) = parse_path("M 10 10 L 90 10 L 90 90 L 10 90 Z")
    # Closing vertex is not repeated
    assert square.shape == (4, 2)
    np.testing.assert_allclose(square[0], [10, 10])
    np.testing.assert_allclose(square[2], [90, 90])


def test_relative_commands_and_implicit_lineto():
    # m followed by extra pairs means implicit relative lineto
    (square,) = parse_path("m10,10 80,0 0,80 -80,0z")
    np.testing.assert_allclose(square, [[10, 10], [90, 10], [90, 90], [10, 90]])


def test_horizontal_vertical():
    (poly,) = parse_path("M0 0H100V50h-50v50H0Z")
    np.testing.assert_allclose(
        poly, [[0, 0], [100, 0], [100, 50], [50, 50], [50, 100], [0, 100]]
    )


def test_multiple_subpaths():
    subpaths = parse_path("M0 0H10V10H0Z M20 20H30V30H20Z")
    assert len(subpaths) == 2
    np.testing.assert_allclose(subpaths[1][0], [20, 20])
    assert subpaths[1].shape == (4, 2)


def test_compact_numbers():
    (poly,) = parse_path("M.5.5L1e1-2.5L-3,4z")
    np.testing.assert_allclose(poly, [[0.5, 0.5], [10, -2.5], [-3, 4]])


def test_cubic_endpoints_and_sample_count():
    (curve,) = parse_path("M0 0 C 0 100 100 100 100 0", curve_samples=8)
    assert len(curve) == 1 + 8
    np.testing.assert_allclose(curve[-1], [100, 0], atol=1e-9)
    # Symmetric control polygon peaks at 75 in the middle
    np.testing.assert_allclose(curve[4], [50, 75], atol=1e-9)


def test_smooth_cubic_reflects_previous_control():
    (a,) = parse_path("M0 0 C 0 10 10 10 10 0 S 20 -10 20 0", curve_samples=4)
    (b,) = parse_path("M0 0 C 0 10 10 10 10 0 C 10 -10 20 -10 20 0", curve_samples=4)
    np.testing.assert_allclose(a, b, atol=1e-9)


def test_smooth_quadratic_reflects_previous_control():
    (a,) = parse_path("M0 0 Q 5 10 10 0 T 20 0", curve_samples=4)
    (b,) = parse_path("M0 0 Q 5 10 10 0 Q 15 -10 20 0", curve_samples=4)
    np.testing.assert_allclose(a, b, atol=1e-9)


def test_arc_half_circle():
    (arc,) = parse_path("M0 0 A10 10 0 0 1 20 0", curve_samples=16)
    assert len(arc) == 1 + 16
    np.testing.assert_allclose(arc[-1], [20, 0], atol=1e-9)
    # Every sample lies on the circle centred at (10, 0)
    np.testing.assert_allclose(np.hypot(arc[:, 0] - 10, arc[:, 1]), 10)


def test_full_circle_from_two_arcs():
    (circle,) = parse_path("M0 0 A10 10 0 1 0 20 0 A10 10 0 1 0 0 0 Z", curve_samples=8)
    assert circle[:, 0].min() == pytest.approx(0, abs=1e-9)
    assert circle[:, 0].max() == pytest.approx(20, abs=1e-9)
    assert np.ptp(circle[:, 1]) == pytest.approx(20, abs=1e-6)


def test_arc_radii_scaled_up_when_too_small():
    (arc,) = parse_path("M0 0 A1 1 0 0 1 20 0", curve_samples=8)
    np.testing.assert_allclose(arc[-1], [20, 0], atol=1e-9)
    np.testing.assert_allclose(np.hypot(arc[:, 0] - 10, arc[:, 1]), 10)


def test_blank_path_data():
    assert parse_path("") == []
    assert parse_path("  \n ") == []


@pytest.mark.parametrize("data", [
    "L 10 10",          # no initial moveto
    "10 10 L 20 20",    # numbers before any command
    "M 0 0 L 10",       # missing coordinate
    "M 0 0 Z 5",        # number after closepath
])
def test_malformed_path_data(data):
    with pytest.raises(PathSyntaxError):
        parse_path(data)


def test_curve_samples_validation():
    with pytest.raises(ValueError):
        parse_path("M0 0 L1 1", curve_samples=0)


def test_fillable_subpaths_drops_degenerate():
    subpaths = parse_path("M0 0 L10 0 M0 0 L10 0 L10 10 Z")
    assert len(subpaths) == 2
    assert len(fillable_subpaths(subpaths)) == 1
