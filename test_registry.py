"""
Test point registry reconciliation.

Usage:
    pytest test_registry.py
"""

import pytest

from presence_zone.geometry import MaskRasterizer, ViewBox
from presence_zone.points import PointRegistry, RecordingRenderer
from presence_zone.sampling import DeterministicSampler


@pytest.fixture
def mask():
    return MaskRasterizer(width=200).build(
        ViewBox(0, 0, 100, 100), ("M 0 0 H 100 V 100 H 0 Z",)
    )


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def registry(mask, renderer):
    return PointRegistry(DeterministicSampler(mask, seed=123456), renderer)


def test_resize_zero_on_empty_is_noop(registry, renderer):
    result = registry.resize(0)
    assert not result.changed
    assert registry.size() == 0
    assert renderer.deltas == []


def test_grow_then_shrink_drops_newest(registry, renderer):
    result = registry.resize(5)
    assert result.added == 5
    assert registry.ids() == (1, 2, 3, 4, 5)

    renderer.deltas.clear()
    result = registry.resize(2)
    assert result.removed == 3
    assert registry.ids() == (1, 2)
    assert renderer.deltas == [("remove", 5), ("remove", 4), ("remove", 3)]


def test_ids_are_never_reused(registry, renderer):
    registry.resize(5)
    registry.resize(2)
    renderer.deltas.clear()

    registry.resize(3)
    assert registry.ids() == (1, 2, 6)
    assert renderer.deltas == [("add", 6)]


def test_surviving_points_keep_positions(registry):
    registry.resize(4)
    before = registry.points()[:2]
    registry.resize(1)
    registry.resize(2)
    assert registry.points()[0] == before[0]
    assert registry.points()[1].id == 5


def test_same_target_is_noop(registry, renderer):
    registry.resize(3)
    renderer.deltas.clear()
    result = registry.resize(3)
    assert not result.changed
    assert renderer.deltas == []


def test_negative_target_clears(registry):
    registry.resize(4)
    result = registry.resize(-3)
    assert result.removed == 4
    assert len(registry) == 0


@pytest.mark.parametrize("target", [True, 2.0, "3", None])
def test_non_integer_target_rejected(registry, target):
    with pytest.raises(TypeError):
        registry.resize(target)


def test_renderer_mirrors_registry(registry, renderer, mask):
    registry.resize(10)
    registry.resize(6)
    assert sorted(renderer.visible) == list(registry.ids())
    for point in registry.points():
        assert renderer.visible[point.id] == point
        assert mask.contains(point.x, point.y)


def test_layout_reproducible_for_same_seed(mask):
    first = PointRegistry(DeterministicSampler(mask, seed=9))
    second = PointRegistry(DeterministicSampler(mask, seed=9))
    first.resize(8)
    second.resize(3)
    second.resize(8)
    # Growth always continues the same generator sequence
    assert [(p.x, p.y) for p in first.points()] == [(p.x, p.y) for p in second.points()]


def test_works_without_renderer(mask):
    registry = PointRegistry(DeterministicSampler(mask))
    assert registry.resize(2).size == 2
