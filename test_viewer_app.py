"""
Test the viewer application pipeline (headless).

Usage:
    pytest test_viewer_app.py
"""

import pytest

from presence_viewer import (
    CountUpdate,
    RenderConfig,
    StateChange,
    Status,
    SyncState,
    ViewerConfig,
)
from run_viewer import ViewerApp

BOUNDARY_SVG = """<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 1000 700">
  <path d="M 100 100 L 900 100 L 900 600 L 100 600 Z M 400 300 L 400 400 L 600 400 L 600 300 Z"/>
  <path d="M 50 650 Q 80 620 110 650 T 170 650 Z"/>
</svg>
"""


@pytest.fixture
def boundary_file(tmp_path):
    path = tmp_path / "boundary.svg"
    path.write_text(BOUNDARY_SVG, encoding="utf-8")
    return path


def _config(source, **render):
    render.setdefault("output", "none")
    return ViewerConfig(
        boundary_source=str(source),
        render=RenderConfig(**render),
        demo_period=60.0,
    )


def test_setup_reaches_ready(boundary_file):
    app = ViewerApp(_config(boundary_file))
    assert app.setup()

    assert app.status.status is Status.READY
    assert app.driver.is_demo
    assert app.visualizer.frame_size == (900, 630)
    assert app.error is None


def test_counts_drive_dots(boundary_file):
    app = ViewerApp(_config(boundary_file))
    app.setup()

    app.driver.apply(StateChange(SyncState.DEMO))
    app.driver.apply(CountUpdate(online=5))
    assert app.registry.ids() == (1, 2, 3, 4, 5)
    assert app.visualizer.dot_count == 5
    assert app.visualizer.status_text == "Demo mode | online: 5"

    app.driver.apply(CountUpdate(online=2))
    assert app.visualizer.dot_count == 2

    frame = app.render()
    assert frame.shape == (630, 900, 3)


def test_missing_boundary_is_terminal(tmp_path):
    app = ViewerApp(_config(tmp_path / "missing.svg"))
    assert not app.setup()

    assert app.status.is_error
    assert "not found" in app.error
    assert app.driver is None
    assert app.visualizer.status_text.startswith("Error: ")
    assert app.run() == 1


def test_boundary_without_area_is_terminal(tmp_path):
    path = tmp_path / "line.svg"
    path.write_text(
        '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10">'
        '<path d="M 0 0 L 10 10"/></svg>',
        encoding="utf-8",
    )
    app = ViewerApp(_config(path))
    assert not app.setup()
    assert app.status.is_error


def test_snapshot_output(boundary_file, tmp_path):
    snapshot = tmp_path / "out" / "map.png"
    app = ViewerApp(_config(
        boundary_file, output="snapshot", snapshot_path=snapshot, snapshot_after=0.0
    ))
    app.setup()

    assert app.run() == 0
    assert snapshot.exists()
