#!/usr/bin/env python3
"""
Presence Map Viewer - Entry Point
=================================

This script starts the viewer, which:
- Loads the boundary SVG (file or URL)
- Builds the occupancy mask and the render clip
- Places one dot per online viewer at reproducible positions
- Follows the live count over MQTT, or runs in demo mode (0..49, 1/s)

Usage:
    python run_viewer.py --boundary assets/boundary.svg                  # demo mode
    python run_viewer.py --boundary assets/boundary.svg --broker localhost
    python run_viewer.py --config config/viewer.yaml --output snapshot --snapshot map.png

Lifecycle:
    1. Load configuration (YAML and/or CLI flags)
    2. Setup logging (console + file)
    3. Load boundary -> build mask -> ready
    4. Start count source (live channel or demo)
    5. Apply counts and render until stopped
    6. Graceful shutdown

Outputs:
    - window: OpenCV window (q or Esc quits)
    - snapshot: one PNG after a short warm-up
    - none: headless
"""

import argparse
import dataclasses
import logging
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from presence_mqtt import LogEvent, MQTTConfig, create_logger
from presence_viewer import Status, StatusBoard, SyncDriver, ViewerConfig
from presence_zone import (
    BoundaryLoader,
    ClipInstaller,
    DeterministicSampler,
    DotVisualizer,
    InitializationError,
    MaskBuildError,
    MaskRasterizer,
    PointRegistry,
    ViewBox,
)

DEFAULT_BOUNDARY = "assets/boundary.svg"
_QUIT_KEYS = {ord('q'), 27}


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging for the viewer.

    Args:
        log_file: Optional path to log file

    Returns:
        Logger instance for the viewer
    """
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ]
    )

    return logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Main Application
# ─────────────────────────────────────────────────────────────────────────────

class ViewerApp:
    """
    Main application wrapper for the viewer.

    Handles:
    - Pipeline construction (boundary, mask, clip, sampler, registry)
    - Count source lifecycle (SyncDriver)
    - Output loop (window / snapshot / headless)
    - Initialization errors: shown in the status line, never retried
    """

    def __init__(self, config: ViewerConfig, log_file: Optional[Path] = None):
        self.config = config
        self.logger = setup_logging(log_file)
        self.events = create_logger(component="viewer")

        self.status = StatusBoard(sink=self._on_status)

        # Components (initialized in setup())
        self.visualizer: Optional[DotVisualizer] = None
        self.registry: Optional[PointRegistry] = None
        self.driver: Optional[SyncDriver] = None

        self.error: Optional[str] = None
        self._frame: Optional[np.ndarray] = None
        self._stop = threading.Event()
        self._stopped = False

    def _on_status(self, text: str, count: Optional[int]) -> None:
        if self.visualizer is not None:
            self.visualizer.set_status(text, count)

    def _build_visualizer(self, view_box: ViewBox) -> DotVisualizer:
        render = self.config.render
        return DotVisualizer(
            view_box,
            frame_width=render.frame_width,
            dot_radius=render.dot_radius,
            background_color=render.color("background"),
            fill_color=render.color("fill"),
            outline_color=render.color("outline"),
            dot_color=render.color("dot"),
        )

    def setup(self) -> bool:
        """
        Build the pipeline: loading -> building mask -> ready.

        Returns:
            True when ready, False after an initialization error
        """
        sampling = self.config.sampling
        try:
            self.status.set(Status.LOADING, self.config.boundary_source)
            boundary = BoundaryLoader(
                self.config.boundary_source, timeout=self.config.fetch_timeout
            ).load()
            self.events.info(
                event=LogEvent.BOUNDARY_LOADED,
                message="Boundary loaded",
                metadata={'source': self.config.boundary_source, 'paths': boundary.path_count}
            )

            self.status.set(Status.BUILDING_MASK)
            mask = MaskRasterizer(
                width=sampling.mask_width, curve_samples=sampling.curve_samples
            ).build(boundary.view_box, boundary.paths)
            self.events.info(
                event=LogEvent.MASK_BUILT,
                message="Mask built",
                metadata={
                    'width': mask.width,
                    'height': mask.height,
                    'occupied': round(mask.occupied_fraction, 4),
                }
            )

            clip = ClipInstaller(boundary.view_box).install(boundary.paths)
        except (InitializationError, MaskBuildError) as e:
            self._fail(e)
            return False

        self.visualizer = self._build_visualizer(boundary.view_box)
        self.visualizer.install_clip(clip)

        sampler = DeterministicSampler(
            mask,
            seed=sampling.seed,
            inset=sampling.inset,
            max_tries=sampling.max_tries,
        )
        self.registry = PointRegistry(sampler, renderer=self.visualizer)
        self.driver = SyncDriver(
            registry=self.registry,
            status=self.status,
            mqtt_config=self.config.mqtt_config,
            logger=self.events,
            demo_period=self.config.demo_period,
            demo_cycle=self.config.demo_cycle,
            client_id=self.config.client_id,
        )

        self.status.set(Status.READY)
        self.logger.info(
            f"Viewer ready ({'demo mode' if self.config.demo_mode else self.config.mqtt_config.address})"
        )
        return True

    def _fail(self, error: Exception) -> None:
        self.error = str(error)
        self.events.error(
            event=LogEvent.INITIALIZATION_ERROR,
            message="Visualization could not be initialized",
            exc_info=error,
            metadata={'source': self.config.boundary_source}
        )

        # Plain frame so the error is still visible
        width = self.config.render.frame_width
        self.visualizer = self._build_visualizer(ViewBox(0.0, 0.0, float(width), width * 2 / 3))
        self.status.set(Status.ERROR, self.error)

    def render(self) -> np.ndarray:
        if self.visualizer is None:
            raise RuntimeError("Viewer not initialized. Call setup() first.")
        return self.visualizer.render()

    def write_snapshot(self, path: Optional[Path] = None) -> Path:
        path = path or self.config.render.snapshot_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if not cv2.imwrite(str(path), self.render()):
            raise OSError(f"Cannot write snapshot to {path}")
        self.logger.info(f"Snapshot written: {path}")
        return path

    def run(self) -> int:
        """
        Apply counts and render until stopped.

        Returns:
            Process exit code (1 after an initialization error)
        """
        if self.visualizer is None:
            raise RuntimeError("Viewer not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        render = self.config.render
        if self.error and render.output == "none":
            return 1

        interval = 1.0 / render.fps
        deadline = time.monotonic() + render.snapshot_after

        try:
            if self.driver is not None:
                self.driver.start(timeout=self.config.fetch_timeout)

            while not self._stop.is_set():
                applied = self.driver.process_pending() if self.driver else 0
                if applied or self._frame is None:
                    self._frame = self.render()

                if render.output == "window":
                    cv2.imshow(render.window_name, self._frame)
                    if cv2.waitKey(max(1, int(interval * 1000))) & 0xFF in _QUIT_KEYS:
                        break
                elif render.output == "snapshot":
                    if time.monotonic() >= deadline:
                        self.write_snapshot()
                        break
                    self._stop.wait(interval)
                else:
                    self._stop.wait(interval)
        finally:
            self.stop()

        return 1 if self.error else 0

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True

        if self.driver is not None:
            self.driver.stop()
        if self.config.render.output == "window":
            cv2.destroyAllWindows()
        self.logger.info("Viewer stopped")

    def _signal_handler(self, signum, frame):
        self.logger.info(f"Received signal {signal.Signals(signum).name} ({signum})")
        self._stop.set()


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Presence Map Viewer - one dot per online viewer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Demo mode (no broker)
  python run_viewer.py --boundary assets/boundary.svg

  # Live count from a broker
  python run_viewer.py --boundary assets/boundary.svg --broker localhost

  # Headless PNG
  python run_viewer.py --boundary assets/boundary.svg --snapshot out/map.png
        """
    )

    parser.add_argument('--config', type=Path, help='Path to viewer configuration YAML file')
    parser.add_argument('--boundary', help=f'Boundary SVG path or URL (default: {DEFAULT_BOUNDARY})')
    parser.add_argument('--broker', help='MQTT broker host (omit for demo mode)')
    parser.add_argument('--port', type=int, help='MQTT broker port (default: 1883)')
    parser.add_argument('--topic-prefix', help='Topic prefix (default: presence_map)')
    parser.add_argument('--seed', type=int, help='Sampler seed (default: 123456)')
    parser.add_argument('--output', choices=['window', 'snapshot', 'none'], help='Output mode')
    parser.add_argument('--snapshot', type=Path, help='Write a PNG snapshot to this path and exit')
    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/viewer.log'),
        help='Path to log file (default: logs/viewer.log)'
    )
    parser.add_argument('--no-log-file', action='store_true', help='Console logging only')

    return parser.parse_args(argv)


def build_config(args) -> ViewerConfig:
    """Merge the optional YAML file with CLI overrides."""
    if args.config:
        config = ViewerConfig.from_yaml(args.config)
    else:
        config = ViewerConfig(boundary_source=args.boundary or DEFAULT_BOUNDARY)

    changes = {}
    if args.boundary:
        changes['boundary_source'] = args.boundary
    if args.seed is not None:
        changes['sampling'] = dataclasses.replace(config.sampling, seed=args.seed)

    render_changes = {}
    if args.output:
        render_changes['output'] = args.output
    if args.snapshot:
        render_changes['snapshot_path'] = args.snapshot
        render_changes['output'] = 'snapshot'
    if render_changes:
        changes['render'] = dataclasses.replace(config.render, **render_changes)

    if args.broker or config.mqtt_config is not None:
        mqtt_config = config.mqtt_config or MQTTConfig()
        mqtt_changes = {}
        if args.broker:
            mqtt_changes['broker'] = args.broker
        if args.port is not None:
            mqtt_changes['port'] = args.port
        if args.topic_prefix:
            mqtt_changes['topic_prefix'] = args.topic_prefix
        changes['mqtt_config'] = dataclasses.replace(mqtt_config, **mqtt_changes)

    return dataclasses.replace(config, **changes)


def main(argv=None):
    args = parse_args(argv)
    log_file = None if args.no_log_file else args.log_file

    if args.config and not args.config.exists():
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    try:
        config = build_config(args)
    except (ValueError, TypeError) as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    app = ViewerApp(config=config, log_file=log_file)
    try:
        app.setup()
        sys.exit(app.run())
    except Exception as e:
        app.logger.error(f"Fatal error: {e}", exc_info=True)
        app.stop()
        sys.exit(1)


if __name__ == '__main__':
    main()
