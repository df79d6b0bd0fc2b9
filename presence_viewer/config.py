"""
Configuration schema for the presence map viewer.

This module defines the configuration structure for the viewer, including
the boundary source, sampling parameters, rendering output and the optional
MQTT count channel (absent = demo mode).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import supervision as sv
import yaml

from presence_mqtt import MQTTConfig

RGB = Tuple[int, int, int]


def _validate_rgb(name: str, value: RGB) -> None:
    if len(value) != 3 or any(not 0 <= c <= 255 for c in value):
        raise ValueError(f"{name} must be three values in [0, 255], got {value}")


@dataclass(frozen=True)
class SamplingConfig:
    """Mask resolution and sampler parameters."""

    seed: int = 123456
    mask_width: int = 900
    inset: float = 0.04
    max_tries: int = 5000
    curve_samples: int = 16

    def __post_init__(self):
        """Validate sampling configuration."""
        if self.mask_width < 1:
            raise ValueError(f"mask_width must be >= 1, got {self.mask_width}")
        if not 0.0 <= self.inset < 0.5:
            raise ValueError(f"inset must be in [0.0, 0.5), got {self.inset}")
        if self.max_tries < 1:
            raise ValueError(f"max_tries must be >= 1, got {self.max_tries}")
        if self.curve_samples < 1:
            raise ValueError(f"curve_samples must be >= 1, got {self.curve_samples}")


@dataclass(frozen=True)
class RenderConfig:
    """
    Rendering output.

    output:
    - "window": OpenCV window, q/Esc quits
    - "snapshot": write one PNG after snapshot_after seconds, then exit
    - "none": headless (counts still applied and logged)
    """

    output: str = "window"
    frame_width: int = 900
    dot_radius: int = 6
    fps: int = 30
    window_name: str = "Presence Map"
    snapshot_path: Path = Path("presence_map.png")
    snapshot_after: float = 3.0

    background_color: RGB = (24, 24, 28)
    fill_color: RGB = (60, 90, 140)
    outline_color: RGB = (200, 210, 230)
    dot_color: RGB = (255, 196, 0)

    def __post_init__(self):
        """Validate render configuration."""
        valid_outputs = {"window", "snapshot", "none"}
        if self.output not in valid_outputs:
            raise ValueError(
                f"Invalid output: {self.output}. "
                f"Must be one of {valid_outputs}"
            )
        if not 1 <= self.frame_width <= 4096:
            raise ValueError(f"frame_width must be in [1, 4096], got {self.frame_width}")
        if self.dot_radius < 1:
            raise ValueError(f"dot_radius must be >= 1, got {self.dot_radius}")
        if not 1 <= self.fps <= 120:
            raise ValueError(f"fps must be in [1, 120], got {self.fps}")
        if self.snapshot_after < 0:
            raise ValueError(f"snapshot_after must be >= 0, got {self.snapshot_after}")
        for name in ("background_color", "fill_color", "outline_color", "dot_color"):
            _validate_rgb(name, getattr(self, name))

    def color(self, name: str) -> sv.Color:
        """Configured color as a supervision Color."""
        r, g, b = getattr(self, f"{name}_color")
        return sv.Color(r=r, g=g, b=b)


@dataclass(frozen=True)
class ViewerConfig:
    """
    Main configuration for the viewer.

    Loaded from YAML (or built from CLI flags) and validated at startup.
    """

    boundary_source: str
    fetch_timeout: float = 10.0

    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    # None = demo mode
    mqtt_config: Optional[MQTTConfig] = None
    client_id: Optional[str] = None

    demo_period: float = 1.0
    demo_cycle: int = 50

    def __post_init__(self):
        """Validate viewer configuration."""
        if not self.boundary_source:
            raise ValueError("boundary_source cannot be empty")
        if self.fetch_timeout <= 0:
            raise ValueError(f"fetch_timeout must be > 0, got {self.fetch_timeout}")
        if self.demo_period <= 0:
            raise ValueError(f"demo_period must be > 0, got {self.demo_period}")
        if self.demo_cycle < 1:
            raise ValueError(f"demo_cycle must be >= 1, got {self.demo_cycle}")

    @property
    def demo_mode(self) -> bool:
        return self.mqtt_config is None

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "ViewerConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            boundary_source: "assets/boundary.svg"
            fetch_timeout: 10.0

            sampling:
              seed: 123456
              mask_width: 900

            render:
              output: "window"
              frame_width: 900
              dot_color: [255, 196, 0]

            mqtt_config:          # omit for demo mode
              broker: "localhost"
              port: 1883
              topic_prefix: "presence_map"
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        sampling = SamplingConfig(**data.get("sampling", {}))

        render_data = dict(data.get("render", {}))
        if "snapshot_path" in render_data:
            render_data["snapshot_path"] = Path(render_data["snapshot_path"])
        for key in ("background_color", "fill_color", "outline_color", "dot_color"):
            if key in render_data:
                render_data[key] = tuple(render_data[key])
        render = RenderConfig(**render_data)

        mqtt_data = data.get("mqtt_config")
        mqtt_config = MQTTConfig.from_dict(mqtt_data) if mqtt_data else None

        return cls(
            boundary_source=data["boundary_source"],
            fetch_timeout=data.get("fetch_timeout", 10.0),
            sampling=sampling,
            render=render,
            mqtt_config=mqtt_config,
            client_id=data.get("client_id"),
            demo_period=data.get("demo_period", 1.0),
            demo_cycle=data.get("demo_cycle", 50),
        )
