"""
Configuration schema for the counting service.
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from presence_mqtt import MQTTConfig


@dataclass(frozen=True)
class CounterConfig:
    """
    Counting service configuration.

    Loaded from YAML and validated at startup.
    """

    service_id: str = "presence_counter"
    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)

    def __post_init__(self):
        """Validate counter configuration."""
        if not self.service_id:
            raise ValueError("service_id cannot be empty")
        for ch in "/+#":
            if ch in self.service_id:
                raise ValueError(f"service_id must not contain '{ch}', got {self.service_id!r}")

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "CounterConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            service_id: "presence_counter"

            mqtt_config:
              broker: "localhost"
              port: 1883
              topic_prefix: "presence_map"
              qos: 1
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(
            service_id=data.get("service_id", "presence_counter"),
            mqtt_config=MQTTConfig.from_dict(data.get("mqtt_config")),
        )
