"""
MQTT connection configuration shared by the counting service and viewers.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

DEFAULT_TOPIC_PREFIX = "presence_map"


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration and topic layout."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1  # Presence and counts are low rate, deliver at least once
    keepalive: int = 60

    topic_prefix: str = DEFAULT_TOPIC_PREFIX

    # Reconnect with exponential backoff (seconds)
    reconnect: bool = True
    reconnect_min_delay: int = 1
    reconnect_max_delay: int = 30

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not self.broker:
            raise ValueError("MQTT broker cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

        if self.keepalive < 1:
            raise ValueError(f"keepalive must be >= 1, got {self.keepalive}")

        prefix = self.topic_prefix
        if not prefix or prefix.startswith("/") or prefix.endswith("/"):
            raise ValueError(
                f"topic_prefix must be non-empty without leading/trailing '/', got {prefix!r}"
            )
        if "+" in prefix or "#" in prefix:
            raise ValueError(f"topic_prefix must not contain wildcards, got {prefix!r}")

        if self.reconnect_min_delay < 1:
            raise ValueError(
                f"reconnect_min_delay must be >= 1, got {self.reconnect_min_delay}"
            )
        if self.reconnect_max_delay < self.reconnect_min_delay:
            raise ValueError(
                f"reconnect_max_delay ({self.reconnect_max_delay}) must be >= "
                f"reconnect_min_delay ({self.reconnect_min_delay})"
            )

    @property
    def address(self) -> str:
        return f"{self.broker}:{self.port}"

    # Topic layout

    def presence_topic(self, client_id: str) -> str:
        return f"{self.topic_prefix}/presence/{client_id}"

    @property
    def presence_wildcard(self) -> str:
        return f"{self.topic_prefix}/presence/+"

    def count_topic(self, client_id: str) -> str:
        return f"{self.topic_prefix}/clients/{client_id}/count"

    def client_id_from_presence_topic(self, topic: str) -> Optional[str]:
        """Extract the client id from a presence topic, None if it doesn't match."""
        head = f"{self.topic_prefix}/presence/"
        if not topic.startswith(head):
            return None
        client_id = topic[len(head):]
        if not client_id or "/" in client_id:
            return None
        return client_id

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MQTTConfig":
        """Build from a YAML mapping (unknown keys raise TypeError)."""
        return cls(**(data or {}))
