"""
Presence Counter Service
========================

Counts connected viewers and pushes the count to each of them.

Architecture:
- CountingService: owns the online count, broadcasts on every change
- PresenceServer: MQTT adapter (presence topics in, count inboxes out)
- CounterConfig: YAML configuration

Threading Model:
- paho-mqtt network thread runs every presence callback
- CountingService serializes mutation and broadcast under one lock
"""

from presence_counter.config import CounterConfig
from presence_counter.server import MqttSubscriber, PresenceServer
from presence_counter.service import CountingService, Subscriber

__all__ = [
    "CounterConfig",
    "CountingService",
    "MqttSubscriber",
    "PresenceServer",
    "Subscriber",
]
