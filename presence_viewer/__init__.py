"""
Presence Map Viewer
===================

Connects the presence_zone pipeline to a count source.

Architecture:
- SyncDriver: live MQTT channel or demo generator -> PointRegistry
- StatusBoard: status line shown by the renderer
- ViewerConfig: YAML configuration (boundary, sampling, render, MQTT)

Threading Model:
- paho-mqtt network thread or demo thread (producers, enqueue only)
- Driver thread (consumer, all resizes and rendering)
"""

from presence_viewer.config import RenderConfig, SamplingConfig, ViewerConfig
from presence_viewer.status import Status, StatusBoard
from presence_viewer.sync import (
    CountUpdate,
    DemoGenerator,
    StateChange,
    SyncDriver,
    SyncState,
)

__all__ = [
    "RenderConfig",
    "SamplingConfig",
    "ViewerConfig",
    "Status",
    "StatusBoard",
    "CountUpdate",
    "DemoGenerator",
    "StateChange",
    "SyncDriver",
    "SyncState",
]
