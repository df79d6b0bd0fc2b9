"""
Presence MQTT Schemas
=====================

Bounded Context: Data Structures

Immutable, typed messages of the live count channel.

Public API
----------
    MessageType: Enum (COUNT, PRESENCE)
    PresenceState: Enum (ONLINE, OFFLINE)
    CountMessage: Online count pushed to a viewer
    PresenceMessage: Viewer presence announcement

Example:
    >>> from presence_mqtt.schemas import CountMessage
    >>> CountMessage.from_json('{"type": "count", "online": 4}').online
    4
"""

from .count import CountMessage, MessageType, PresenceMessage, PresenceState

__all__ = [
    'CountMessage',
    'MessageType',
    'PresenceMessage',
    'PresenceState',
]
