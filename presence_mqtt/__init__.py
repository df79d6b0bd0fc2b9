"""
Presence MQTT Communication Package
===================================

Bounded Context: Communication Protocol for the live count channel

MQTT-based messaging between viewers and the counting service. Viewers
announce themselves on a presence topic; the service answers every change
of the online count on each viewer's inbox topic.

Architecture:
- schemas/: Immutable wire messages (CountMessage, PresenceMessage)
- base.py: Connection lifecycle shared by every endpoint
- subscriber.py: Viewer endpoint (CountSubscriber)
- config.py: Broker settings and topic layout (MQTTConfig)
- logging/: Structured JSON logging for observability

Topic Layout (prefix defaults to "presence_map"):
    <prefix>/presence/<client_id>         viewer -> service
    <prefix>/clients/<client_id>/count    service -> viewer

Public API
----------
Schemas:
    MessageType, PresenceState, CountMessage, PresenceMessage

Endpoints:
    BaseClient, CountSubscriber, ChannelState, ChannelError

Configuration:
    MQTTConfig

Logging:
    LogEvent, StructuredLogger, create_logger

Example (Viewer):
    >>> from presence_mqtt import CountSubscriber, MQTTConfig, create_logger
    >>>
    >>> subscriber = CountSubscriber(
    ...     config=MQTTConfig(broker="localhost"),
    ...     on_count=lambda msg: print(f"{msg.online} online"),
    ...     on_state=lambda state, detail: print(state.value),
    ...     logger=create_logger("viewer"),
    ... )
    >>> subscriber.start()
"""

# Version
__version__ = "1.0.0"

# Schemas
from .schemas import (
    CountMessage,
    MessageType,
    PresenceMessage,
    PresenceState,
)

# Endpoints
from .base import BaseClient, ChannelError
from .subscriber import ChannelState, CountSubscriber, new_client_id

# Configuration
from .config import DEFAULT_TOPIC_PREFIX, MQTTConfig

# Logging
from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    # Version
    '__version__',
    # Schemas
    'CountMessage',
    'MessageType',
    'PresenceMessage',
    'PresenceState',
    # Endpoints
    'BaseClient',
    'ChannelError',
    'ChannelState',
    'CountSubscriber',
    'new_client_id',
    # Configuration
    'DEFAULT_TOPIC_PREFIX',
    'MQTTConfig',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
