"""
Structured Logging for Presence MQTT
====================================

Bounded Context: Observability

JSON-structured logging for the counting service and live count channel.

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function
    EventFilter: Handler filter by event category (MQTT_EVENTS, COUNT_EVENTS, ...)
    StructuredLogger.bind: Child logger with fixed metadata (client_id, ...)

Example:
    >>> from presence_mqtt.logging import StructuredLogger, LogEvent
    >>> logger = StructuredLogger(component="counter")
    >>> logger.info(
    ...     event=LogEvent.COUNT_BROADCAST,
    ...     message="Broadcast online count",
    ...     metadata={'online': 2}
    ... )
"""

from .events import COUNT_EVENTS, ERROR_EVENTS, MQTT_EVENTS, VIEWER_EVENTS, LogEvent
from .structured import EventFilter, StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'MQTT_EVENTS',
    'COUNT_EVENTS',
    'VIEWER_EVENTS',
    'ERROR_EVENTS',
    'EventFilter',
    'StructuredLogger',
    'create_logger',
]
