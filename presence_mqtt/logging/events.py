"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

This module defines typed event names for structured logging.

Design:
- Enum-based (prevents typos, enables autocomplete)
- Hierarchical naming (namespace.category.action)
- Searchable in log aggregators

Event Naming Convention:
    <component>.<category>.<action>

    component: mqtt, count, boundary, mask, points, sync, error
    category: connected, presence, broadcast, loaded
    action: success, failed, updated

Example Log Query (CloudWatch Insights):
    fields @timestamp, event, message, metadata.online
    | filter event = "count.broadcast"
    | stats max(metadata.online) by bin(5m)
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - mqtt.*: MQTT broker interactions
    - count.*: Online counting and count delivery
    - boundary.*, mask.*, points.*: Visualization pipeline
    - sync.*: Count source state
    - error.*: Error conditions
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message successfully published to broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    MQTT_RECONNECTING = "mqtt.reconnecting"
    """Attempting to reconnect to broker."""

    # ========== Count Events ==========
    COUNT_SUBSCRIBER_CONNECTED = "count.subscriber.connected"
    """A viewer joined; online count incremented."""

    COUNT_SUBSCRIBER_DISCONNECTED = "count.subscriber.disconnected"
    """A viewer left; online count decremented."""

    COUNT_BROADCAST = "count.broadcast"
    """Online count sent to all subscribers."""

    COUNT_SEND_FAILED = "count.send.failed"
    """Count delivery to a single subscriber failed."""

    COUNT_RECEIVED = "count.received"
    """Count message received by a viewer."""

    PRESENCE_RECEIVED = "count.presence.received"
    """Presence announcement received by the service."""

    # ========== Visualization Events ==========
    BOUNDARY_LOADED = "boundary.loaded"
    """Boundary asset fetched and parsed."""

    MASK_BUILT = "mask.built"
    """Occupancy mask rasterized."""

    POINTS_RESIZED = "points.resized"
    """Point registry reconciled to a new count."""

    SYNC_STATE_CHANGED = "sync.state_changed"
    """Count source changed state."""

    # ========== Error Events ==========
    DESERIALIZATION_ERROR = "error.deserialization"
    """Failed to deserialize message from JSON."""

    SCHEMA_VALIDATION_ERROR = "error.schema_validation"
    """Message failed schema validation."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    INITIALIZATION_ERROR = "error.initialization"
    """Visualization could not be initialized."""


# Event categories for filtering
MQTT_EVENTS = {
    LogEvent.MQTT_CONNECTED,
    LogEvent.MQTT_DISCONNECTED,
    LogEvent.MQTT_PUBLISH_SUCCESS,
    LogEvent.MQTT_PUBLISH_FAILED,
    LogEvent.MQTT_RECONNECTING,
}

COUNT_EVENTS = {
    LogEvent.COUNT_SUBSCRIBER_CONNECTED,
    LogEvent.COUNT_SUBSCRIBER_DISCONNECTED,
    LogEvent.COUNT_BROADCAST,
    LogEvent.COUNT_SEND_FAILED,
    LogEvent.COUNT_RECEIVED,
    LogEvent.PRESENCE_RECEIVED,
}

VIEWER_EVENTS = {
    LogEvent.BOUNDARY_LOADED,
    LogEvent.MASK_BUILT,
    LogEvent.POINTS_RESIZED,
    LogEvent.SYNC_STATE_CHANGED,
}

ERROR_EVENTS = {
    LogEvent.DESERIALIZATION_ERROR,
    LogEvent.SCHEMA_VALIDATION_ERROR,
    LogEvent.MQTT_CONNECTION_ERROR,
    LogEvent.INITIALIZATION_ERROR,
}
