"""
Test JSON structured logging.

Usage:
    pytest test_structured_logging.py
"""

import io
import json
import logging

import pytest

from presence_mqtt.logging import (
    COUNT_EVENTS,
    ERROR_EVENTS,
    MQTT_EVENTS,
    VIEWER_EVENTS,
    EventFilter,
    LogEvent,
    StructuredLogger,
)
from presence_mqtt.logging.structured import JSONFormatter


@pytest.fixture
def captured():
    """StructuredLogger plus the JSON entries it wrote."""
    logger = StructuredLogger("json-test", logger_name="presence_mqtt.tests.json")
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    logger.logger.addHandler(handler)

    def entries():
        return [json.loads(line) for line in stream.getvalue().splitlines()]

    yield logger, entries
    logger.logger.removeHandler(handler)


def test_entry_shape(captured):
    logger, entries = captured
    logger.info(LogEvent.COUNT_BROADCAST, "Broadcast online count", {'online': 3})

    (entry,) = entries()
    assert entry['level'] == "INFO"
    assert entry['component'] == "json-test"
    assert entry['event'] == "count.broadcast"
    assert entry['message'] == "Broadcast online count"
    assert entry['metadata'] == {'online': 3}
    assert entry['timestamp'].endswith("+00:00")


def test_bound_context_is_merged(captured):
    logger, entries = captured
    channel = logger.bind(client_id="viewer-1")
    channel.warning(LogEvent.MQTT_DISCONNECTED, "Lost connection", {'broker': 'localhost:1883'})
    channel.bind(client_id="viewer-2").info(LogEvent.MQTT_CONNECTED, "Connected")

    first, second = entries()
    assert first['metadata'] == {'client_id': "viewer-1", 'broker': "localhost:1883"}
    assert second['metadata'] == {'client_id': "viewer-2"}
    assert logger.context == {}


def test_error_carries_exception(captured):
    logger, entries = captured
    logger.error(
        LogEvent.COUNT_SEND_FAILED, "Failed to deliver count",
        exc_info=ConnectionError("socket closed"),
    )
    (entry,) = entries()
    assert entry['exception'] == {'type': "ConnectionError", 'message': "socket closed"}
    assert 'metadata' not in entry


def test_level_filtering(captured):
    logger, entries = captured
    logger.debug(LogEvent.COUNT_RECEIVED, "Received count")
    assert entries() == []

    logger.set_level(logging.DEBUG)
    logger.debug(LogEvent.COUNT_RECEIVED, "Received count", {'online': 1})
    assert entries()[0]['level'] == "DEBUG"


def test_categories_cover_every_event_once():
    categories = (MQTT_EVENTS, COUNT_EVENTS, VIEWER_EVENTS, ERROR_EVENTS)
    assert set().union(*categories) == set(LogEvent)
    assert sum(len(c) for c in categories) == len(LogEvent)


def test_event_filter_by_category(captured):
    logger, entries = captured
    logger.logger.handlers[-1].addFilter(EventFilter(COUNT_EVENTS, ERROR_EVENTS))

    logger.info(LogEvent.MQTT_CONNECTED, "Connected")
    logger.info(LogEvent.COUNT_BROADCAST, "Broadcast online count", {'online': 2})
    logger.info(LogEvent.MASK_BUILT, "Mask built")
    logger.error(LogEvent.MQTT_CONNECTION_ERROR, "Failed to connect to broker")

    assert [e['event'] for e in entries()] == ["count.broadcast", "error.mqtt_connection"]
