"""
Test the live count channel (Without Real Broker)
=================================================

Exercises CountSubscriber, PresenceServer and SyncDriver against an
in-process fake broker that routes publishes to matching subscriptions
and publishes Last Wills on abrupt disconnects.

Usage:
    pytest test_count_channel.py
"""

import json
from types import SimpleNamespace

import paho.mqtt.client as mqtt
import pytest

from presence_counter import CountingService, PresenceServer
from presence_mqtt import (
    ChannelState,
    CountMessage,
    CountSubscriber,
    MQTTConfig,
    PresenceMessage,
    PresenceState,
    create_logger,
)
from presence_viewer import StatusBoard, SyncDriver, SyncState
from presence_zone.geometry import MaskRasterizer, ViewBox
from presence_zone.points import PointRegistry, RecordingRenderer
from presence_zone.sampling import DeterministicSampler


# ============================================================================
# Fakes
# ============================================================================

class FakeReasonCode:
    def __init__(self, failure=False, name="Success"):
        self.is_failure = failure
        self.name = name

    def __str__(self):
        return self.name


class FakeBroker:
    """Routes publishes to every connected client with a matching subscription."""

    def __init__(self):
        self.clients = []
        self.log = []

    def route(self, topic, payload):
        self.log.append((topic, payload))
        for client in list(self.clients):
            if any(mqtt.topic_matches_sub(sub, topic) for sub in client.subscriptions):
                client.deliver(topic, payload)

    def payloads(self, topic):
        return [json.loads(p) for t, p in self.log if t == topic]


class FakeClient:
    """Synchronous stand-in for paho's Client (callbacks fire inline)."""

    def __init__(self, broker=None, refuse=False, connect_error=None,
                 publish_rc=mqtt.MQTT_ERR_SUCCESS):
        self.broker = broker
        self.refuse = refuse
        self.connect_error = connect_error
        self.publish_rc = publish_rc

        self.on_connect = None
        self.on_disconnect = None
        self.on_message = None

        self.subscriptions = []
        self.published = []
        self.will = None
        self.loop_running = False
        self.deferred = False

    def will_set(self, topic, payload=None, qos=0, retain=False):
        self.will = (topic, payload)

    def connect(self, host, port=1883, keepalive=60):
        if self.connect_error is not None:
            raise self.connect_error

    def connect_async(self, host, port=1883, keepalive=60):
        self.deferred = True

    def loop_start(self):
        self.loop_running = True
        if self.deferred and self.connect_error is not None:
            # Network thread keeps retrying in the background
            return
        self._establish()

    def retry(self):
        """Broker became reachable: the pending deferred connect succeeds."""
        self.connect_error = None
        self._establish()

    def _establish(self):
        if self.refuse:
            self.on_connect(self, None, {}, FakeReasonCode(True, "Not authorized"), None)
            return
        if self.broker is not None:
            self.broker.clients.append(self)
        self.on_connect(self, None, {}, FakeReasonCode(), None)

    def loop_stop(self):
        self.loop_running = False

    def subscribe(self, topic, qos=0):
        self.subscriptions.append(topic)

    def publish(self, topic, payload=None, qos=0, retain=False):
        if self.publish_rc != mqtt.MQTT_ERR_SUCCESS:
            return SimpleNamespace(rc=self.publish_rc)
        self.published.append((topic, payload))
        if self.broker is not None:
            self.broker.route(topic, payload)
        return SimpleNamespace(rc=mqtt.MQTT_ERR_SUCCESS)

    def deliver(self, topic, payload):
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        self.on_message(self, None, SimpleNamespace(topic=topic, payload=payload))

    def disconnect(self):
        self._leave()
        self.on_disconnect(self, None, {}, FakeReasonCode(), None)

    def drop(self):
        """Abrupt connection loss: the broker publishes the will."""
        self._leave()
        if self.will is not None and self.broker is not None:
            self.broker.route(*self.will)
        self.on_disconnect(self, None, {}, FakeReasonCode(True, "Unspecified error"), None)

    def _leave(self):
        if self.broker is not None and self in self.broker.clients:
            self.broker.clients.remove(self)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def logger():
    return create_logger("test")


@pytest.fixture
def config():
    return MQTTConfig(broker="localhost", reconnect=False)


@pytest.fixture
def broker():
    return FakeBroker()


class Viewer:
    """CountSubscriber plus the counts and states it reported."""

    def __init__(self, config, logger, client_id, client):
        self.counts = []
        self.states = []
        self.client = client
        self.subscriber = CountSubscriber(
            config=config,
            on_count=lambda msg: self.counts.append(msg.online),
            on_state=lambda state, detail: self.states.append(state),
            logger=logger,
            client_id=client_id,
            client=client,
        )


@pytest.fixture
def make_viewer(config, logger, broker):
    def _make(client_id="viewer-1", **client_kwargs):
        client_kwargs.setdefault("broker", broker)
        return Viewer(config, logger, client_id, FakeClient(**client_kwargs))
    return _make


@pytest.fixture
def server(config, logger, broker):
    server = PresenceServer(
        config, CountingService(logger), logger, client=FakeClient(broker)
    )
    assert server.connect(timeout=0.1)
    return server


# ============================================================================
# Schemas
# ============================================================================

def test_count_message_wire_format():
    assert json.loads(CountMessage(online=3).to_json()) == {"type": "count", "online": 3}
    assert CountMessage.from_json(b'{"type": "count", "online": 0}').online == 0


@pytest.mark.parametrize("payload", [
    '{"type": "count", "online": -1}',
    '{"type": "count", "online": true}',
    '{"type": "count", "online": 2.5}',
    '{"type": "count", "online": "3"}',
    '{"type": "count"}',
    '{"type": "presence", "online": 3}',
    '[1, 2]',
    'not json',
    b'\xff\xfe',
])
def test_count_message_rejects(payload):
    with pytest.raises(ValueError):
        CountMessage.from_json(payload)


def test_presence_message():
    message = PresenceMessage.from_json(
        '{"type": "presence", "client_id": "viewer-1", "state": "offline"}'
    )
    assert message.state is PresenceState.OFFLINE
    assert not message.is_online

    with pytest.raises(ValueError):
        PresenceMessage.from_json('{"type": "presence", "client_id": "v", "state": "away"}')
    with pytest.raises(ValueError):
        PresenceMessage(client_id="a/b", state=PresenceState.ONLINE)


# ============================================================================
# CountSubscriber
# ============================================================================

def test_subscriber_announces_presence(make_viewer, broker):
    viewer = make_viewer()
    assert viewer.subscriber.start(timeout=0.1)

    assert viewer.states == [ChannelState.CONNECTING, ChannelState.CONNECTED]
    assert "presence_map/clients/viewer-1/count" in viewer.client.subscriptions
    assert broker.payloads("presence_map/presence/viewer-1") == [
        {"type": "presence", "client_id": "viewer-1", "state": "online"}
    ]

    topic, will = viewer.client.will
    assert topic == "presence_map/presence/viewer-1"
    assert json.loads(will)["state"] == "offline"


def test_subscriber_drops_malformed_counts(make_viewer):
    viewer = make_viewer()
    viewer.subscriber.start(timeout=0.1)
    inbox = viewer.subscriber.count_topic

    viewer.client.deliver(inbox, '{"type": "count", "online": 4}')
    viewer.client.deliver(inbox, '{"type": "count", "online": -4}')
    viewer.client.deliver(inbox, 'garbage')
    viewer.client.deliver("presence_map/clients/other/count", '{"type": "count", "online": 9}')
    viewer.client.deliver(inbox, '{"type": "count", "online": 5}')

    assert viewer.counts == [4, 5]
    assert viewer.subscriber.get_stats()['malformed'] == 2
    assert viewer.states[-1] is ChannelState.CONNECTED


def test_subscriber_publish_failure_is_error(make_viewer):
    viewer = make_viewer(publish_rc=mqtt.MQTT_ERR_NO_CONN)
    viewer.subscriber.start(timeout=0.1)
    assert viewer.states == [ChannelState.CONNECTING, ChannelState.ERROR]


def test_subscriber_unreachable_broker(make_viewer):
    viewer = make_viewer(connect_error=ConnectionRefusedError("refused"))
    assert not viewer.subscriber.start(timeout=0.1)
    assert viewer.states == [ChannelState.CONNECTING, ChannelState.ERROR]
    assert not viewer.subscriber.is_running()


def test_subscriber_refused_without_reconnect_halts(make_viewer):
    viewer = make_viewer(refuse=True)
    assert not viewer.subscriber.start(timeout=0.05)
    assert viewer.states == [ChannelState.CONNECTING, ChannelState.ERROR]
    assert not viewer.subscriber.is_running()
    assert not viewer.client.loop_running


def test_subscriber_connection_loss(make_viewer):
    viewer = make_viewer()
    viewer.subscriber.start(timeout=0.1)
    viewer.client.drop()

    assert viewer.states[-1] is ChannelState.DISCONNECTED
    # reconnect disabled: terminal
    assert not viewer.subscriber.is_running()
    assert not viewer.client.loop_running


def test_subscriber_connection_loss_with_reconnect(logger, broker):
    config = MQTTConfig(reconnect=True)
    viewer = Viewer(config, logger, "viewer-1", FakeClient(broker))
    viewer.subscriber.start(timeout=0.1)
    viewer.client.drop()

    assert viewer.states[-1] is ChannelState.DISCONNECTED
    assert viewer.subscriber.is_running()
    assert viewer.client.loop_running


def test_subscriber_retries_unreachable_broker_with_reconnect(logger, broker):
    config = MQTTConfig(reconnect=True)
    client = FakeClient(broker, connect_error=ConnectionRefusedError("refused"))
    viewer = Viewer(config, logger, "viewer-1", client)

    assert not viewer.subscriber.start(timeout=0.05)
    # Still connecting: the first attempt is retried like a lost connection
    assert viewer.states == [ChannelState.CONNECTING]
    assert client.deferred
    assert viewer.subscriber.is_running()

    client.retry()
    assert viewer.states[-1] is ChannelState.CONNECTED
    assert broker.payloads("presence_map/presence/viewer-1")[0]["state"] == "online"


def test_subscriber_stop_announces_offline(make_viewer, broker):
    viewer = make_viewer()
    viewer.subscriber.start(timeout=0.1)
    viewer.subscriber.stop()
    viewer.subscriber.stop()

    states = [p["state"] for p in broker.payloads("presence_map/presence/viewer-1")]
    assert states == ["online", "offline"]
    assert viewer.states[-1] is ChannelState.DISCONNECTED
    assert not viewer.subscriber.is_connected()


# ============================================================================
# PresenceServer
# ============================================================================

def test_end_to_end_counts(server, make_viewer):
    assert "presence_map/presence/+" in server.client.subscriptions

    a = make_viewer("viewer-a")
    b = make_viewer("viewer-b")
    a.subscriber.start(timeout=0.1)
    b.subscriber.start(timeout=0.1)
    assert a.counts == [1, 2]
    assert b.counts == [2]

    # Abrupt loss: Last Will tells the service
    b.client.drop()
    assert a.counts == [1, 2, 1]
    assert server.service.online == 1

    a.subscriber.stop()
    assert server.service.online == 0


def _presence(client_id, state):
    return json.dumps({"type": "presence", "client_id": client_id, "state": state})


def test_server_counts_each_viewer_once(server):
    topic = "presence_map/presence/viewer-1"
    server._handle_presence(topic, _presence("viewer-1", "online"))
    server._handle_presence(topic, _presence("viewer-1", "online"))
    assert server.service.online == 1

    inbox = [t for t, _ in server.client.published if t.endswith("/count")]
    assert inbox == ["presence_map/clients/viewer-1/count"]


def test_server_ignores_offline_for_unknown(server):
    server._handle_presence("presence_map/presence/ghost", _presence("ghost", "offline"))
    assert server.service.online == 0
    assert server.client.published == []


@pytest.mark.parametrize("topic, payload", [
    ("presence_map/presence/viewer-1", _presence("viewer-2", "online")),
    ("presence_map/other/viewer-1", _presence("viewer-1", "online")),
    ("presence_map/presence/viewer-1/extra", _presence("viewer-1", "online")),
    ("presence_map/presence/viewer-1", "{not json"),
    ("presence_map/presence/viewer-1", '{"type": "count", "online": 1}'),
])
def test_server_rejects_bad_presence(server, topic, payload):
    server._handle_presence(topic, payload)
    assert server.service.online == 0
    assert server.get_stats()['rejected'] == 1


# ============================================================================
# SyncDriver over the channel
# ============================================================================

def test_driver_ignores_malformed_count(make_viewer, logger):
    mask = MaskRasterizer(width=100).build(
        ViewBox(0, 0, 100, 100), ("M 0 0 H 100 V 100 H 0 Z",)
    )
    registry = PointRegistry(DeterministicSampler(mask), RecordingRenderer())
    board = StatusBoard()

    viewer = make_viewer()
    driver = SyncDriver(
        registry, board, mqtt_config=viewer.subscriber.config,
        logger=logger, subscriber=viewer.subscriber,
    )
    driver.start(timeout=0.1)
    inbox = viewer.subscriber.count_topic

    viewer.client.deliver(inbox, '{"type": "count", "online": 4}')
    driver.process_pending()
    assert registry.size() == 4

    viewer.client.deliver(inbox, '{"type": "count", "online": ')
    driver.process_pending()
    assert registry.size() == 4
    assert driver.count == 4
    assert driver.state is SyncState.CONNECTED
    assert board.text == "Connected: localhost:1883"

    driver.stop()
    driver.process_pending()
    assert driver.state is SyncState.DISCONNECTED
    assert registry.size() == 4
