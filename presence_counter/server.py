"""
Presence Server
===============

Bounded Context: MQTT adapter of the counting service

Turns viewer presence announcements into CountingService connects and
disconnects, and delivers counts to each viewer's inbox topic.

Message Flow:
    1. Viewer publishes {"type": "presence", "state": "online"}
    2. PresenceServer registers an MqttSubscriber for that client id
    3. CountingService broadcasts; each MqttSubscriber publishes to
       <prefix>/clients/<client_id>/count
    4. "offline" (graceful or Last Will) unregisters the viewer

Presence is kept in memory only. After a service restart, viewers are
counted again when they next (re)connect to the broker.
"""

from typing import Optional, Union

import paho.mqtt.client as mqtt

from presence_mqtt import (
    BaseClient,
    CountMessage,
    LogEvent,
    MQTTConfig,
    PresenceMessage,
    StructuredLogger,
)
from presence_counter.service import CountingService


class MqttSubscriber:
    """Inbox publisher for one viewer."""

    def __init__(self, server: "PresenceServer", subscriber_id: str):
        self.server = server
        self.subscriber_id = subscriber_id
        self.topic = server.config.count_topic(subscriber_id)

    def send(self, message: CountMessage) -> None:
        """Raises ChannelError if the publish is rejected."""
        self.server.publish_json(self.topic, message.to_dict())

    def __repr__(self) -> str:
        return f"MqttSubscriber({self.subscriber_id!r})"


class PresenceServer(BaseClient):
    """
    MQTT endpoint of the counting service.

    Usage:
        server = PresenceServer(config, service, logger, client_id="presence_counter")
        server.connect()
        ...
        server.disconnect()
    """

    def __init__(
        self,
        config: MQTTConfig,
        service: CountingService,
        logger: StructuredLogger,
        client_id: str = "presence_counter",
        client: Optional[mqtt.Client] = None,
    ):
        super().__init__(config=config, client_id=client_id, logger=logger, client=client)
        self.service = service
        self._presence_received = 0
        self._rejected = 0

    def _on_ready(self, client: mqtt.Client) -> None:
        client.subscribe(self.config.presence_wildcard, qos=self.config.qos)
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Listening for presence",
            metadata={'topic': self.config.presence_wildcard}
        )

    def _on_message(self, client, userdata, msg: mqtt.MQTTMessage) -> None:
        self._handle_presence(msg.topic, msg.payload)

    def _reject(self, topic: str, reason: str) -> None:
        with self._stats_lock:
            self._rejected += 1
        self.logger.warning(
            event=LogEvent.SCHEMA_VALIDATION_ERROR,
            message="Ignoring presence message",
            metadata={'topic': topic, 'reason': reason}
        )

    def _handle_presence(self, topic: str, payload: Union[str, bytes]) -> None:
        """
        Apply one presence message to the counting service.

        Duplicate "online" for a connected viewer and "offline" for an unknown
        one are ignored, so a viewer is counted at most once.
        """
        client_id = self.config.client_id_from_presence_topic(topic)
        if client_id is None:
            self._reject(topic, "not a presence topic")
            return

        try:
            message = PresenceMessage.from_json(payload)
        except ValueError as e:
            self._reject(topic, str(e))
            return

        if message.client_id != client_id:
            self._reject(topic, f"client_id mismatch ({message.client_id!r})")
            return

        with self._stats_lock:
            self._presence_received += 1

        self.logger.debug(
            event=LogEvent.PRESENCE_RECEIVED,
            message="Presence received",
            metadata={'client_id': client_id, 'state': message.state.value}
        )

        if message.is_online:
            if client_id in self.service:
                return
            self.service.connect(MqttSubscriber(self, client_id))
        elif client_id in self.service:
            self.service.disconnect(client_id)

    def get_stats(self) -> dict:
        stats = super().get_stats()
        with self._stats_lock:
            stats.update({
                'presence_received': self._presence_received,
                'rejected': self._rejected,
            })
        stats.update(self.service.get_stats())
        return stats
