"""
Count Subscriber
================

Bounded Context: Viewer side of the live count channel

Announces this viewer to the counting service and receives the online count.

Design:
- Presence "online" on every (re)connect, "offline" on graceful stop
- Last Will "offline" so abrupt disconnects are counted too
- Malformed count payloads are dropped individually (channel unaffected)
- Callback-based: state changes and counts are handed to the caller

Architecture:
    Broker → CountSubscriber → on_count / on_state → SyncDriver queue

Example:
    >>> subscriber = CountSubscriber(
    ...     config=MQTTConfig(broker="localhost"),
    ...     on_count=lambda msg: print(msg.online),
    ...     on_state=lambda state, detail: print(state.value, detail),
    ...     logger=create_logger("viewer"),
    ... )
    >>> subscriber.start()
    >>> # ... render loop ...
    >>> subscriber.stop()
"""

import uuid
from enum import Enum
from typing import Callable, Optional, Union

import paho.mqtt.client as mqtt

from .base import BaseClient, ChannelError
from .config import MQTTConfig
from .logging import LogEvent, StructuredLogger
from .schemas import CountMessage, PresenceMessage, PresenceState


class ChannelState(str, Enum):
    """Connection state of the live count channel."""
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


CountCallback = Callable[[CountMessage], None]
StateCallback = Callable[[ChannelState, str], None]


def new_client_id(prefix: str = "viewer") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class CountSubscriber(BaseClient):
    """
    MQTT endpoint of one viewer.

    Attributes:
        count_topic: Inbox the service publishes this viewer's counts to
        presence_topic: Topic this viewer announces itself on
        state: Last reported ChannelState

    Thread Safety:
        Callbacks are invoked in the MQTT thread. Keep them fast (enqueue).
    """

    def __init__(
        self,
        config: MQTTConfig,
        on_count: CountCallback,
        on_state: StateCallback,
        logger: StructuredLogger,
        client_id: Optional[str] = None,
        client: Optional[mqtt.Client] = None,
    ):
        super().__init__(
            config=config,
            client_id=client_id or new_client_id(),
            logger=logger,
            client=client,
        )
        self.on_count = on_count
        self.on_state = on_state

        self.count_topic = config.count_topic(self.client_id)
        self.presence_topic = config.presence_topic(self.client_id)
        self.state: Optional[ChannelState] = None

        self._counts_received = 0
        self._malformed = 0

    def _set_state(self, state: ChannelState, detail: str = "") -> None:
        self.state = state
        self.on_state(state, detail)

    def _presence(self, state: PresenceState) -> PresenceMessage:
        return PresenceMessage(client_id=self.client_id, state=state)

    # ===== Lifecycle =====

    def _prepare(self) -> None:
        self.client.will_set(
            self.presence_topic,
            payload=self._presence(PresenceState.OFFLINE).to_json(),
            qos=self.config.qos,
            retain=False,
        )

    def start(self, timeout: float = 10.0) -> bool:
        """
        Connect and start listening (non-blocking after connect).

        Returns:
            True if connected within timeout
        """
        self._set_state(ChannelState.CONNECTING, self.config.address)
        connected = self.connect(timeout=timeout)
        if not connected and not self._running and self.state is ChannelState.CONNECTING:
            self._set_state(ChannelState.ERROR, f"cannot reach {self.config.address}")
        return connected

    def stop(self) -> None:
        """Announce offline, disconnect, report DISCONNECTED."""
        was_running = self._running
        self.disconnect()
        if was_running:
            self.logger.info(
                event=LogEvent.MQTT_DISCONNECTED,
                message="Count subscriber stopped",
                metadata=self.get_stats()
            )

    def _before_disconnect(self) -> None:
        if not self._connected.is_set():
            return
        try:
            self.publish_json(self.presence_topic, self._presence(PresenceState.OFFLINE).to_dict())
        except ChannelError as e:
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"Offline announcement not sent: {e}",
                metadata={'topic': self.presence_topic}
            )

    # ===== MQTT Callbacks (run in MQTT thread) =====

    def _on_ready(self, client: mqtt.Client) -> None:
        client.subscribe(self.count_topic, qos=self.config.qos)
        try:
            self.publish_json(self.presence_topic, self._presence(PresenceState.ONLINE).to_dict())
        except ChannelError as e:
            self._set_state(ChannelState.ERROR, str(e))
            return

        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Announced presence and subscribed to count inbox",
            metadata={'presence_topic': self.presence_topic, 'count_topic': self.count_topic}
        )
        self._set_state(ChannelState.CONNECTED, self.config.address)

    def _on_refused(self, reason_code) -> None:
        self._set_state(ChannelState.ERROR, f"broker refused connection ({reason_code})")
        if not self.config.reconnect:
            self._halt()

    def _on_lost(self, expected: bool) -> None:
        self._set_state(ChannelState.DISCONNECTED, "" if expected else "connection lost")
        if not expected and not self.config.reconnect:
            self._halt()

    def _halt(self) -> None:
        """Terminal state: stop the network loop without reconnecting."""
        self._running = False
        self.client.loop_stop()

    def _on_message(self, client, userdata, msg: mqtt.MQTTMessage) -> None:
        if msg.topic != self.count_topic:
            self.logger.warning(
                event=LogEvent.DESERIALIZATION_ERROR,
                message=f"Received message from unexpected topic: {msg.topic}"
            )
            return
        self._handle_count_payload(msg.payload)

    def _handle_count_payload(self, payload: Union[str, bytes]) -> Optional[CountMessage]:
        """
        Parse one inbox payload and hand valid counts to on_count.

        Returns:
            The parsed message, or None if the payload was dropped
        """
        try:
            message = CountMessage.from_json(payload)
        except ValueError as e:
            with self._stats_lock:
                self._malformed += 1
            self.logger.warning(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message="Ignoring malformed count message",
                metadata={'topic': self.count_topic, 'reason': str(e)}
            )
            return None

        with self._stats_lock:
            self._counts_received += 1

        self.logger.debug(
            event=LogEvent.COUNT_RECEIVED,
            message="Received count",
            metadata={'online': message.online}
        )
        self.on_count(message)
        return message

    def get_stats(self) -> dict:
        stats = super().get_stats()
        with self._stats_lock:
            stats.update({
                'counts_received': self._counts_received,
                'malformed': self._malformed,
                'state': self.state.value if self.state else None,
                'count_topic': self.count_topic,
            })
        return stats
