"""
Base MQTT Client
================

Bounded Context: MQTT Infrastructure

Connection lifecycle shared by the counting service and the viewer channel.

Design:
- paho-mqtt callback API v2 (reason codes, properties)
- Background network loop (loop_start/loop_stop)
- Optional exponential reconnect backoff
- Structured logging integration

Architecture:
    BaseClient (abstract)
        ↓
    CountSubscriber (viewer), PresenceServer (counting service)

Responsibilities:
- MQTT connection lifecycle
- JSON publishing with result checking
- NOT responsible for: topic routing (delegated to subclasses)
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .config import MQTTConfig
from .logging import LogEvent, StructuredLogger


class ChannelError(Exception):
    """Transport failure on the live count channel."""
    pass


class BaseClient(ABC):
    """
    Abstract base class for MQTT endpoints.

    Subclasses implement _on_ready() (subscriptions after every successful
    connect) and _on_message().

    Attributes:
        config: Broker settings and topic layout
        client_id: MQTT client identifier
        logger: Structured logger instance

    Thread Safety:
        Callbacks run in paho's network thread. State shared with callers is
        guarded by threading.Event / _stats_lock.
    """

    def __init__(
        self,
        config: MQTTConfig,
        client_id: str,
        logger: StructuredLogger,
        client: Optional[mqtt.Client] = None,
    ):
        """
        Args:
            config: MQTT configuration
            client_id: Unique client identifier
            logger: Structured logger for observability
            client: Pre-built paho client (tests inject fakes here)
        """
        self.config = config
        self.client_id = client_id
        self.logger = logger.bind(client_id=client_id)

        if client is None:
            client = mqtt.Client(
                callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
                client_id=client_id,
            )
            if config.username and config.password:
                client.username_pw_set(config.username, config.password)
            if config.reconnect:
                client.reconnect_delay_set(
                    min_delay=config.reconnect_min_delay,
                    max_delay=config.reconnect_max_delay,
                )
        self.client = client

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self._connected = threading.Event()
        self._running = False
        self._stats_lock = threading.Lock()
        self._published = 0

    # ===== MQTT Callbacks (run in MQTT thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Broker refused connection ({reason_code})",
                metadata={'broker': self.config.address}
            )
            self._on_refused(reason_code)
            return

        self._connected.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Connected to MQTT broker",
            metadata={'broker': self.config.address}
        )
        self._on_ready(client)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        self._connected.clear()
        expected = not self._running
        if expected:
            self.logger.info(
                event=LogEvent.MQTT_DISCONNECTED,
                message="Disconnected from MQTT broker",
                metadata={'broker': self.config.address}
            )
        else:
            self.logger.warning(
                event=LogEvent.MQTT_DISCONNECTED,
                message="Lost connection to MQTT broker",
                metadata={
                    'broker': self.config.address,
                    'reason_code': str(reason_code),
                    'reconnect': self.config.reconnect,
                }
            )
            if self.config.reconnect:
                self.logger.info(
                    event=LogEvent.MQTT_RECONNECTING,
                    message="Reconnecting with backoff",
                    metadata={
                        'min_delay': self.config.reconnect_min_delay,
                        'max_delay': self.config.reconnect_max_delay,
                    }
                )
        self._on_lost(expected)

    @abstractmethod
    def _on_ready(self, client: mqtt.Client) -> None:
        """Subscribe/announce after a successful (re)connect."""
        raise NotImplementedError("Subclasses must implement _on_ready()")

    @abstractmethod
    def _on_message(self, client, userdata, msg: mqtt.MQTTMessage) -> None:
        raise NotImplementedError("Subclasses must implement _on_message()")

    def _on_refused(self, reason_code) -> None:
        """Hook: broker refused the connection."""
        pass

    def _on_lost(self, expected: bool) -> None:
        """Hook: connection closed (expected=True after stop())."""
        pass

    # ===== Lifecycle =====

    def _prepare(self) -> None:
        """Hook: configure the client before connecting (will, etc.)."""
        pass

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect to MQTT broker and start the network loop.

        With reconnect enabled the first attempt is made by the network
        thread (connect_async), so an unreachable broker is retried with the
        same backoff as a lost connection and this call only times out.

        Returns:
            True if connected within timeout, False otherwise
        """
        self._prepare()
        try:
            if self.config.reconnect:
                self.client.connect_async(
                    self.config.broker, self.config.port, keepalive=self.config.keepalive
                )
            else:
                self.client.connect(
                    self.config.broker, self.config.port, keepalive=self.config.keepalive
                )
        except OSError as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Failed to connect to broker",
                exc_info=e,
                metadata={'broker': self.config.address}
            )
            return False

        self._running = True
        self.client.loop_start()

        if self._connected.wait(timeout=timeout):
            return True

        self.logger.error(
            event=LogEvent.MQTT_CONNECTION_ERROR,
            message="Connection timeout",
            metadata={'broker': self.config.address, 'timeout': timeout}
        )
        return False

    def disconnect(self) -> None:
        """
        Disconnect gracefully. Safe to call multiple times.
        """
        if not self._running:
            return
        self._running = False
        self._before_disconnect()
        self.client.disconnect()
        self.client.loop_stop()
        self._connected.clear()

    def _before_disconnect(self) -> None:
        """Hook: last messages before a graceful disconnect."""
        pass

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def is_running(self) -> bool:
        return self._running

    # ===== Publishing =====

    def publish_json(
        self,
        topic: str,
        message_data: Dict[str, Any],
        retain: bool = False,
    ) -> None:
        """
        Publish a JSON payload.

        Raises:
            ChannelError: If paho rejects the publish (not connected, queue full)
        """
        result = self.client.publish(
            topic=topic,
            payload=json.dumps(message_data),
            qos=self.config.qos,
            retain=retain,
        )
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"Publish failed (rc={result.rc})",
                metadata={'topic': topic}
            )
            raise ChannelError(
                f"Publish to {topic} failed: {mqtt.error_string(result.rc)}"
            )

        with self._stats_lock:
            self._published += 1

        self.logger.debug(
            event=LogEvent.MQTT_PUBLISH_SUCCESS,
            message="Published message",
            metadata={'topic': topic, 'qos': self.config.qos}
        )

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            return {
                'published': self._published,
                'connected': self._connected.is_set(),
                'running': self._running,
                'broker': self.config.address,
                'client_id': self.client_id,
            }
