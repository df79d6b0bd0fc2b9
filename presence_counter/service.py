"""
Counting Service Module
=======================

Owns the online count and fans it out to every connected viewer.

Design:
- Single owner of the count (no module globals)
- Increment on connect, decrement floored at 0 on disconnect
- Every change is broadcast to every subscriber, in change order
- One failing subscriber never stops delivery to the rest

Threading:
- All mutation and broadcasting happens under one lock, so concurrent
  connects/disconnects produce an ordered sequence of broadcasts
"""

import threading
from typing import Any, Dict, Optional, Protocol, Tuple

from presence_mqtt import CountMessage, LogEvent, StructuredLogger, create_logger


class Subscriber(Protocol):
    """A connected viewer that can receive counts."""

    subscriber_id: str

    def send(self, message: CountMessage) -> None:
        """Deliver one message; raise on failure."""
        ...


class CountingService:
    """
    Online counter with broadcast.

    Usage:
        service = CountingService()
        service.connect(viewer_a)      # broadcasts 1
        service.connect(viewer_b)      # broadcasts 2
        service.disconnect("viewer-a") # broadcasts 1
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.logger = logger or create_logger("counter")

        self._lock = threading.RLock()
        self._subscribers: Dict[str, Subscriber] = {}
        self._online = 0

        self._connects = 0
        self._disconnects = 0
        self._broadcasts = 0
        self._send_failures = 0

    @property
    def online(self) -> int:
        with self._lock:
            return self._online

    def subscriber_ids(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._subscribers)

    def __contains__(self, subscriber_id: str) -> bool:
        with self._lock:
            return subscriber_id in self._subscribers

    def connect(self, subscriber: Subscriber) -> int:
        """
        Register a subscriber, increment and broadcast.

        Returns:
            The new online count

        Raises:
            ValueError: If a subscriber with the same id is already connected
        """
        with self._lock:
            if subscriber.subscriber_id in self._subscribers:
                raise ValueError(f"Subscriber already connected: {subscriber.subscriber_id}")

            self._subscribers[subscriber.subscriber_id] = subscriber
            self._online += 1
            self._connects += 1

            self.logger.info(
                event=LogEvent.COUNT_SUBSCRIBER_CONNECTED,
                message="Subscriber connected",
                metadata={'subscriber_id': subscriber.subscriber_id, 'online': self._online}
            )
            self.broadcast()
            return self._online

    def disconnect(self, subscriber_id: str) -> int:
        """
        Unregister a subscriber, decrement (floored at 0) and broadcast.

        Unknown ids are ignored without a broadcast.

        Returns:
            The online count after the call
        """
        with self._lock:
            if self._subscribers.pop(subscriber_id, None) is None:
                self.logger.warning(
                    event=LogEvent.COUNT_SUBSCRIBER_DISCONNECTED,
                    message="Disconnect for unknown subscriber ignored",
                    metadata={'subscriber_id': subscriber_id, 'online': self._online}
                )
                return self._online

            self._online = max(0, self._online - 1)
            self._disconnects += 1

            self.logger.info(
                event=LogEvent.COUNT_SUBSCRIBER_DISCONNECTED,
                message="Subscriber disconnected",
                metadata={'subscriber_id': subscriber_id, 'online': self._online}
            )
            self.broadcast()
            return self._online

    def broadcast(self) -> int:
        """
        Send the current count to every subscriber.

        Send failures are logged per subscriber and do not interrupt delivery.

        Returns:
            Number of successful sends
        """
        with self._lock:
            message = CountMessage(online=self._online)
            delivered = 0

            for subscriber_id, subscriber in list(self._subscribers.items()):
                try:
                    subscriber.send(message)
                except Exception as e:
                    self._send_failures += 1
                    self.logger.error(
                        event=LogEvent.COUNT_SEND_FAILED,
                        message="Failed to deliver count",
                        exc_info=e,
                        metadata={'subscriber_id': subscriber_id, 'online': message.online}
                    )
                    continue
                delivered += 1

            self._broadcasts += 1
            self.logger.info(
                event=LogEvent.COUNT_BROADCAST,
                message="Broadcast online count",
                metadata={
                    'online': message.online,
                    'delivered': delivered,
                    'subscribers': len(self._subscribers),
                }
            )
            return delivered

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'online': self._online,
                'subscribers': len(self._subscribers),
                'connects': self._connects,
                'disconnects': self._disconnects,
                'broadcasts': self._broadcasts,
                'send_failures': self._send_failures,
            }
