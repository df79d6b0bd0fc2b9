"""
Structured JSON Logger
=====================

Bounded Context: Observability Infrastructure

JSON lines for the counting service, the live count channel and the viewer.

Design:
- One JSON object per record, built by JSONFormatter from record fields
- Thread-safe (uses standard logging module)
- Bound context: bind(client_id=...) returns a logger whose every entry
  carries that metadata
- Type-safe events (LogEvent enum)

Example:
    >>> logger = StructuredLogger(component="counter")
    >>> channel = logger.bind(client_id="presence_counter")
    >>> channel.info(
    ...     event=LogEvent.COUNT_BROADCAST,
    ...     message="Broadcast online count",
    ...     metadata={'online': 3, 'delivered': 3}
    ... )

Output:
    {"timestamp": "2026-10-19T15:30:45.123456+00:00", "level": "INFO",
     "component": "counter", "event": "count.broadcast",
     "message": "Broadcast online count",
     "metadata": {"client_id": "presence_counter", "online": 3, "delivered": 3}}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from .events import LogEvent


class StructuredLogger:
    """
    JSON structured logger.

    Attributes:
        component: Component name (e.g., "counter", "viewer")
        context: Metadata merged into every entry (entry metadata wins)
        logger: Underlying Python logger instance

    Thread Safety:
        Thread-safe via Python's logging module. Bound loggers share the
        underlying logger and handler.
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            component: Component identifier (e.g., "counter")
            level: Logging level (default: INFO)
            logger_name: Custom logger name (default: presence_mqtt.<component>)
            context: Metadata attached to every entry
        """
        self.component = component
        self.context = dict(context or {})
        self.logger = logging.getLogger(logger_name or f"presence_mqtt.{component}")
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def bind(self, **context: Any) -> "StructuredLogger":
        """Child logger that adds ``context`` to every entry's metadata."""
        return StructuredLogger(
            component=self.component,
            level=self.logger.level,
            logger_name=self.logger.name,
            context={**self.context, **context},
        )

    def _log(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(level, message, extra={
            'component': self.component,
            'event': event,
            'fields': {**self.context, **(metadata or {})},
            'error': exc_info,
        })

    def debug(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log(logging.INFO, event, message, metadata)

    def warning(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log(logging.WARNING, event, message, metadata)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        """
        Log ERROR level message.

        Example:
            >>> try:
            ...     subscriber.send(message)
            ... except ChannelError as e:
            ...     logger.error(
            ...         event=LogEvent.COUNT_SEND_FAILED,
            ...         message="Failed to deliver count",
            ...         exc_info=e,
            ...         metadata={'subscriber_id': 'viewer-1'}
            ...     )
        """
        self._log(logging.ERROR, event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


class JSONFormatter(logging.Formatter):
    """Formats records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        event = getattr(record, 'event', None)
        entry: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'component': getattr(record, 'component', record.name),
            'event': event.value if isinstance(event, LogEvent) else event,
            'message': record.getMessage(),
        }

        fields = getattr(record, 'fields', None)
        if fields:
            entry['metadata'] = fields

        error = getattr(record, 'error', None)
        if error is not None:
            entry['exception'] = {'type': type(error).__name__, 'message': str(error)}

        return json.dumps(entry, default=str)


class EventFilter(logging.Filter):
    """
    Passes only records whose event belongs to one of the given categories.

    Example:
        >>> handler.addFilter(EventFilter(ERROR_EVENTS, COUNT_EVENTS))
    """

    def __init__(self, *categories: Iterable[LogEvent]):
        super().__init__()
        self.events = frozenset().union(*categories)

    def filter(self, record: logging.LogRecord) -> bool:
        return getattr(record, 'event', None) in self.events


def create_logger(component: str, level: int = logging.INFO) -> StructuredLogger:
    """
    Factory function to create configured StructuredLogger.

    Example:
        >>> logger = create_logger("counter", level=logging.DEBUG)
    """
    return StructuredLogger(component=component, level=level)
