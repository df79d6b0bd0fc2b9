"""
Sync Driver Module
==================

Keeps the point registry in step with the online count.

Exactly one count source is active per session:
- live: CountSubscriber on the MQTT broker
- demo: DemoGenerator cycling 0..49, one value per second

Threading Model:
- paho-mqtt network thread / demo thread: only enqueue events
- driver thread (caller of process_pending): applies events in arrival
  order, performs every resize and status update

States:
    connecting -> connected -> (disconnected | error)
    demo (never enters the connected states)
"""

import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional, Union

from presence_mqtt import (
    ChannelState,
    CountMessage,
    CountSubscriber,
    LogEvent,
    MQTTConfig,
    StructuredLogger,
    create_logger,
)
from presence_viewer.status import Status, StatusBoard
from presence_zone.points.registry import PointRegistry

DEMO_PERIOD = 1.0
DEMO_CYCLE = 50


class SyncState(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"
    DEMO = "demo"


_STATUS_FOR_STATE = {
    SyncState.CONNECTING: Status.CONNECTING,
    SyncState.CONNECTED: Status.CONNECTED,
    SyncState.DISCONNECTED: Status.DISCONNECTED,
    SyncState.ERROR: Status.ERROR,
    SyncState.DEMO: Status.DEMO,
}


@dataclass(frozen=True)
class CountUpdate:
    """New online count from the active source."""
    online: int


@dataclass(frozen=True)
class StateChange:
    """Source state transition."""
    state: SyncState
    detail: str = ""


SyncEvent = Union[CountUpdate, StateChange]


class DemoGenerator:
    """
    Stand-in count source: 0, 1, ..., cycle-1, 0, 1, ... every ``period`` seconds.

    Usage:
        demo = DemoGenerator(emit=print, period=1.0)
        demo.start()
        ...
        demo.stop()
    """

    def __init__(
        self,
        emit: Callable[[int], None],
        period: float = DEMO_PERIOD,
        cycle: int = DEMO_CYCLE,
    ):
        if period <= 0:
            raise ValueError(f"period must be > 0, got {period}")
        if cycle < 1:
            raise ValueError(f"cycle must be >= 1, got {cycle}")

        self.emit = emit
        self.period = period
        self.cycle = cycle

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def values(self) -> Iterator[int]:
        """Infinite demo sequence (no timing)."""
        tick = 0
        while True:
            yield tick % self.cycle
            tick += 1

    def _run(self) -> None:
        for value in self.values():
            self.emit(value)
            if self._stop.wait(self.period):
                return

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="demo-counts", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.period + 1.0)
            self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


class SyncDriver:
    """
    Applies count updates to the registry, one at a time, on one thread.

    Usage:
        driver = SyncDriver(registry, board, mqtt_config=None)  # demo
        driver.start()
        while running:
            if driver.process_pending():
                frame = visualizer.render()
        driver.stop()
    """

    def __init__(
        self,
        registry: PointRegistry,
        status: StatusBoard,
        mqtt_config: Optional[MQTTConfig] = None,
        logger: Optional[StructuredLogger] = None,
        demo_period: float = DEMO_PERIOD,
        demo_cycle: int = DEMO_CYCLE,
        client_id: Optional[str] = None,
        subscriber: Optional[CountSubscriber] = None,
    ):
        """
        Args:
            registry: Point registry to reconcile
            status: Status line to update
            mqtt_config: Broker settings; None selects demo mode
            logger: Structured logger (default: "viewer" component)
            demo_period: Seconds between demo values
            demo_cycle: Demo values run 0..demo_cycle-1
            client_id: MQTT client id (default: random viewer id)
            subscriber: Pre-built subscriber (tests)
        """
        self.registry = registry
        self.status = status
        self.mqtt_config = mqtt_config
        self.logger = logger or create_logger("viewer")

        self._events: "queue.Queue[SyncEvent]" = queue.Queue()
        self.state: Optional[SyncState] = None
        self.count: Optional[int] = None

        self.demo: Optional[DemoGenerator] = None
        self.subscriber: Optional[CountSubscriber] = None

        if subscriber is not None:
            subscriber.on_count = self._enqueue_count
            subscriber.on_state = self._enqueue_channel_state
            self.subscriber = subscriber
        elif mqtt_config is not None:
            self.subscriber = CountSubscriber(
                config=mqtt_config,
                on_count=self._enqueue_count,
                on_state=self._enqueue_channel_state,
                logger=self.logger,
                client_id=client_id,
            )
        else:
            self.demo = DemoGenerator(
                emit=lambda value: self._events.put(CountUpdate(online=value)),
                period=demo_period,
                cycle=demo_cycle,
            )

    @property
    def is_demo(self) -> bool:
        return self.demo is not None

    # ===== Producers (any thread) =====

    def _enqueue_count(self, message: CountMessage) -> None:
        self._events.put(CountUpdate(online=message.online))

    def _enqueue_channel_state(self, state: ChannelState, detail: str) -> None:
        self._events.put(StateChange(state=SyncState(state.value), detail=detail))

    # ===== Lifecycle =====

    def start(self, timeout: float = 10.0) -> None:
        """Start the count source (blocks up to ``timeout`` for a live broker)."""
        if self.demo is not None:
            self._events.put(StateChange(state=SyncState.DEMO))
            self.demo.start()
        else:
            self.subscriber.start(timeout=timeout)

    def stop(self) -> None:
        if self.demo is not None:
            self.demo.stop()
        if self.subscriber is not None:
            self.subscriber.stop()

    # ===== Consumer (driver thread) =====

    def pending(self) -> int:
        return self._events.qsize()

    def process_pending(self, max_events: Optional[int] = None) -> int:
        """
        Apply queued events in arrival order.

        Returns:
            Number of events applied
        """
        applied = 0
        while max_events is None or applied < max_events:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                break
            self.apply(event)
            applied += 1
        return applied

    def apply(self, event: SyncEvent) -> None:
        if isinstance(event, CountUpdate):
            self._apply_count(event.online)
        else:
            self._apply_state(event.state, event.detail)

    def _apply_count(self, online: int) -> None:
        result = self.registry.resize(online)
        self.count = online
        self.status.set_count(online)
        if result.changed:
            self.logger.debug(
                event=LogEvent.POINTS_RESIZED,
                message="Points reconciled",
                metadata={'online': online, 'added': result.added, 'removed': result.removed}
            )

    def _apply_state(self, state: SyncState, detail: str) -> None:
        if self.is_demo and state is not SyncState.DEMO:
            self.logger.warning(
                event=LogEvent.SYNC_STATE_CHANGED,
                message="Ignoring channel state in demo mode",
                metadata={'state': state.value}
            )
            return

        previous = self.state
        self.state = state
        self.status.set(_STATUS_FOR_STATE[state], detail)

        self.logger.info(
            event=LogEvent.SYNC_STATE_CHANGED,
            message=f"Count source {state.value}",
            metadata={
                'from': previous.value if previous else None,
                'to': state.value,
                'detail': detail,
            }
        )
