"""
Viewer status line: what the viewer is doing and the last known count.
"""

from enum import Enum
from typing import Callable, Optional

StatusSink = Callable[[str, Optional[int]], None]


class Status(str, Enum):
    """Viewer lifecycle and channel states, valued by their display label."""
    LOADING = "Loading boundary..."
    BUILDING_MASK = "Building mask..."
    READY = "Ready"
    CONNECTING = "Connecting..."
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    ERROR = "Error"
    DEMO = "Demo mode"

    @property
    def label(self) -> str:
        return self.value


class StatusBoard:
    """
    Current status text plus count, pushed to a sink on every change.

    Usage:
        board = StatusBoard(sink=visualizer.set_status)
        board.set(Status.CONNECTING, "localhost:1883")
        board.set_count(3)
        board.text  # "Connecting...: localhost:1883"
    """

    def __init__(self, sink: Optional[StatusSink] = None):
        self.sink = sink
        self.status = Status.LOADING
        self.detail = ""
        self.count: Optional[int] = None

    @property
    def text(self) -> str:
        if self.detail:
            return f"{self.status.label}: {self.detail}"
        return self.status.label

    @property
    def is_error(self) -> bool:
        return self.status is Status.ERROR

    def set(self, status: Status, detail: str = "") -> None:
        self.status = status
        self.detail = detail
        self._push()

    def set_count(self, count: int) -> None:
        self.count = count
        self._push()

    def _push(self) -> None:
        if self.sink is not None:
            self.sink(self.text, self.count)
