"""
Count Channel Schemas
=====================

Bounded Context: Wire format of the live count channel

Two message kinds travel over the broker:

    viewer -> service   <prefix>/presence/<client_id>
        {"type": "presence", "client_id": "viewer-1", "state": "online"}

    service -> viewer   <prefix>/clients/<client_id>/count
        {"type": "count", "online": 3}

Design Principles:
- Immutability: frozen=True prevents accidental mutation
- Validation: constructor and from_dict reject every other shape
- Serialization: to_dict()/to_json() for publishing
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union


class MessageType(str, Enum):
    """Discriminator carried in every payload's "type" field."""
    COUNT = "count"
    PRESENCE = "presence"


class PresenceState(str, Enum):
    """Viewer presence as announced to the counting service."""
    ONLINE = "online"
    OFFLINE = "offline"


def _decode(payload: Union[str, bytes]) -> Dict[str, Any]:
    """Decode a UTF-8 JSON object payload, raising ValueError on any failure."""
    try:
        if isinstance(payload, bytes):
            payload = payload.decode('utf-8')
        data = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid JSON payload: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Payload must be a JSON object, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class CountMessage:
    """
    Online count pushed to a viewer.

    Attributes:
        online: Number of currently connected viewers

    Invariants:
        - online is an int (not bool)
        - online >= 0

    Example:
        >>> CountMessage(online=3).to_json()
        '{"type": "count", "online": 3}'
    """
    online: int

    def __post_init__(self):
        if isinstance(self.online, bool) or not isinstance(self.online, int):
            raise ValueError(f"online must be an integer, got {self.online!r}")
        if self.online < 0:
            raise ValueError(f"online must be >= 0, got {self.online}")

    def to_dict(self) -> Dict[str, Any]:
        return {'type': MessageType.COUNT.value, 'online': self.online}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CountMessage':
        """
        Deserialize from dict.

        Raises:
            ValueError: If the type is not "count" or online is missing/invalid
        """
        if data.get('type') != MessageType.COUNT.value:
            raise ValueError(f"Not a count message: type={data.get('type')!r}")
        try:
            return cls(online=data['online'])
        except KeyError as e:
            raise ValueError(f"Missing required count field: {e}")

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> 'CountMessage':
        return cls.from_dict(_decode(payload))


@dataclass(frozen=True)
class PresenceMessage:
    """
    Viewer presence announcement (also used as the Last Will).

    Attributes:
        client_id: MQTT client id of the viewer
        state: ONLINE on connect, OFFLINE on leave or abrupt disconnect
    """
    client_id: str
    state: PresenceState

    def __post_init__(self):
        if not isinstance(self.client_id, str) or not self.client_id:
            raise ValueError(f"client_id must be a non-empty string, got {self.client_id!r}")
        if '/' in self.client_id or '+' in self.client_id or '#' in self.client_id:
            raise ValueError(f"client_id must not contain topic characters: {self.client_id!r}")
        if not isinstance(self.state, PresenceState):
            raise ValueError(f"state must be a PresenceState, got {self.state!r}")

    @property
    def is_online(self) -> bool:
        return self.state is PresenceState.ONLINE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': MessageType.PRESENCE.value,
            'client_id': self.client_id,
            'state': self.state.value,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PresenceMessage':
        """
        Deserialize from dict.

        Raises:
            ValueError: If the type is not "presence" or fields are missing/invalid
        """
        if data.get('type') != MessageType.PRESENCE.value:
            raise ValueError(f"Not a presence message: type={data.get('type')!r}")
        try:
            return cls(
                client_id=data['client_id'],
                state=PresenceState(data['state']),
            )
        except KeyError as e:
            raise ValueError(f"Missing required presence field: {e}")

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> 'PresenceMessage':
        return cls.from_dict(_decode(payload))
