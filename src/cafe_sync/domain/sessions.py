"""Realtime viewer session models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol


class Room(str, Enum):
    """Logical partition of connected viewers."""

    ADMIN = "admin"
    USER = "user"


class SessionState(str, Enum):
    """Lifecycle of a viewer session."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    JOINED_ADMIN = "joined_admin"
    JOINED_USER = "joined_user"
    DISCONNECTED = "disconnected"


DELIVERABLE_STATES = frozenset(
    {SessionState.CONNECTED, SessionState.JOINED_ADMIN, SessionState.JOINED_USER}
)


class Connection(Protocol):
    """Server side of a realtime connection."""

    async def send_json(self, data: object) -> None:
        """Send one JSON frame to the viewer."""


@dataclass
class ViewerSession:
    """A connected viewer as tracked by the registry."""

    id: str
    connection: Connection
    connected_at: datetime
    state: SessionState = SessionState.CONNECTING
    rooms: set[Room] = field(default_factory=set)
