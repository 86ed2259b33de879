"""Fan-out of change events to connected viewers."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from cafe_sync.domain.errors import TransportError
from cafe_sync.domain.events import (
    JOIN_ADMIN,
    JOIN_USER,
    JOINED,
    ChangeEvent,
    encode_event,
)
from cafe_sync.domain.sessions import Room, ViewerSession
from cafe_sync.services.sessions import SessionRegistry

logger = logging.getLogger(__name__)

DEFAULT_SEND_TIMEOUT = 5.0

_JOIN_ROOMS = {JOIN_ADMIN: Room.ADMIN, JOIN_USER: Room.USER}


class Broadcaster(Protocol):
    """Publishes change events produced by the mutation services."""

    async def broadcast(self, event: ChangeEvent) -> None:
        """Deliver an event to every connected viewer; never raises."""


@dataclass
class EventHub(Broadcaster):
    """Process-wide hub delivering events over the realtime channel.

    Every deliverable session receives every event regardless of its rooms.
    Delivery is at most once: a session whose send fails or outlasts
    ``send_timeout`` seconds misses the event and is dropped. Dropped viewers
    are expected to re-fetch a snapshot.
    """

    registry: SessionRegistry = field(default_factory=SessionRegistry)
    send_timeout: float = DEFAULT_SEND_TIMEOUT

    async def broadcast(self, event: ChangeEvent) -> None:
        """Send the encoded event to all deliverable sessions concurrently."""
        channel, payload = encode_event(event)
        frame = {"event": channel, "payload": payload}
        targets = self.registry.deliverable()
        results = await asyncio.gather(
            *(self._send(session, frame) for session in targets),
            return_exceptions=True,
        )
        delivered = 0
        for session, result in zip(targets, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning(
                    "Dropping viewer after failed send",
                    extra={"session_id": session.id, "error": repr(result)},
                )
                self.registry.disconnect(session.id)
            else:
                delivered += 1
        logger.info(
            "Broadcast change event",
            extra={"kind": event.kind, "channel": channel, "delivered": delivered},
        )

    async def handle_message(self, session_id: str, message: object) -> None:
        """Process one client frame such as a room join."""
        event_name = message.get("event") if isinstance(message, dict) else None
        room = _JOIN_ROOMS.get(event_name) if isinstance(event_name, str) else None
        if room is None:
            logger.warning(
                "Ignoring unknown client frame",
                extra={"session_id": session_id, "frame": repr(message)[:200]},
            )
            return
        session = self.registry.join(session_id, room)
        await self._send(session, {"event": JOINED, "payload": {"room": room.value}})

    async def _send(self, session: ViewerSession, frame: dict[str, object]) -> None:
        try:
            await asyncio.wait_for(
                session.connection.send_json(frame), timeout=self.send_timeout
            )
        except Exception as exc:
            raise TransportError(f"Send to {session.id} failed") from exc
