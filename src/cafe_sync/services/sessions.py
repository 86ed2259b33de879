"""Registry of connected realtime viewer sessions."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from cafe_sync.domain.errors import TransportError
from cafe_sync.domain.sessions import (
    DELIVERABLE_STATES,
    Connection,
    Room,
    SessionState,
    ViewerSession,
)

logger = logging.getLogger(__name__)

_JOINED_STATES = {
    Room.ADMIN: SessionState.JOINED_ADMIN,
    Room.USER: SessionState.JOINED_USER,
}


@dataclass
class SessionRegistry:
    """Tracks viewer sessions from handshake to disconnect.

    Sessions are never reused: a reconnecting viewer gets a new id and must
    join its rooms again.
    """

    _sessions: dict[str, ViewerSession] = field(default_factory=dict)

    def open(self, connection: Connection) -> ViewerSession:
        """Register a connection that is still completing its handshake."""
        session = ViewerSession(
            id=uuid4().hex,
            connection=connection,
            connected_at=datetime.now(tz=UTC),
        )
        self._sessions[session.id] = session
        return session

    def mark_connected(self, session_id: str) -> ViewerSession:
        """Move a session from connecting to connected."""
        session = self._require(session_id)
        if session.state is SessionState.CONNECTING:
            session.state = SessionState.CONNECTED
            logger.info("Viewer connected", extra={"session_id": session_id})
        return session

    def join(self, session_id: str, room: Room) -> ViewerSession:
        """Add a connected session to a room."""
        session = self._require(session_id)
        if session.state not in DELIVERABLE_STATES:
            raise TransportError(f"Session {session_id} is not connected")
        session.rooms.add(room)
        session.state = _JOINED_STATES[room]
        logger.info(
            "Viewer joined room", extra={"session_id": session_id, "room": room.value}
        )
        return session

    def disconnect(self, session_id: str) -> None:
        """Forget a session; unknown ids are ignored."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        session.state = SessionState.DISCONNECTED
        logger.info("Viewer disconnected", extra={"session_id": session_id})

    def get(self, session_id: str) -> ViewerSession | None:
        """Return a live session by id."""
        return self._sessions.get(session_id)

    def sessions(self) -> list[ViewerSession]:
        """Return all live sessions ordered by connection time."""
        return sorted(self._sessions.values(), key=lambda item: item.connected_at)

    def sessions_in(self, room: Room) -> list[ViewerSession]:
        """Return live sessions that joined a room."""
        return [session for session in self.sessions() if room in session.rooms]

    def deliverable(self) -> list[ViewerSession]:
        """Return sessions that can receive broadcasts right now."""
        return [
            session
            for session in self.sessions()
            if session.state in DELIVERABLE_STATES
        ]

    def count(self) -> int:
        """Return the number of live sessions."""
        return len(self._sessions)

    def _require(self, session_id: str) -> ViewerSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise TransportError(f"Unknown session {session_id}")
        return session
