"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from cafe_sync.domain.errors import NotFoundError
from cafe_sync.domain.sessions import Room

if TYPE_CHECKING:
    from cafe_sync.containers import AppContainer
    from cafe_sync.domain.sessions import ViewerSession

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/realtime/sessions", dependencies=[Depends(require_admin)])
async def realtime_sessions(request: Request) -> dict[str, object]:
    """Return the viewers currently connected to the realtime channel."""
    container: AppContainer = request.app.state.container
    registry = container.event_hub.registry
    sessions = registry.sessions()
    return {
        "success": True,
        "count": len(sessions),
        "rooms": {room.value: len(registry.sessions_in(room)) for room in Room},
        "data": [_serialize_session(session) for session in sessions],
    }


@router.get("/realtime/sessions/{session_id}", dependencies=[Depends(require_admin)])
async def realtime_session(session_id: str, request: Request) -> dict[str, object]:
    """Return one connected viewer."""
    container: AppContainer = request.app.state.container
    session = container.event_hub.registry.get(session_id)
    if session is None:
        raise NotFoundError(f"Realtime session {session_id} not found")
    return {"success": True, "data": _serialize_session(session)}


def _serialize_session(session: ViewerSession) -> dict[str, object]:
    return {
        "id": session.id,
        "state": session.state.value,
        "rooms": sorted(room.value for room in session.rooms),
        "connectedAt": session.connected_at.isoformat(),
    }
