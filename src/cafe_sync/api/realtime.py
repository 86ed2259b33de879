"""Realtime websocket endpoint."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from cafe_sync.domain.errors import TransportError

if TYPE_CHECKING:
    from cafe_sync.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_channel(websocket: WebSocket) -> None:
    """Register the viewer and process its frames until it disconnects."""
    container: AppContainer = websocket.app.state.container
    hub = container.event_hub
    session = hub.registry.open(websocket)
    await websocket.accept()
    hub.registry.mark_connected(session.id)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                logger.warning(
                    "Ignoring non-JSON frame",
                    extra={"session_id": session.id, "frame": raw[:200]},
                )
                continue
            await hub.handle_message(session.id, message)
    except WebSocketDisconnect as exc:
        logger.debug(
            "Viewer closed the channel",
            extra={"session_id": session.id, "code": exc.code},
        )
    except TransportError:
        logger.warning("Realtime session failed", extra={"session_id": session.id})
    finally:
        hub.registry.disconnect(session.id)
