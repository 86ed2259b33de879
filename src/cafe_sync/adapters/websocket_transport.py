"""Realtime channel client built on the websockets library."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import websockets

from cafe_sync.domain.errors import TransportError
from cafe_sync.services.sync_agents import (
    ConnectCallback,
    DisconnectCallback,
    EventHandler,
    SyncTransport,
)

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (OSError, TimeoutError, websockets.exceptions.WebSocketException)


@dataclass
class WebsocketTransport(SyncTransport):
    """Keeps one websocket open to the server, reconnecting after drops.

    Frames are JSON objects ``{"event": ..., "payload": ...}``. Every new
    connection is a new server session, so connect callbacks run again after
    each reconnect.
    """

    url: str
    ping_interval: float = 20.0
    open_timeout: float = 20.0
    reconnect_delay: float = 1.0
    max_reconnect_attempts: int = 5
    _handlers: dict[str, list[EventHandler]] = field(default_factory=dict, init=False)
    _connect_callbacks: list[ConnectCallback] = field(default_factory=list, init=False)
    _disconnect_callbacks: list[DisconnectCallback] = field(
        default_factory=list, init=False
    )
    _websocket: Any = field(default=None, init=False, repr=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _ready: asyncio.Event | None = field(default=None, init=False, repr=False)
    _closing: bool = field(default=False, init=False, repr=False)

    @classmethod
    def for_server(cls, server_url: str, **options: Any) -> "WebsocketTransport":
        """Build a transport for the ``/ws`` endpoint of an HTTP base URL."""
        base = server_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base.removeprefix("https://")
        elif base.startswith("http://"):
            base = "ws://" + base.removeprefix("http://")
        return cls(url=f"{base}/ws", **options)

    @property
    def connected(self) -> bool:
        """Return True while a websocket is open."""
        return self._websocket is not None

    async def connect(self) -> None:
        """Start the connection loop and wait until a connection is open.

        Called during a reconnect gap, waits for the next attempt to succeed.
        """
        if self._task is None or self._task.done():
            self._closing = False
            self._ready = asyncio.Event()
            self._task = asyncio.create_task(self._run())
        assert self._ready is not None
        while True:
            await self._ready.wait()
            # A set event without a websocket means the loop gave up.
            if self.connected or self._ready.is_set():
                break
        if not self.connected:
            raise TransportError(f"Could not connect to {self.url}")

    async def emit(self, event: str, payload: object | None = None) -> bool:
        """Send a frame; frames sent while disconnected are dropped."""
        websocket = self._websocket
        if websocket is None:
            logger.debug("Dropping frame while disconnected", extra={"event": event})
            return False
        try:
            await websocket.send(json.dumps({"event": event, "payload": payload}))
        except websockets.exceptions.ConnectionClosed:
            logger.warning("Frame lost to a closing connection", extra={"event": event})
            return False
        return True

    def on(self, channel: str, handler: EventHandler) -> None:
        """Register a handler for a server channel."""
        self._handlers.setdefault(channel, []).append(handler)

    def off(self, channel: str, handler: EventHandler) -> None:
        """Remove a handler; unknown handlers are ignored."""
        handlers = self._handlers.get(channel, [])
        if handler in handlers:
            handlers.remove(handler)

    def on_connect(self, callback: ConnectCallback) -> None:
        """Register a callback run after every (re)connect."""
        self._connect_callbacks.append(callback)

    def on_disconnect(self, callback: DisconnectCallback) -> None:
        """Register a callback run after every disconnect."""
        self._disconnect_callbacks.append(callback)

    async def close(self) -> None:
        """Close the websocket and stop reconnecting."""
        self._closing = True
        if self._websocket is not None:
            await self._websocket.close()
        if self._task is not None:
            await self._task
            self._task = None

    async def _run(self) -> None:
        attempts = 0
        try:
            while not self._closing:
                try:
                    async with websockets.connect(
                        self.url,
                        ping_interval=self.ping_interval,
                        open_timeout=self.open_timeout,
                    ) as websocket:
                        attempts = 0
                        await self._serve(websocket)
                except _CONNECTION_ERRORS as exc:
                    logger.warning(
                        "Realtime channel error",
                        extra={"url": self.url, "error": repr(exc)},
                    )
                finally:
                    if self._websocket is not None:
                        self._websocket = None
                        if self._ready is not None:
                            self._ready.clear()
                        self._notify_disconnect()
                if self._closing:
                    break
                attempts += 1
                if attempts > self.max_reconnect_attempts:
                    logger.error(
                        "Max reconnection attempts reached", extra={"url": self.url}
                    )
                    break
                await asyncio.sleep(self.reconnect_delay)
        finally:
            if self._ready is not None:
                self._ready.set()

    async def _serve(self, websocket: Any) -> None:
        self._websocket = websocket
        logger.info("Realtime channel connected", extra={"url": self.url})
        for callback in list(self._connect_callbacks):
            await callback()
        if self._ready is not None:
            self._ready.set()
        async for raw in websocket:
            self._dispatch(raw)

    def _notify_disconnect(self) -> None:
        logger.info("Realtime channel disconnected", extra={"url": self.url})
        for callback in list(self._disconnect_callbacks):
            callback()

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            frame = json.loads(raw)
        except ValueError:
            logger.warning(
                "Ignoring non-JSON frame", extra={"frame": repr(raw)[:200]}
            )
            return
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            logger.warning(
                "Ignoring malformed frame", extra={"frame": repr(frame)[:200]}
            )
            return
        payload = frame.get("payload")
        for handler in list(self._handlers.get(frame["event"], [])):
            try:
                handler(payload if isinstance(payload, dict) else {})
            except Exception:
                logger.exception(
                    "Event handler failed", extra={"event": frame["event"]}
                )
