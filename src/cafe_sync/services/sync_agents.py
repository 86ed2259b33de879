"""Viewer-side agents that mirror server state.

Each agent fetches a snapshot over HTTP, then keeps it current by folding in
the change events pushed over the realtime channel. A dropped connection
keeps the local state; events missed while disconnected are only recovered
by an explicit ``load_snapshot()``.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import ClassVar, Protocol

from cafe_sync.domain.events import (
    JOIN_ADMIN,
    JOIN_USER,
    MENU_UPDATE,
    SETTINGS_UPDATE,
    ChangeEvent,
    SettingsUpdated,
    decode_event,
)
from cafe_sync.domain.menu import MenuImage
from cafe_sync.domain.sessions import Room
from cafe_sync.domain.settings import BusinessSettings, SiteSettings
from cafe_sync.services.reconciliation import (
    apply_menu_event,
    merge_settings,
    normalize_settings,
)

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, object]], None]
ConnectCallback = Callable[[], Awaitable[None]]
DisconnectCallback = Callable[[], None]


class SnapshotClient(Protocol):
    """Request/response access to the current server state."""

    async def fetch_settings(self) -> BusinessSettings | None:
        """Return the settings document or None when never saved."""

    async def fetch_menu_images(self, include_inactive: bool) -> list[MenuImage]:
        """Return menu images newest first."""


class SyncTransport(Protocol):
    """Client side of the persistent realtime channel."""

    @property
    def connected(self) -> bool:
        """Return True while the channel is open."""

    async def connect(self) -> None:
        """Open the channel, or reuse it when already open."""

    async def emit(self, event: str, payload: object | None = None) -> bool:
        """Send a frame; return False without effect when disconnected."""

    def on(self, channel: str, handler: EventHandler) -> None:
        """Register a handler for a server channel."""

    def off(self, channel: str, handler: EventHandler) -> None:
        """Remove a handler registered with ``on``."""

    def on_connect(self, callback: ConnectCallback) -> None:
        """Register a callback run after every (re)connect."""

    def on_disconnect(self, callback: DisconnectCallback) -> None:
        """Register a callback run after every disconnect."""

    async def close(self) -> None:
        """Close the channel and stop reconnecting."""


@dataclass
class SyncAgent(ABC):
    """Shared snapshot and subscription plumbing.

    ``stale`` turns True when the channel drops and stays True until the next
    successful ``load_snapshot()``.
    """

    channel: ClassVar[str]

    snapshot_client: SnapshotClient
    transport: SyncTransport
    room: Room = Room.USER
    loading: bool = True
    error: str | None = None
    stale: bool = False
    _subscribed: bool = field(default=False, init=False, repr=False)
    _callbacks_registered: bool = field(default=False, init=False, repr=False)

    @property
    def connected(self) -> bool:
        """Return whether the realtime channel is currently open."""
        return self.transport.connected

    async def load_snapshot(self) -> None:
        """Replace local state with a fresh fetch.

        On failure the error is recorded and the previous state is kept.
        """
        self.loading = True
        try:
            await self._refresh()
        except Exception as exc:
            logger.exception("Snapshot fetch failed", extra={"channel": self.channel})
            self.error = str(exc) or type(exc).__name__
        else:
            self.error = None
            self.stale = False
        finally:
            self.loading = False

    async def subscribe(self) -> None:
        """Listen for pushed events and join the agent's room on every connect.

        A failed connect leaves the handlers registered; calling again retries.
        """
        if not self._subscribed:
            self._subscribed = True
            self.transport.on(self.channel, self._handle_payload)
            if not self._callbacks_registered:
                self._callbacks_registered = True
                self.transport.on_connect(self._join)
                self.transport.on_disconnect(self._mark_stale)
            if self.transport.connected:
                await self._join()
        elif self.transport.connected:
            return
        await self.transport.connect()

    def close(self) -> None:
        """Stop applying pushed events."""
        if not self._subscribed:
            return
        self.transport.off(self.channel, self._handle_payload)
        self._subscribed = False

    @abstractmethod
    def apply(self, event: ChangeEvent) -> None:
        """Fold one change event into local state."""

    @abstractmethod
    async def _refresh(self) -> None: ...

    async def _join(self) -> None:
        if not self._subscribed:
            return
        await self.transport.emit(JOIN_ADMIN if self.room is Room.ADMIN else JOIN_USER)

    def _mark_stale(self) -> None:
        if not self._subscribed:
            return
        self.stale = True
        logger.info("Realtime channel lost", extra={"channel": self.channel})

    def _handle_payload(self, payload: dict[str, object]) -> None:
        try:
            event = decode_event(self.channel, payload)
        except ValueError:
            logger.warning(
                "Ignoring malformed event",
                extra={"channel": self.channel, "payload": repr(payload)[:200]},
            )
            return
        self.apply(event)


@dataclass
class MenuImagesAgent(SyncAgent):
    """Mirrors the menu image list.

    Admin viewers set ``include_inactive`` to see hidden images too.
    """

    channel: ClassVar[str] = MENU_UPDATE

    include_inactive: bool = False
    images: list[MenuImage] = field(default_factory=list)

    def apply(self, event: ChangeEvent) -> None:
        """Apply an imagesAdded, imageDeleted or imageUpdated event."""
        if isinstance(event, SettingsUpdated):
            return
        self.images = apply_menu_event(self.images, event, self.include_inactive)
        logger.debug(
            "Applied menu event",
            extra={"kind": event.kind, "count": len(self.images)},
        )

    async def _refresh(self) -> None:
        self.images = await self.snapshot_client.fetch_menu_images(
            self.include_inactive
        )


@dataclass
class SettingsAgent(SyncAgent):
    """Mirrors the business settings, falling back to defaults."""

    channel: ClassVar[str] = SETTINGS_UPDATE

    settings: SiteSettings | None = None

    def apply(self, event: ChangeEvent) -> None:
        """Merge a settingsUpdated event into the local settings."""
        if not isinstance(event, SettingsUpdated):
            return
        self.settings = merge_settings(self.settings, event.settings)

    async def _refresh(self) -> None:
        self.settings = normalize_settings(await self.snapshot_client.fetch_settings())
