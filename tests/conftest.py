"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from cafe_sync.config import Settings
from cafe_sync.containers import AppContainer
from cafe_sync.domain.events import ChangeEvent
from cafe_sync.domain.menu import ImageUpload, MenuImage, StoredBlob
from cafe_sync.domain.settings import BusinessSettings
from cafe_sync.services.broadcast import Broadcaster, EventHub
from cafe_sync.services.menu_images import (
    BlobStore,
    MenuImageRepository,
    MenuImageService,
)
from cafe_sync.services.sessions import SessionRegistry
from cafe_sync.services.settings import SettingsRepository, SettingsService
from cafe_sync.services.sync_agents import (
    ConnectCallback,
    DisconnectCallback,
    EventHandler,
    SnapshotClient,
    SyncTransport,
)

VALID_SETTINGS = {
    "whatsapp_contact": "+919876543210",
    "opening_time": "09:30",
    "closing_time": "22:00",
    "manual_open_override": False,
}


def make_upload(
    name: str = "dish.jpg",
    mime_type: str = "image/jpeg",
    content: bytes = b"jpeg-bytes",
) -> ImageUpload:
    return ImageUpload(
        content=content, original_name=name, mime_type=mime_type, size=len(content)
    )


def make_image(
    name: str = "dish.jpg",
    minutes_ago: int = 0,
    is_active: bool = True,
    image_id: UUID | None = None,
) -> MenuImage:
    return MenuImage(
        id=image_id or uuid4(),
        name=name,
        url=f"https://blobs.test/{name}",
        size=10,
        mime_type="image/jpeg",
        upload_date=datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        - timedelta(minutes=minutes_ago),
        is_active=is_active,
    )


@dataclass
class InMemorySettingsRepository(SettingsRepository):
    """In-memory settings repository for tests."""

    documents: list[BusinessSettings] = field(default_factory=list)
    fail: bool = False

    def get_settings(self) -> BusinessSettings | None:
        self._check()
        return self.documents[0] if self.documents else None

    def create_settings(self, fields: dict[str, object]) -> BusinessSettings:
        self._check()
        now = datetime.now(tz=UTC)
        document = BusinessSettings(
            id=uuid4(),
            whatsapp_contact=fields.get("whatsapp_contact"),  # type: ignore[arg-type]
            opening_time=fields.get("opening_time"),  # type: ignore[arg-type]
            closing_time=fields.get("closing_time"),  # type: ignore[arg-type]
            manual_open_override=fields.get("manual_open_override"),  # type: ignore[arg-type]
            brand_story=fields.get("brand_story"),  # type: ignore[arg-type]
            offers_text=fields.get("offers_text"),  # type: ignore[arg-type]
            created_at=now,
            updated_at=now,
        )
        self.documents.append(document)
        return document

    def update_settings(
        self, settings_id: UUID, fields: dict[str, object]
    ) -> BusinessSettings:
        self._check()
        index = next(
            index
            for index, document in enumerate(self.documents)
            if document.id == settings_id
        )
        updated = replace(
            self.documents[index], **fields, updated_at=datetime.now(tz=UTC)
        )
        self.documents[index] = updated
        return updated

    def count_settings(self) -> int:
        return len(self.documents)

    def _check(self) -> None:
        if self.fail:
            raise RuntimeError("database unavailable")


@dataclass
class InMemoryMenuImageRepository(MenuImageRepository):
    """In-memory menu image repository for tests."""

    images: dict[UUID, MenuImage] = field(default_factory=dict)
    fail_on_create: bool = False
    fail_on_update: bool = False

    def list_images(
        self, include_inactive: bool, limit: int | None, offset: int
    ) -> list[MenuImage]:
        images = sorted(
            (
                image
                for image in self.images.values()
                if include_inactive or image.is_active
            ),
            key=lambda image: image.upload_date,
            reverse=True,
        )
        if limit is None:
            return images[offset:]
        return images[offset : offset + limit]

    def count_images(self, include_inactive: bool) -> int:
        return len(self.list_images(include_inactive, None, 0))

    def get_image(self, image_id: UUID) -> MenuImage | None:
        return self.images.get(image_id)

    def create_image(self, fields: dict[str, object]) -> MenuImage:
        if self.fail_on_create:
            raise RuntimeError("insert failed")
        now = datetime.now(tz=UTC)
        image = MenuImage(
            id=uuid4(),
            created_at=now,
            updated_at=now,
            **fields,  # type: ignore[arg-type]
        )
        self.images[image.id] = image
        return image

    def update_image(
        self, image_id: UUID, fields: dict[str, object]
    ) -> MenuImage | None:
        if self.fail_on_update:
            raise RuntimeError("update failed")
        current = self.images.get(image_id)
        if current is None:
            return None
        updated = replace(current, **fields, updated_at=datetime.now(tz=UTC))
        self.images[image_id] = updated
        return updated

    def delete_image(self, image_id: UUID) -> bool:
        return self.images.pop(image_id, None) is not None


@dataclass
class InMemoryBlobStore(BlobStore):
    """In-memory blob store that records calls."""

    blobs: dict[str, bytes] = field(default_factory=dict)
    store_calls: list[str] = field(default_factory=list)
    delete_calls: list[str] = field(default_factory=list)
    fail_on_store: bool = False
    fail_on_delete: bool = False

    def store(self, key: str, content: bytes, content_type: str) -> StoredBlob:
        self.store_calls.append(key)
        if self.fail_on_store:
            raise RuntimeError("bucket unavailable")
        self.blobs[key] = content
        return StoredBlob(key=key, url=self.url(key))

    def delete(self, key: str) -> None:
        self.delete_calls.append(key)
        if self.fail_on_delete:
            raise RuntimeError("bucket unavailable")
        self.blobs.pop(key, None)

    def url(self, key: str) -> str:
        return f"https://blobs.test/{key}"


@dataclass
class RecordingBroadcaster(Broadcaster):
    """Broadcaster that keeps every event it is given."""

    events: list[ChangeEvent] = field(default_factory=list)

    async def broadcast(self, event: ChangeEvent) -> None:
        self.events.append(event)


@dataclass
class FakeConnection:
    """Server-side connection that records frames."""

    frames: list[object] = field(default_factory=list)
    fail: bool = False

    async def send_json(self, data: object) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.frames.append(data)


@dataclass
class LocalTransport(SyncTransport):
    """Transport wired straight into an EventHub, with manual drop/reconnect."""

    hub: EventHub
    session_id: str | None = None
    emitted: list[str] = field(default_factory=list)
    _connected: bool = False
    _handlers: dict[str, list[EventHandler]] = field(default_factory=dict)
    _connect_callbacks: list[ConnectCallback] = field(default_factory=list)
    _disconnect_callbacks: list[DisconnectCallback] = field(default_factory=list)

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        if self._connected:
            return
        session = self.hub.registry.open(self)
        self.hub.registry.mark_connected(session.id)
        self.session_id = session.id
        self._connected = True
        for callback in list(self._connect_callbacks):
            await callback()

    async def emit(self, event: str, payload: object | None = None) -> bool:
        if not self._connected or self.session_id is None:
            return False
        self.emitted.append(event)
        await self.hub.handle_message(
            self.session_id, {"event": event, "payload": payload}
        )
        return True

    def on(self, channel: str, handler: EventHandler) -> None:
        self._handlers.setdefault(channel, []).append(handler)

    def off(self, channel: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(channel, [])
        if handler in handlers:
            handlers.remove(handler)

    def on_connect(self, callback: ConnectCallback) -> None:
        self._connect_callbacks.append(callback)

    def on_disconnect(self, callback: DisconnectCallback) -> None:
        self._disconnect_callbacks.append(callback)

    def drop(self) -> None:
        if self.session_id is not None:
            self.hub.registry.disconnect(self.session_id)
        self.session_id = None
        self._connected = False
        for callback in list(self._disconnect_callbacks):
            callback()

    async def close(self) -> None:
        self.drop()

    async def send_json(self, data: object) -> None:
        if not self._connected:
            raise ConnectionResetError("transport closed")
        assert isinstance(data, dict)
        payload = data.get("payload")
        for handler in list(self._handlers.get(str(data["event"]), [])):
            handler(payload if isinstance(payload, dict) else {})


@dataclass
class ServiceSnapshotClient(SnapshotClient):
    """Snapshot client reading straight from the services."""

    settings_service: SettingsService
    menu_image_service: MenuImageService
    fail: bool = False

    async def fetch_settings(self) -> BusinessSettings | None:
        if self.fail:
            raise RuntimeError("server unreachable")
        return self.settings_service.get_settings()

    async def fetch_menu_images(self, include_inactive: bool) -> list[MenuImage]:
        if self.fail:
            raise RuntimeError("server unreachable")
        return self.menu_image_service.list_images(include_inactive=include_inactive)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
    )


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def menu_repository() -> InMemoryMenuImageRepository:
    return InMemoryMenuImageRepository()


@pytest.fixture
def settings_repository() -> InMemorySettingsRepository:
    return InMemorySettingsRepository()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def event_hub() -> EventHub:
    return EventHub(SessionRegistry())


@pytest.fixture
def container(
    settings: Settings,
    event_hub: EventHub,
    blob_store: InMemoryBlobStore,
    menu_repository: InMemoryMenuImageRepository,
    settings_repository: InMemorySettingsRepository,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        event_hub=event_hub,
        blob_store=blob_store,
        settings_service=SettingsService(settings_repository, event_hub),
        menu_image_service=MenuImageService(
            repository=menu_repository,
            blob_store=blob_store,
            broadcaster=event_hub,
            max_upload_bytes=settings.max_upload_bytes,
            max_files_per_upload=settings.max_files_per_upload,
        ),
        close_resources=close_resources,
    )


@pytest.fixture
def snapshot_client(container: AppContainer) -> ServiceSnapshotClient:
    return ServiceSnapshotClient(
        settings_service=container.settings_service,
        menu_image_service=container.menu_image_service,
    )
