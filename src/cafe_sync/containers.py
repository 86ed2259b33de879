"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import create_client

from cafe_sync.adapters.httpx_snapshot_client import HttpxSnapshotClient
from cafe_sync.adapters.local_blob_store import LocalDiskBlobStore
from cafe_sync.adapters.supabase_blob_store import SupabaseBlobStore
from cafe_sync.adapters.supabase_menu_image_repository import (
    SupabaseMenuImageRepository,
)
from cafe_sync.adapters.supabase_settings_repository import (
    SupabaseSettingsRepository,
)
from cafe_sync.adapters.websocket_transport import WebsocketTransport
from cafe_sync.config import Settings, ViewerSettings
from cafe_sync.domain.sessions import Room
from cafe_sync.services.broadcast import EventHub
from cafe_sync.services.menu_images import BlobStore, MenuImageService
from cafe_sync.services.sessions import SessionRegistry
from cafe_sync.services.settings import SettingsService
from cafe_sync.services.sync_agents import MenuImagesAgent, SettingsAgent


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    event_hub: EventHub
    blob_store: BlobStore
    settings_service: SettingsService
    menu_image_service: MenuImageService
    close_resources: Callable[[], Awaitable[None]]


@dataclass
class ViewerContainer:
    """Holds the client-side agents that mirror server state."""

    settings: ViewerSettings
    snapshot_client: HttpxSnapshotClient
    transport: WebsocketTransport
    settings_agent: SettingsAgent
    menu_agent: MenuImagesAgent
    admin_menu_agent: MenuImagesAgent | None
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    blob_store: BlobStore
    if resolved_settings.blob_backend == "local":
        blob_store = LocalDiskBlobStore(
            root=Path(resolved_settings.uploads_dir),
            base_url=resolved_settings.public_base_url,
        )
    else:
        blob_store = SupabaseBlobStore(
            supabase_client, resolved_settings.storage_bucket
        )
    event_hub = EventHub(
        SessionRegistry(), send_timeout=resolved_settings.broadcast_send_timeout
    )
    settings_service = SettingsService(
        repository=SupabaseSettingsRepository(supabase_client),
        broadcaster=event_hub,
    )
    menu_image_service = MenuImageService(
        repository=SupabaseMenuImageRepository(supabase_client),
        blob_store=blob_store,
        broadcaster=event_hub,
        max_upload_bytes=resolved_settings.max_upload_bytes,
        max_files_per_upload=resolved_settings.max_files_per_upload,
    )

    async def close_resources() -> None:
        for session in event_hub.registry.sessions():
            event_hub.registry.disconnect(session.id)

    return AppContainer(
        settings=resolved_settings,
        event_hub=event_hub,
        blob_store=blob_store,
        settings_service=settings_service,
        menu_image_service=menu_image_service,
        close_resources=close_resources,
    )


def build_viewer(settings: ViewerSettings | None = None) -> ViewerContainer:
    """Create the snapshot client, transport and agents for a viewer."""
    resolved_settings = settings or ViewerSettings()
    snapshot_client = HttpxSnapshotClient.create(
        resolved_settings.server_url, admin_token=resolved_settings.admin_token
    )
    transport = WebsocketTransport.for_server(
        resolved_settings.server_url,
        ping_interval=resolved_settings.ping_interval,
        open_timeout=resolved_settings.open_timeout,
        reconnect_delay=resolved_settings.reconnect_delay,
        max_reconnect_attempts=resolved_settings.max_reconnect_attempts,
    )
    admin_menu_agent = None
    if resolved_settings.admin_token:
        admin_menu_agent = MenuImagesAgent(
            snapshot_client, transport, room=Room.ADMIN, include_inactive=True
        )

    async def close_resources() -> None:
        await transport.close()
        await snapshot_client.close()

    return ViewerContainer(
        settings=resolved_settings,
        snapshot_client=snapshot_client,
        transport=transport,
        settings_agent=SettingsAgent(snapshot_client, transport),
        menu_agent=MenuImagesAgent(snapshot_client, transport),
        admin_menu_agent=admin_menu_agent,
        close_resources=close_resources,
    )
