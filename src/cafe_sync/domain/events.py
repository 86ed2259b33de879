"""Change events and their realtime wire format."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import ClassVar
from uuid import UUID

from cafe_sync.domain.menu import MenuImage
from cafe_sync.domain.settings import BusinessSettings

MENU_UPDATE = "menuUpdate"
SETTINGS_UPDATE = "settingsUpdate"
JOIN_ADMIN = "joinAdmin"
JOIN_USER = "joinUser"
JOINED = "joined"


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class ImagesAdded:
    """One or more images were uploaded."""

    kind: ClassVar[str] = "imagesAdded"

    images: tuple[MenuImage, ...]
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class ImageDeleted:
    """An image was removed."""

    kind: ClassVar[str] = "imageDeleted"

    image_id: UUID
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class ImageUpdated:
    """An image's metadata or file changed."""

    kind: ClassVar[str] = "imageUpdated"

    image: MenuImage
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class SettingsUpdated:
    """The settings singleton was written."""

    kind: ClassVar[str] = "settingsUpdated"

    settings: BusinessSettings
    timestamp: datetime = field(default_factory=_now)


MenuEvent = ImagesAdded | ImageDeleted | ImageUpdated
ChangeEvent = ImagesAdded | ImageDeleted | ImageUpdated | SettingsUpdated


def encode_event(event: ChangeEvent) -> tuple[str, dict[str, object]]:
    """Return the channel name and payload for a change event."""
    timestamp = event.timestamp.isoformat()
    if isinstance(event, SettingsUpdated):
        return SETTINGS_UPDATE, {
            "data": serialize_settings(event.settings),
            "timestamp": timestamp,
        }
    data: object
    if isinstance(event, ImagesAdded):
        data = [serialize_menu_image(image) for image in event.images]
    elif isinstance(event, ImageDeleted):
        data = {"id": str(event.image_id)}
    else:
        data = serialize_menu_image(event.image)
    return MENU_UPDATE, {"event": event.kind, "data": data, "timestamp": timestamp}


def decode_event(channel: str, payload: dict[str, object]) -> ChangeEvent:
    """Parse a channel payload back into a change event.

    Raises ValueError when the payload does not match a known event shape.
    """
    timestamp = parse_datetime(payload.get("timestamp")) or _now()
    data = payload.get("data")
    if channel == SETTINGS_UPDATE:
        if not isinstance(data, dict):
            raise ValueError("settingsUpdate payload has no settings document")
        return SettingsUpdated(settings=parse_settings(data), timestamp=timestamp)
    if channel != MENU_UPDATE:
        raise ValueError(f"Unknown channel: {channel}")
    kind = payload.get("event")
    if kind == ImagesAdded.kind:
        if not isinstance(data, list):
            raise ValueError("imagesAdded payload must be a list")
        return ImagesAdded(
            images=tuple(parse_menu_image(item) for item in data),
            timestamp=timestamp,
        )
    if kind == ImageDeleted.kind:
        if not isinstance(data, dict) or "id" not in data:
            raise ValueError("imageDeleted payload must carry an id")
        return ImageDeleted(image_id=UUID(str(data["id"])), timestamp=timestamp)
    if kind == ImageUpdated.kind:
        if not isinstance(data, dict):
            raise ValueError("imageUpdated payload must be a document")
        return ImageUpdated(image=parse_menu_image(data), timestamp=timestamp)
    raise ValueError(f"Unknown menu event: {kind}")


def serialize_menu_image(image: MenuImage) -> dict[str, object]:
    """Return the public representation of an image; the blob key stays private."""
    return {
        "id": str(image.id),
        "name": image.name,
        "url": image.url,
        "size": image.size,
        "mimeType": image.mime_type,
        "uploadDate": image.upload_date.isoformat(),
        "isActive": image.is_active,
        "createdAt": image.created_at.isoformat() if image.created_at else None,
        "updatedAt": image.updated_at.isoformat() if image.updated_at else None,
    }


def parse_menu_image(data: dict[str, object]) -> MenuImage:
    """Parse a public image representation."""
    try:
        upload_date = parse_datetime(data["uploadDate"])
        if upload_date is None:
            raise ValueError("uploadDate is required")
        return MenuImage(
            id=UUID(str(data["id"])),
            name=str(data["name"]),
            url=str(data["url"]),
            size=int(data["size"]),  # type: ignore[call-overload]
            mime_type=str(data["mimeType"]),
            upload_date=upload_date,
            is_active=bool(data.get("isActive", True)),
            created_at=parse_datetime(data.get("createdAt")),
            updated_at=parse_datetime(data.get("updatedAt")),
        )
    except KeyError as exc:
        raise ValueError(f"Menu image is missing {exc.args[0]}") from exc


def serialize_settings(settings: BusinessSettings) -> dict[str, object]:
    """Return the public representation of the settings document."""
    return {
        "id": str(settings.id),
        "whatsappContact": settings.whatsapp_contact,
        "openingTime": settings.opening_time,
        "closingTime": settings.closing_time,
        "manualOpenOverride": settings.manual_open_override,
        "brandStory": settings.brand_story,
        "offersText": settings.offers_text,
        "createdAt": settings.created_at.isoformat() if settings.created_at else None,
        "updatedAt": settings.updated_at.isoformat() if settings.updated_at else None,
    }


def parse_settings(data: dict[str, object]) -> BusinessSettings:
    """Parse a settings document, keeping absent fields as None."""
    raw_id = data.get("id")
    override = data.get("manualOpenOverride")
    return BusinessSettings(
        id=UUID(str(raw_id)) if raw_id else UUID(int=0),
        whatsapp_contact=_optional_str(data.get("whatsappContact")),
        opening_time=_optional_str(data.get("openingTime")),
        closing_time=_optional_str(data.get("closingTime")),
        manual_open_override=override if isinstance(override, bool) else None,
        brand_story=_optional_str(data.get("brandStory")),
        offers_text=_optional_str(data.get("offersText")),
        created_at=parse_datetime(data.get("createdAt")),
        updated_at=parse_datetime(data.get("updatedAt")),
    )


def parse_datetime(value: object) -> datetime | None:
    """Parse an ISO timestamp; None or empty values yield None."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) else None
