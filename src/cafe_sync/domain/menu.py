"""Menu image domain models."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

ALLOWED_MIME_TYPES: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}
NAME_MAX_LENGTH = 255


@dataclass(frozen=True)
class MenuImage:
    """A menu image document."""

    id: UUID
    name: str
    url: str
    size: int
    mime_type: str
    upload_date: datetime
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    storage_key: str | None = None


@dataclass(frozen=True)
class ImageUpload:
    """An uploaded file waiting to be stored."""

    content: bytes
    original_name: str
    mime_type: str
    size: int


@dataclass(frozen=True)
class StoredBlob:
    """Locator and public URL returned by a blob store."""

    key: str
    url: str


@dataclass(frozen=True)
class UploadFailure:
    """A file from a batch upload that could not be stored."""

    filename: str
    error: str


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a batch upload."""

    images: list[MenuImage]
    failures: list[UploadFailure] = field(default_factory=list)
