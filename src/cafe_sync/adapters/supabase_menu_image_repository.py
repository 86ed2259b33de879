"""Supabase repository for menu image documents."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from cafe_sync.domain.errors import StorageError
from cafe_sync.domain.menu import MenuImage
from cafe_sync.services.menu_images import MenuImageRepository

_TABLE = "menu_images"


@dataclass
class SupabaseMenuImageRepository(MenuImageRepository):
    """Supabase implementation for menu images."""

    client: Client

    def list_images(
        self, include_inactive: bool, limit: int | None, offset: int
    ) -> list[MenuImage]:
        """Return images newest first, optionally paginated."""
        query = self.client.table(_TABLE).select("*")
        if not include_inactive:
            query = query.eq("is_active", True)
        query = query.order("upload_date", desc=True)
        if limit is not None:
            query = query.range(offset, offset + limit - 1)
        response = query.execute()
        return [_row_to_image(row) for row in response.data or []]

    def count_images(self, include_inactive: bool) -> int:
        """Return the number of images."""
        query = self.client.table(_TABLE).select("id")
        if not include_inactive:
            query = query.eq("is_active", True)
        response = query.execute()
        return len(response.data or [])

    def get_image(self, image_id: UUID) -> MenuImage | None:
        """Return an image by id."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("id", str(image_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_image(response.data[0])

    def create_image(self, fields: dict[str, object]) -> MenuImage:
        """Insert an image row."""
        now = datetime.now(tz=UTC).isoformat()
        payload = {**_to_row(fields), "created_at": now, "updated_at": now}
        response = self.client.table(_TABLE).insert(payload).execute()
        if not response.data:
            raise StorageError("Failed to create menu image")
        return _row_to_image(response.data[0])

    def update_image(
        self, image_id: UUID, fields: dict[str, object]
    ) -> MenuImage | None:
        """Update an image row and return it."""
        payload = {**_to_row(fields), "updated_at": datetime.now(tz=UTC).isoformat()}
        response = (
            self.client.table(_TABLE)
            .update(payload)
            .eq("id", str(image_id))
            .execute()
        )
        if not response.data:
            return None
        return _row_to_image(response.data[0])

    def delete_image(self, image_id: UUID) -> bool:
        """Delete an image row."""
        response = self.client.table(_TABLE).delete().eq("id", str(image_id)).execute()
        return bool(response.data)


def _to_row(fields: dict[str, object]) -> dict[str, object]:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in fields.items()
    }


def _row_to_image(row: dict[str, object]) -> MenuImage:
    return MenuImage(
        id=UUID(str(row["id"])),
        name=str(row["name"]),
        url=str(row["url"]),
        size=int(row["size"]),  # type: ignore[call-overload]
        mime_type=str(row["mime_type"]),
        upload_date=datetime.fromisoformat(str(row["upload_date"])),
        is_active=bool(row.get("is_active", True)),
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
        storage_key=row.get("storage_key"),  # type: ignore[arg-type]
    )


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None
