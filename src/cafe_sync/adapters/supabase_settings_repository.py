"""Supabase repository for the business settings singleton."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from cafe_sync.domain.errors import StorageError
from cafe_sync.domain.settings import BusinessSettings
from cafe_sync.services.settings import SettingsRepository

_TABLE = "business_settings"


@dataclass
class SupabaseSettingsRepository(SettingsRepository):
    """Supabase implementation for the settings document."""

    client: Client

    def get_settings(self) -> BusinessSettings | None:
        """Return the oldest settings row, if any."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .order("created_at")
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_settings(response.data[0])

    def create_settings(self, fields: dict[str, object]) -> BusinessSettings:
        """Insert the settings row."""
        now = datetime.now(tz=UTC).isoformat()
        response = (
            self.client.table(_TABLE)
            .insert({**fields, "created_at": now, "updated_at": now})
            .execute()
        )
        if not response.data:
            raise StorageError("Failed to create settings")
        return _row_to_settings(response.data[0])

    def update_settings(
        self, settings_id: UUID, fields: dict[str, object]
    ) -> BusinessSettings:
        """Update the settings row."""
        response = (
            self.client.table(_TABLE)
            .update({**fields, "updated_at": datetime.now(tz=UTC).isoformat()})
            .eq("id", str(settings_id))
            .execute()
        )
        if not response.data:
            raise StorageError("Failed to update settings")
        return _row_to_settings(response.data[0])

    def count_settings(self) -> int:
        """Return the number of settings rows."""
        response = self.client.table(_TABLE).select("id").execute()
        return len(response.data or [])


def _row_to_settings(row: dict[str, object]) -> BusinessSettings:
    return BusinessSettings(
        id=UUID(str(row["id"])),
        whatsapp_contact=row.get("whatsapp_contact"),  # type: ignore[arg-type]
        opening_time=row.get("opening_time"),  # type: ignore[arg-type]
        closing_time=row.get("closing_time"),  # type: ignore[arg-type]
        manual_open_override=row.get("manual_open_override"),  # type: ignore[arg-type]
        brand_story=row.get("brand_story"),  # type: ignore[arg-type]
        offers_text=row.get("offers_text"),  # type: ignore[arg-type]
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
    )


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None
