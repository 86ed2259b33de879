"""Business settings mutation service."""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from cafe_sync.domain.errors import ValidationError
from cafe_sync.domain.events import SettingsUpdated
from cafe_sync.domain.settings import (
    BRAND_STORY_MAX_LENGTH,
    DEFAULT_OFFERS_TEXT,
    OFFERS_TEXT_MAX_LENGTH,
    WHATSAPP_CONTACT_MAX_LENGTH,
    WHATSAPP_CONTACT_MIN_LENGTH,
    BusinessSettings,
)
from cafe_sync.services.broadcast import Broadcaster
from cafe_sync.services.storage import storage_errors

logger = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_REQUIRED_FIELDS = (
    "whatsapp_contact",
    "opening_time",
    "closing_time",
    "manual_open_override",
)
_OPTIONAL_TEXT_LIMITS = {
    "brand_story": ("Brand story", BRAND_STORY_MAX_LENGTH),
    "offers_text": ("Offers text", OFFERS_TEXT_MAX_LENGTH),
}
_CREATE_DEFAULTS: dict[str, object] = {
    "brand_story": "",
    "offers_text": DEFAULT_OFFERS_TEXT,
}


class SettingsRepository(Protocol):
    """Persistence interface for the settings singleton."""

    def get_settings(self) -> BusinessSettings | None:
        """Return the settings document, if one exists."""

    def create_settings(self, fields: dict[str, object]) -> BusinessSettings:
        """Insert the settings document and return it."""

    def update_settings(
        self, settings_id: UUID, fields: dict[str, object]
    ) -> BusinessSettings:
        """Update the given fields of the settings document and return it."""

    def count_settings(self) -> int:
        """Return how many settings documents exist."""


@dataclass
class SettingsService:
    """Reads and upserts the settings singleton, broadcasting every write."""

    repository: SettingsRepository
    broadcaster: Broadcaster

    def get_settings(self) -> BusinessSettings | None:
        """Return the current settings or None when never saved."""
        with storage_errors("load settings"):
            return self.repository.get_settings()

    async def upsert_settings(self, fields: Mapping[str, object]) -> BusinessSettings:
        """Validate and save settings, creating the singleton on first write."""
        values = validate_settings_fields(fields)
        with storage_errors("save settings"):
            existing = self.repository.get_settings()
            if existing is None:
                saved = self.repository.create_settings({**_CREATE_DEFAULTS, **values})
            else:
                saved = self.repository.update_settings(existing.id, values)
        await self.broadcaster.broadcast(SettingsUpdated(settings=saved))
        logger.info(
            "Settings saved",
            extra={"settings_id": str(saved.id), "was_created": existing is None},
        )
        return saved


def validate_settings_fields(fields: Mapping[str, object]) -> dict[str, object]:
    """Return the validated fields exactly as supplied or raise ValidationError."""
    allowed = set(_REQUIRED_FIELDS) | set(_OPTIONAL_TEXT_LIMITS)
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ValidationError(f"Unknown settings fields: {', '.join(unknown)}")
    missing = [name for name in _REQUIRED_FIELDS if fields.get(name) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    contact = fields["whatsapp_contact"]
    if not isinstance(contact, str) or not contact.strip():
        raise ValidationError("WhatsApp contact is required")
    if not (
        WHATSAPP_CONTACT_MIN_LENGTH <= len(contact) <= WHATSAPP_CONTACT_MAX_LENGTH
    ):
        raise ValidationError(
            "WhatsApp contact must be between "
            f"{WHATSAPP_CONTACT_MIN_LENGTH} and {WHATSAPP_CONTACT_MAX_LENGTH} "
            "characters"
        )
    for name, label in (("opening_time", "Opening"), ("closing_time", "Closing")):
        value = fields[name]
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{label} time is required")
        if not _TIME_PATTERN.match(value):
            raise ValidationError(f"{label} time must use HH:MM format")
    if not isinstance(fields["manual_open_override"], bool):
        raise ValidationError("Manual open override must be a boolean")

    values = {name: fields[name] for name in _REQUIRED_FIELDS}
    for name, (label, limit) in _OPTIONAL_TEXT_LIMITS.items():
        if fields.get(name) is None:
            continue
        value = fields[name]
        if not isinstance(value, str):
            raise ValidationError(f"{label} must be a string")
        if len(value) > limit:
            raise ValidationError(f"{label} must be at most {limit} characters")
        values[name] = value
    return values
