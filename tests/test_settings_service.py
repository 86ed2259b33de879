"""Tests for the settings service."""

import asyncio

import pytest

from cafe_sync.domain.errors import StorageError, ValidationError
from cafe_sync.domain.events import SettingsUpdated
from cafe_sync.domain.settings import DEFAULT_OFFERS_TEXT
from cafe_sync.services.settings import SettingsService, validate_settings_fields
from tests.conftest import (
    VALID_SETTINGS,
    InMemorySettingsRepository,
    RecordingBroadcaster,
)


def test_first_write_creates_singleton_with_defaults(
    settings_repository: InMemorySettingsRepository,
    broadcaster: RecordingBroadcaster,
) -> None:
    service = SettingsService(settings_repository, broadcaster)

    saved = asyncio.run(service.upsert_settings(VALID_SETTINGS))

    assert saved.whatsapp_contact == "+919876543210"
    assert saved.brand_story == ""
    assert saved.offers_text == DEFAULT_OFFERS_TEXT
    assert settings_repository.count_settings() == 1
    assert len(broadcaster.events) == 1
    event = broadcaster.events[0]
    assert isinstance(event, SettingsUpdated)
    assert event.settings == saved


def test_second_write_updates_existing_document(
    settings_repository: InMemorySettingsRepository,
    broadcaster: RecordingBroadcaster,
) -> None:
    service = SettingsService(settings_repository, broadcaster)
    first = asyncio.run(
        service.upsert_settings({**VALID_SETTINGS, "brand_story": "Since 1999"})
    )

    second = asyncio.run(
        service.upsert_settings({**VALID_SETTINGS, "closing_time": "23:30"})
    )

    assert second.id == first.id
    assert second.closing_time == "23:30"
    assert second.brand_story == "Since 1999"
    assert settings_repository.count_settings() == 1
    assert service.get_settings() == second
    assert len(broadcaster.events) == 2


def test_values_are_stored_as_given(
    settings_repository: InMemorySettingsRepository,
    broadcaster: RecordingBroadcaster,
) -> None:
    service = SettingsService(settings_repository, broadcaster)
    fields = {**VALID_SETTINGS, "whatsapp_contact": " +91 98765 ", "offers_text": ""}

    saved = asyncio.run(service.upsert_settings(fields))

    assert saved.whatsapp_contact == " +91 98765 "
    assert saved.offers_text == ""


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"whatsapp_contact": "   "}, "WhatsApp contact is required"),
        ({"whatsapp_contact": "123"}, "between 5 and 20"),
        ({"opening_time": "24:00"}, "Opening time must use HH:MM"),
        ({"closing_time": "9:00"}, "Closing time must use HH:MM"),
        ({"manual_open_override": "true"}, "must be a boolean"),
        ({"brand_story": "x" * 5001}, "Brand story must be at most 5000"),
        ({"offers_text": "x" * 501}, "Offers text must be at most 500"),
        ({"opening_time": None}, "Missing required fields: opening_time"),
        ({"favourite_colour": "red"}, "Unknown settings fields"),
    ],
)
def test_invalid_settings_are_rejected(
    settings_repository: InMemorySettingsRepository,
    broadcaster: RecordingBroadcaster,
    overrides: dict[str, object],
    message: str,
) -> None:
    service = SettingsService(settings_repository, broadcaster)

    with pytest.raises(ValidationError, match=message):
        asyncio.run(service.upsert_settings({**VALID_SETTINGS, **overrides}))

    assert settings_repository.count_settings() == 0
    assert broadcaster.events == []


def test_validate_settings_drops_absent_optional_fields() -> None:
    values = validate_settings_fields({**VALID_SETTINGS, "brand_story": None})

    assert values == VALID_SETTINGS


def test_store_failure_surfaces_as_storage_error(
    settings_repository: InMemorySettingsRepository,
    broadcaster: RecordingBroadcaster,
) -> None:
    settings_repository.fail = True
    service = SettingsService(settings_repository, broadcaster)

    with pytest.raises(StorageError, match="database unavailable"):
        asyncio.run(service.upsert_settings(VALID_SETTINGS))

    assert broadcaster.events == []
