"""Rules for folding pushed change events into a viewer's local state."""

from collections.abc import Iterable
from typing import TypeVar
from uuid import UUID

from cafe_sync.domain.events import ImageDeleted, ImagesAdded, MenuEvent
from cafe_sync.domain.menu import MenuImage
from cafe_sync.domain.settings import (
    DEFAULT_SITE_SETTINGS,
    BusinessSettings,
    SiteSettings,
)

T = TypeVar("T")


def apply_menu_event(
    images: list[MenuImage], event: MenuEvent, include_inactive: bool
) -> list[MenuImage]:
    """Return the local image list after applying one menu event.

    The list is kept newest first. Viewers that only show active images drop
    inactive ones as they arrive.
    """
    if isinstance(event, ImagesAdded):
        incoming = _dedupe(
            image for image in event.images if include_inactive or image.is_active
        )
        incoming.sort(key=lambda image: image.upload_date, reverse=True)
        incoming_ids = {image.id for image in incoming}
        return incoming + [image for image in images if image.id not in incoming_ids]
    if isinstance(event, ImageDeleted):
        return [image for image in images if image.id != event.image_id]

    updated = event.image
    if not include_inactive and not updated.is_active:
        return [image for image in images if image.id != updated.id]
    current = next((image for image in images if image.id == updated.id), None)
    if current is not None and current.upload_date == updated.upload_date:
        return [updated if image.id == updated.id else image for image in images]
    remaining = [image for image in images if image.id != updated.id]
    return _insert_by_upload_date(remaining, updated)


def normalize_settings(document: BusinessSettings | None) -> SiteSettings:
    """Resolve a fetched settings document against the defaults."""
    if document is None:
        return DEFAULT_SITE_SETTINGS
    return merge_settings(None, document)


def merge_settings(
    previous: SiteSettings | None, incoming: BusinessSettings
) -> SiteSettings:
    """Merge a pushed document field by field.

    Absent fields keep the previous local value, or the default when there is
    no local state yet.
    """
    base = previous or DEFAULT_SITE_SETTINGS
    return SiteSettings(
        whatsapp_contact=_pick(incoming.whatsapp_contact, base.whatsapp_contact),
        opening_time=_pick(incoming.opening_time, base.opening_time),
        closing_time=_pick(incoming.closing_time, base.closing_time),
        manual_open_override=_pick(
            incoming.manual_open_override, base.manual_open_override
        ),
        brand_story=_pick(incoming.brand_story, base.brand_story),
        offers_text=_pick(incoming.offers_text, base.offers_text),
    )


def _pick(value: T | None, fallback: T) -> T:
    return fallback if value is None else value


def _dedupe(images: Iterable[MenuImage]) -> list[MenuImage]:
    seen: set[UUID] = set()
    unique: list[MenuImage] = []
    for image in images:
        if image.id in seen:
            continue
        seen.add(image.id)
        unique.append(image)
    return unique


def _insert_by_upload_date(
    images: list[MenuImage], image: MenuImage
) -> list[MenuImage]:
    for index, existing in enumerate(images):
        if existing.upload_date < image.upload_date:
            return [*images[:index], image, *images[index:]]
    return [*images, image]
