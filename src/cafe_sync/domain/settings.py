"""Business settings domain models."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

WHATSAPP_CONTACT_MIN_LENGTH = 5
WHATSAPP_CONTACT_MAX_LENGTH = 20
BRAND_STORY_MAX_LENGTH = 5000
OFFERS_TEXT_MAX_LENGTH = 500

DEFAULT_OFFERS_TEXT = (
    "Wednesday BOGO Special - Buy One Get One Free on all medium Premium & "
    "Delight pizzas! Valid every Wednesday. Cannot be combined with other offers."
)


@dataclass(frozen=True)
class BusinessSettings:
    """The singleton settings document.

    Content fields are optional because documents decoded from the realtime
    channel may omit them. Persisted documents always carry every field.
    """

    id: UUID
    whatsapp_contact: str | None
    opening_time: str | None
    closing_time: str | None
    manual_open_override: bool | None
    brand_story: str | None
    offers_text: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class SiteSettings:
    """Fully resolved settings as shown to a viewer."""

    whatsapp_contact: str
    opening_time: str
    closing_time: str
    manual_open_override: bool
    brand_story: str
    offers_text: str


DEFAULT_SITE_SETTINGS = SiteSettings(
    whatsapp_contact="+910000000000",
    opening_time="10:00",
    closing_time="23:00",
    manual_open_override=True,
    brand_story="",
    offers_text=DEFAULT_OFFERS_TEXT,
)
