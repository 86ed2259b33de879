"""Business settings endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from cafe_sync.api.admin import require_admin
from cafe_sync.domain.events import serialize_settings

if TYPE_CHECKING:
    from cafe_sync.containers import AppContainer

router = APIRouter(prefix="/api/settings", tags=["settings"])


class SettingsPayload(BaseModel):
    """Settings write body; values are checked by the settings service."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    whatsapp_contact: Any = Field(default=None, alias="whatsappContact")
    opening_time: Any = Field(default=None, alias="openingTime")
    closing_time: Any = Field(default=None, alias="closingTime")
    manual_open_override: Any = Field(default=None, alias="manualOpenOverride")
    brand_story: Any = Field(default=None, alias="brandStory")
    offers_text: Any = Field(default=None, alias="offersText")


@router.get("")
async def get_settings(request: Request) -> dict[str, object]:
    """Return the settings document, or null before the first save."""
    container: AppContainer = request.app.state.container
    settings = container.settings_service.get_settings()
    return {
        "success": True,
        "data": serialize_settings(settings) if settings else None,
    }


@router.put("", dependencies=[Depends(require_admin)])
async def put_settings(payload: SettingsPayload, request: Request) -> dict[str, object]:
    """Create or update the settings and broadcast the saved document."""
    container: AppContainer = request.app.state.container
    saved = await container.settings_service.upsert_settings(
        payload.model_dump(exclude_unset=True)
    )
    return {
        "success": True,
        "message": "Settings updated successfully",
        "data": serialize_settings(saved),
    }
