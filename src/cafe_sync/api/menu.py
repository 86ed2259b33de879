"""Menu image endpoints."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field

from cafe_sync.api.admin import require_admin
from cafe_sync.domain.events import serialize_menu_image
from cafe_sync.domain.menu import ImageUpload

if TYPE_CHECKING:
    from cafe_sync.containers import AppContainer
    from cafe_sync.services.menu_images import MenuImageService

router = APIRouter(prefix="/api/menu", tags=["menu"])


class MenuImagePayload(BaseModel):
    """Metadata update body; only supplied fields change."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: Any = None
    is_active: Any = Field(default=None, alias="isActive")


@router.get("")
async def list_active_images(request: Request) -> dict[str, object]:
    """Return active images, newest first."""
    container: AppContainer = request.app.state.container
    images = container.menu_image_service.list_images()
    return {
        "success": True,
        "count": len(images),
        "data": [serialize_menu_image(image) for image in images],
    }


@router.get("/admin/all", dependencies=[Depends(require_admin)])
async def list_all_images(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> dict[str, object]:
    """Return one page of every image, including inactive ones."""
    container: AppContainer = request.app.state.container
    service = container.menu_image_service
    total = service.count_images(include_inactive=True)
    images = service.list_images(
        include_inactive=True, limit=limit, offset=(page - 1) * limit
    )
    return {
        "success": True,
        "count": len(images),
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit),
        "data": [serialize_menu_image(image) for image in images],
    }


@router.get("/{image_id}")
async def get_image(image_id: UUID, request: Request) -> dict[str, object]:
    """Return a single active image."""
    container: AppContainer = request.app.state.container
    image = container.menu_image_service.get_image(image_id)
    return {"success": True, "data": serialize_menu_image(image)}


@router.post(
    "/upload",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def upload_images(
    request: Request,
    files: list[UploadFile] | None = File(default=None, alias="menuImages"),
) -> dict[str, object]:
    """Upload a batch of images and broadcast them in one event."""
    container: AppContainer = request.app.state.container
    service = container.menu_image_service
    uploads = [await _read_upload(file, service) for file in files or []]
    result = await service.upload_images(uploads)
    response: dict[str, object] = {
        "success": True,
        "message": f"{len(result.images)} image(s) uploaded successfully",
        "data": [serialize_menu_image(image) for image in result.images],
    }
    if result.failures:
        response["errors"] = [
            {"filename": failure.filename, "error": failure.error}
            for failure in result.failures
        ]
    return response


@router.put("/{image_id}", dependencies=[Depends(require_admin)])
async def update_image(
    image_id: UUID, payload: MenuImagePayload, request: Request
) -> dict[str, object]:
    """Rename or (de)activate an image."""
    container: AppContainer = request.app.state.container
    image = await container.menu_image_service.update_image_metadata(
        image_id, name=payload.name, is_active=payload.is_active
    )
    return {
        "success": True,
        "message": "Menu image updated successfully",
        "data": serialize_menu_image(image),
    }


@router.put("/{image_id}/file", dependencies=[Depends(require_admin)])
async def replace_image_file(
    image_id: UUID,
    request: Request,
    file: UploadFile = File(alias="menuImage"),
) -> dict[str, object]:
    """Swap the stored file of an image."""
    container: AppContainer = request.app.state.container
    service = container.menu_image_service
    image = await service.replace_image_file(
        image_id, await _read_upload(file, service)
    )
    return {
        "success": True,
        "message": "Menu image file replaced successfully",
        "data": serialize_menu_image(image),
    }


@router.delete("/{image_id}", dependencies=[Depends(require_admin)])
async def delete_image(image_id: UUID, request: Request) -> dict[str, object]:
    """Delete an image and its stored file."""
    container: AppContainer = request.app.state.container
    deleted_id = await container.menu_image_service.delete_image(image_id)
    return {
        "success": True,
        "message": "Menu image deleted successfully",
        "data": {"id": str(deleted_id)},
    }


async def _read_upload(file: UploadFile, service: MenuImageService) -> ImageUpload:
    if file.size is not None:
        service.check_size(file.size)
    content = await file.read(service.max_upload_bytes + 1)
    return ImageUpload(
        content=content,
        original_name=file.filename or "",
        mime_type=file.content_type or "",
        size=file.size if file.size is not None else len(content),
    )
