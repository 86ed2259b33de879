"""Menu image mutation service."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol, cast
from uuid import UUID, uuid4

from cafe_sync.domain.errors import NotFoundError, StorageError, ValidationError
from cafe_sync.domain.events import ImageDeleted, ImagesAdded, ImageUpdated
from cafe_sync.domain.menu import (
    ALLOWED_MIME_TYPES,
    NAME_MAX_LENGTH,
    ImageUpload,
    MenuImage,
    StoredBlob,
    UploadFailure,
    UploadResult,
)
from cafe_sync.services.broadcast import Broadcaster
from cafe_sync.services.compensation import CompensatedSequence
from cafe_sync.services.storage import storage_errors

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_FILES_PER_UPLOAD = 10


class MenuImageRepository(Protocol):
    """Persistence interface for menu image documents."""

    def list_images(
        self, include_inactive: bool, limit: int | None, offset: int
    ) -> list[MenuImage]:
        """Return images ordered by upload date, newest first."""

    def count_images(self, include_inactive: bool) -> int:
        """Return the number of images."""

    def get_image(self, image_id: UUID) -> MenuImage | None:
        """Return an image by id, if present."""

    def create_image(self, fields: dict[str, object]) -> MenuImage:
        """Insert an image document and return it."""

    def update_image(
        self, image_id: UUID, fields: dict[str, object]
    ) -> MenuImage | None:
        """Update the given fields and return the image, or None if absent."""

    def delete_image(self, image_id: UUID) -> bool:
        """Delete an image document; return False when it did not exist."""


class BlobStore(Protocol):
    """Binary storage for image payloads."""

    def store(self, key: str, content: bytes, content_type: str) -> StoredBlob:
        """Store a payload under a key and return its locator and URL."""

    def delete(self, key: str) -> None:
        """Delete a stored payload."""

    def url(self, key: str) -> str:
        """Return the public URL for a key."""


@dataclass
class MenuImageService:
    """Uploads, updates and deletes menu images, broadcasting every change."""

    repository: MenuImageRepository
    blob_store: BlobStore
    broadcaster: Broadcaster
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    max_files_per_upload: int = DEFAULT_MAX_FILES_PER_UPLOAD

    def list_images(
        self,
        include_inactive: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[MenuImage]:
        """Return images newest first; public callers only see active ones."""
        with storage_errors("list menu images"):
            return self.repository.list_images(include_inactive, limit, offset)

    def count_images(self, include_inactive: bool = False) -> int:
        """Return the number of images visible to the caller."""
        with storage_errors("count menu images"):
            return self.repository.count_images(include_inactive)

    def get_image(self, image_id: UUID, include_inactive: bool = False) -> MenuImage:
        """Return a single image or raise NotFoundError."""
        with storage_errors("load menu image"):
            image = self.repository.get_image(image_id)
        if image is None or not (include_inactive or image.is_active):
            raise NotFoundError("Menu image not found")
        return image

    async def upload_image(
        self, content: bytes, original_name: str, mime_type: str, size: int
    ) -> MenuImage:
        """Upload a single file and return the created image."""
        upload = ImageUpload(
            content=content,
            original_name=original_name,
            mime_type=mime_type,
            size=size,
        )
        result = await self.upload_images([upload])
        return result.images[0]

    async def upload_images(self, uploads: Sequence[ImageUpload]) -> UploadResult:
        """Store a batch of files and emit one imagesAdded event.

        The whole batch is validated before anything is stored. Files whose
        storage fails are reported in the result; the call fails only when no
        file could be stored.
        """
        if not uploads:
            raise ValidationError("No files uploaded")
        if len(uploads) > self.max_files_per_upload:
            raise ValidationError(
                f"Too many files. Maximum {self.max_files_per_upload} files allowed."
            )
        for upload in uploads:
            self._validate_upload(upload)

        images: list[MenuImage] = []
        failures: list[UploadFailure] = []
        first_error: StorageError | None = None
        for upload in uploads:
            try:
                images.append(self._store_new_image(upload))
            except StorageError as exc:
                failures.append(
                    UploadFailure(filename=upload.original_name, error=str(exc))
                )
                first_error = first_error or exc
        if not images:
            raise first_error or StorageError("No files were stored")

        await self.broadcaster.broadcast(ImagesAdded(images=tuple(images)))
        logger.info(
            "Menu images uploaded",
            extra={"created_count": len(images), "failed": len(failures)},
        )
        return UploadResult(images=images, failures=failures)

    async def delete_image(self, image_id: UUID) -> UUID:
        """Delete the blob and the document, then emit imageDeleted."""
        with storage_errors("load menu image"):
            image = self.repository.get_image(image_id)
        if image is None:
            raise NotFoundError("Menu image not found")
        if image.storage_key:
            try:
                self.blob_store.delete(image.storage_key)
            except Exception:
                logger.exception(
                    "Failed to delete image blob, removing document anyway",
                    extra={"image_id": str(image_id), "key": image.storage_key},
                )
        with storage_errors("delete menu image"):
            deleted = self.repository.delete_image(image_id)
        if not deleted:
            raise NotFoundError("Menu image not found")
        await self.broadcaster.broadcast(ImageDeleted(image_id=image_id))
        logger.info("Menu image deleted", extra={"image_id": str(image_id)})
        return image_id

    async def update_image_metadata(
        self,
        image_id: UUID,
        name: str | None = None,
        is_active: bool | None = None,
    ) -> MenuImage:
        """Update only the supplied fields and emit imageUpdated."""
        fields: dict[str, object] = {}
        if name is not None:
            _validate_name(name)
            fields["name"] = name
        if is_active is not None:
            if not isinstance(is_active, bool):
                raise ValidationError("isActive must be a boolean")
            fields["is_active"] = is_active
        if not fields:
            raise ValidationError("Nothing to update")
        with storage_errors("update menu image"):
            updated = self.repository.update_image(image_id, fields)
        if updated is None:
            raise NotFoundError("Menu image not found")
        await self.broadcaster.broadcast(ImageUpdated(image=updated))
        logger.info(
            "Menu image updated",
            extra={"image_id": str(image_id), "fields": sorted(fields)},
        )
        return updated

    async def replace_image_file(
        self, image_id: UUID, upload: ImageUpload
    ) -> MenuImage:
        """Swap the stored file of an image and emit imageUpdated."""
        self._validate_upload(upload)
        with storage_errors("load menu image"):
            current = self.repository.get_image(image_id)
        if current is None:
            raise NotFoundError("Menu image not found")

        def update_document(results: list[object]) -> MenuImage:
            blob = cast(StoredBlob, results[0])
            updated = self.repository.update_image(
                image_id, _file_fields(upload, blob, datetime.now(tz=UTC))
            )
            if updated is None:
                raise NotFoundError("Menu image not found")
            return updated

        sequence = self._store_blob_sequence(upload).add(
            "update document", update_document
        )
        with storage_errors("replace menu image file"):
            _, replaced = sequence.run()
        if current.storage_key:
            try:
                self.blob_store.delete(current.storage_key)
            except Exception:
                logger.exception(
                    "Failed to delete replaced image blob",
                    extra={"image_id": str(image_id), "key": current.storage_key},
                )
        image = cast(MenuImage, replaced)
        await self.broadcaster.broadcast(ImageUpdated(image=image))
        logger.info("Menu image file replaced", extra={"image_id": str(image_id)})
        return image

    def check_size(self, size: int) -> None:
        """Reject a declared upload size above the configured limit."""
        if size > self.max_upload_bytes:
            raise ValidationError(
                "File size too large. Maximum size is "
                f"{self.max_upload_bytes // (1024 * 1024)}MB."
            )

    def _store_new_image(self, upload: ImageUpload) -> MenuImage:
        now = datetime.now(tz=UTC)

        def insert_document(results: list[object]) -> MenuImage:
            blob = cast(StoredBlob, results[0])
            fields = _file_fields(upload, blob, now)
            fields.update({"name": upload.original_name, "is_active": True})
            return self.repository.create_image(fields)

        sequence = self._store_blob_sequence(upload).add(
            "insert document", insert_document
        )
        with storage_errors(f"store {upload.original_name}"):
            _, image = sequence.run()
        return cast(MenuImage, image)

    def _store_blob_sequence(self, upload: ImageUpload) -> CompensatedSequence:
        key = _blob_key(upload.mime_type)
        return CompensatedSequence().add(
            "store blob",
            lambda _: self.blob_store.store(key, upload.content, upload.mime_type),
            lambda blob: self.blob_store.delete(cast(StoredBlob, blob).key),
        )

    def _validate_upload(self, upload: ImageUpload) -> None:
        _validate_name(upload.original_name)
        if upload.mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                "Invalid file type. Only JPEG, PNG, and WebP are allowed."
            )
        if upload.size <= 0 or not upload.content:
            raise ValidationError(f"File {upload.original_name} is empty")
        self.check_size(upload.size)
        if upload.size != len(upload.content):
            raise ValidationError(
                f"File {upload.original_name} size does not match its content"
            )


def _validate_name(name: object) -> None:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Name is required")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name must be at most {NAME_MAX_LENGTH} characters")


def _blob_key(mime_type: str) -> str:
    millis = int(datetime.now(tz=UTC).timestamp() * 1000)
    return f"menu-{millis}-{uuid4().hex[:12]}{ALLOWED_MIME_TYPES[mime_type]}"


def _file_fields(
    upload: ImageUpload, blob: StoredBlob, uploaded_at: datetime
) -> dict[str, object]:
    return {
        "storage_key": blob.key,
        "url": blob.url,
        "size": upload.size,
        "mime_type": upload.mime_type,
        "upload_date": uploaded_at,
    }
