"""Local disk blob store served from the uploads directory."""

from dataclasses import dataclass
from pathlib import Path

from cafe_sync.domain.menu import StoredBlob
from cafe_sync.services.menu_images import BlobStore


@dataclass
class LocalDiskBlobStore(BlobStore):
    """Writes payloads to a directory mounted under ``/uploads``."""

    root: Path
    base_url: str
    mount_path: str = "/uploads"

    def __post_init__(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def store(self, key: str, content: bytes, content_type: str) -> StoredBlob:
        """Write a payload to disk."""
        self._path(key).write_bytes(content)
        return StoredBlob(key=key, url=self.url(key))

    def delete(self, key: str) -> None:
        """Remove a payload; raises FileNotFoundError when it is missing."""
        self._path(key).unlink()

    def url(self, key: str) -> str:
        """Return the URL the static mount serves the payload from."""
        return f"{self.base_url.rstrip('/')}{self.mount_path}/{key}"

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path.parent != self.root.resolve():
            raise ValueError(f"Invalid blob key: {key}")
        return path
