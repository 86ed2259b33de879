"""Supabase Storage blob store."""

from dataclasses import dataclass

from supabase import Client

from cafe_sync.domain.menu import StoredBlob
from cafe_sync.services.menu_images import BlobStore


@dataclass
class SupabaseBlobStore(BlobStore):
    """Stores image payloads in a public Supabase Storage bucket."""

    client: Client
    bucket: str

    def store(self, key: str, content: bytes, content_type: str) -> StoredBlob:
        """Upload a payload and return its public URL."""
        self.client.storage.from_(self.bucket).upload(
            path=key,
            file=content,
            file_options={"content-type": content_type},
        )
        return StoredBlob(key=key, url=self.url(key))

    def delete(self, key: str) -> None:
        """Remove a payload from the bucket."""
        self.client.storage.from_(self.bucket).remove([key])

    def url(self, key: str) -> str:
        """Return the public URL of a stored payload."""
        return self.client.storage.from_(self.bucket).get_public_url(key)
