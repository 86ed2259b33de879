"""HTTP snapshot client for viewers."""

from dataclasses import dataclass

import httpx

from cafe_sync.domain.events import parse_menu_image, parse_settings
from cafe_sync.domain.menu import MenuImage
from cafe_sync.domain.settings import BusinessSettings
from cafe_sync.services.sync_agents import SnapshotClient

_ADMIN_PAGE_SIZE = 100


@dataclass
class HttpxSnapshotClient(SnapshotClient):
    """Fetches settings and menu snapshots from the JSON API."""

    base_url: str
    http_client: httpx.AsyncClient
    admin_token: str | None = None

    @classmethod
    def create(
        cls, base_url: str, admin_token: str | None = None
    ) -> "HttpxSnapshotClient":
        """Create a snapshot client with a managed httpx session."""
        return cls(
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            admin_token=admin_token,
        )

    async def fetch_settings(self) -> BusinessSettings | None:
        """Return the current settings document."""
        payload = await self._get("/api/settings")
        data = payload.get("data")
        return parse_settings(data) if isinstance(data, dict) else None

    async def fetch_menu_images(self, include_inactive: bool) -> list[MenuImage]:
        """Return active images, or every image page by page for admins."""
        if not include_inactive:
            payload = await self._get("/api/menu")
            return [parse_menu_image(item) for item in payload.get("data") or []]

        images: list[MenuImage] = []
        page = 1
        while True:
            payload = await self._get(
                "/api/menu/admin/all",
                params={"page": page, "limit": _ADMIN_PAGE_SIZE},
                admin=True,
            )
            images.extend(parse_menu_image(item) for item in payload.get("data") or [])
            if page >= int(payload.get("pages") or 0):
                return images
            page += 1

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def _get(
        self,
        path: str,
        params: dict[str, object] | None = None,
        admin: bool = False,
    ) -> dict:
        headers = {}
        if admin and self.admin_token:
            headers["X-Admin-Token"] = self.admin_token
        response = await self.http_client.get(
            f"{self.base_url.rstrip('/')}{path}",
            params=params,
            headers=headers,
            timeout=10,
        )
        response.raise_for_status()
        return response.json()
