"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Server settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    blob_backend: str = "supabase"
    storage_bucket: str = "menu-images"
    uploads_dir: str = "uploads"
    public_base_url: str = "http://localhost:8000"
    max_upload_bytes: int = 10 * 1024 * 1024
    max_files_per_upload: int = 10
    broadcast_send_timeout: float = 5.0
    cors_allowed_origins: str = "http://localhost:5173,http://localhost:8080"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


class ViewerSettings(BaseSettings):
    """Settings for a viewer process that mirrors server state."""

    server_url: str = "http://localhost:8000"
    admin_token: str | None = None
    ping_interval: float = 20.0
    open_timeout: float = 20.0
    reconnect_delay: float = 1.0
    max_reconnect_attempts: int = 5

    model_config = SettingsConfigDict(
        env_prefix="CAFE_SYNC_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_origins(raw: str | None) -> list[str]:
    """Parse a comma separated list of allowed CORS origins."""
    if raw is None:
        return []
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
