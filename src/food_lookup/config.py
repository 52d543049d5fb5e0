"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

STORAGE_BACKENDS = {"supabase", "memory"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    admin_token: str
    edamam_app_id: str
    edamam_app_key: str
    edamam_base_url: str = "https://api.edamam.com/api/food-database/v2"
    edamam_timeout_seconds: float = 10.0
    edamam_retry_attempts: int = 1
    edamam_retry_delay_seconds: float = 0.3
    edamam_detail_quantity: float = 100.0
    storage_backend: str = "supabase"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    max_write_attempts: int = 5
    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_storage_backend(raw: str | None) -> str:
    """Normalize the storage backend name, defaulting to Supabase."""
    if raw is None:
        return "supabase"
    cleaned = raw.strip().lower()
    if not cleaned:
        return "supabase"
    if cleaned not in STORAGE_BACKENDS:
        raise ValueError(f"Unknown storage backend: {raw}")
    return cleaned
