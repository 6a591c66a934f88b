"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    local_ttl_hours: int = 24
    pending_ttl_days: int = 7
    finished_retention_days: int = 30
    migration_max_attempts: int = 3
    migration_base_delay_seconds: float = 0.2
    migration_max_delay_seconds: float = 2.0
    request_timeout_seconds: float = 10.0
    local_store_path: str = ".entry_preservation.json"
    session_store_quota_bytes: int | None = None
    server_backup_enabled: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
