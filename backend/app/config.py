"""Configuration from environment (no hardcoded secrets)."""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Backend settings from env."""

    model_config = SettingsConfigDict(env_prefix="FILES_MANAGER_", extra="ignore")

    # Blob storage (raw file payloads and thumbnails)
    storage_base_path: Path = Path("/tmp/files_manager")
    db_path: Path = Path("/data/files_manager.db")

    # Redis: sessions and job queues
    redis_url: str = "redis://localhost:6379/0"
    session_ttl_seconds: int = 24 * 60 * 60
    queue_prefix: str = "files_manager"
    job_max_attempts: int = 3

    # SMTP (welcome emails); empty host = log the message instead of sending
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""

    # CORS: comma-separated string so pydantic-settings does not JSON-decode it
    cors_origins: str = "http://localhost:5000"

    @property
    def cors_origins_list(self) -> List[str]:
        """CORS origins as a list (split on comma)."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    rate_limit_enabled: bool = True

    # Logging (empty log_file = stderr only; level DEBUG|INFO|WARNING|ERROR)
    log_level: str = "INFO"
    log_file: str = ""


def get_settings() -> Settings:
    """Return application settings."""
    return Settings()
