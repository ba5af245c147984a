from functools import lru_cache
import os
from typing import List, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False
    project_name: str = "Pipeyard Logistics API"
    environment: str = "development"

    # Raw CORS origins string - read from env
    cors_origins_raw: Optional[str] = Field(
        default=None,
        alias="CORS_ORIGINS"
    )

    @computed_field
    @property
    def backend_cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from environment variable (comma-separated string)."""
        raw = self.cors_origins_raw
        if not raw:
            raw = os.environ.get("CORS_ORIGINS") or ""

        if not raw or not raw.strip():
            return []

        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    database_url: str = "sqlite+aiosqlite:///./pipeyard.db"

    # Storage facility receiving the pipe
    facility_name: str = "MPS Pipe Storage"
    facility_address: str = "E Range Rd #3264, Pierceland, SK S0M 2K0"

    # Dock scheduling policy
    receiving_hours_start: int = 7  # 7am
    receiving_hours_end: int = 16  # 4pm, exclusive
    slot_first_hour: int = 6
    slot_last_hour: int = 18
    slot_duration_hours: int = 1
    booking_horizon_days: int = 14
    after_hours_surcharge: float = 450.0

    # Notifications
    notification_channels: List[str] = Field(default_factory=lambda: ["slack"])
    notification_timeout_seconds: float = 10.0
    notification_recipient: Optional[str] = None  # e.g. logistics inbox for email channel
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    slack_webhook_url: Optional[str] = None

    # Cloudflare R2 / S3 compatible document storage
    r2_account_id: Optional[str] = None
    r2_access_key_id: Optional[str] = None
    r2_secret_access_key: Optional[str] = None
    r2_bucket_name: Optional[str] = None
    r2_endpoint_url: Optional[str] = None  # e.g., "https://<account-id>.r2.cloudflarestorage.com"
    r2_public_url: Optional[str] = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
