from functools import lru_cache
from typing import List, Optional

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="WashDesk Metrics Service")
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080",
        description="CORS allowed origins (comma-separated)",
    )
    store_base_url: AnyHttpUrl | None = Field(
        default=None
    )
    store_api_key: str | None = Field(
        default=None
    )
    store_timeout: float = Field(
        default=10.0
    )
    use_mock_data: bool = Field(
        default=True
    )
    timezone: str = Field(
        default="Africa/Nairobi",
        description="Business time zone used for day boundaries",
    )
    currency: str = Field(
        default="KES"
    )
    metrics_window_days: int = Field(
        default=30, ge=1
    )
    backfill_recent_days: int = Field(
        default=15, ge=0
    )
    backfill_enabled: bool = Field(
        default=True
    )
    backfill_seed: Optional[int] = Field(
        default=None
    )

    model_config = SettingsConfigDict(env_prefix="WASHDESK_", case_sensitive=False)

    @field_validator("currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
