from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STAMPCARD_",
        extra="allow",
    )

    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"
    service_name: str = "stampcard"

    # Remote store / API
    api_base_url: str = "http://localhost:3001"
    remote_proxy_path: str = "/api/v1/redis"
    remote_backend: Literal["http", "redis"] = "http"
    redis_url: str = "redis://localhost:6379/0"
    http_timeout_seconds: float = 10.0

    # Local persistence
    local_store_url: str = "sqlite+aiosqlite:///./stampcard.db"

    # Identity provider override (stable customer id)
    customer_id: str | None = None

    # Sync engine
    sync_interval_seconds: int = 30
    sync_max_retries: int = 3
    opportunistic_sync_enabled: bool = True
    dead_letter_limit: int = 50
    business_placeholder_ids: list[str] = Field(default_factory=lambda: ["default"])

    # Ledger
    transaction_log_limit: int = 300
    campaign_default_points_required: int = 5

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("business_placeholder_ids", mode="before")
    @classmethod
    def _parse_placeholder_ids(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("business_placeholder_ids must be a list or comma separated string")

    @property
    def uses_memory_store(self) -> bool:
        return self.local_store_url.startswith("memory://")


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
