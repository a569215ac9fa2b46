"""Application configuration via pydantic settings."""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed pricing engine configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "Quote Pricing Engine"

    database_url: str = Field(
        "sqlite+aiosqlite:///./quote_pricing.db", alias="DATABASE_URL"
    )
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    rate_card_cache_backend: Literal["memory", "redis", "none"] = Field(
        "memory", alias="RATE_CARD_CACHE_BACKEND"
    )
    rate_card_cache_ttl_seconds: int = Field(60, alias="RATE_CARD_CACHE_TTL_SECONDS")
    rate_card_cache_prefix: str = Field("pricing", alias="RATE_CARD_CACHE_PREFIX")

    default_currency: str = Field("NZD", alias="DEFAULT_CURRENCY")
    default_tax_rate: Decimal = Field(Decimal("0.15"), alias="DEFAULT_TAX_RATE")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("default_currency", mode="before")
    @classmethod
    def _upper_currency(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("default_tax_rate")
    @classmethod
    def _check_tax_rate(cls, value: Decimal) -> Decimal:
        if value < 0 or value > 1:
            raise ValueError("DEFAULT_TAX_RATE must be between 0 and 1")
        return value

    @field_validator("rate_card_cache_ttl_seconds")
    @classmethod
    def _check_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("RATE_CARD_CACHE_TTL_SECONDS must be positive")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
