"""Application configuration via pydantic-settings."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "ClubSwap"
    app_version: str = "1.0.0"
    environment: Literal["development", "test", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    app_url: str = "http://localhost:8081"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "clubswap"
    postgres_password: str = Field(default="clubswap_secret")
    postgres_db: str = "clubswap"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    database_url_override: Optional[str] = None

    @computed_field
    @property
    def database_url(self) -> str:
        """Async PostgreSQL connection URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @computed_field
    @property
    def sync_database_url(self) -> str:
        """Sync connection URL for Alembic, pointing at the same database as the app."""
        if self.database_url_override:
            return self.database_url_override.replace("+asyncpg", "").replace("+aiosqlite", "")
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT verification (tokens are issued by the identity provider)
    jwt_secret_key: str = Field(default="your-super-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    jwt_audience: Optional[str] = None

    # Payment Gateways
    payment_gateway: Literal["stripe", "manual"] = "manual"
    payment_currency: str = "CAD"
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None

    # SMS (Twilio)
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None

    # Email (SendGrid)
    sendgrid_api_key: Optional[str] = None
    email_from_address: str = "noreply@clubswap.ca"
    email_from_name: str = "ClubSwap"

    # Email/SMS delivery runs in a Celery task unless inline
    notifications_inline: bool = False

    # CORS
    cors_origins: List[str] = ["http://localhost:8081", "http://localhost:19006"]

    # Fees (percentages of the rental amount)
    platform_fee_percent: Decimal = Decimal("12")
    processor_fee_percent: Decimal = Decimal("2.9")
    processor_fixed_fee: Decimal = Decimal("0.30")

    # Reviews
    review_publish_window_days: int = 14
    review_response_lock_hours: int = 48


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
