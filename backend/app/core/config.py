"""Application configuration using pydantic-settings.

All environment variables are read through the settings object rather than
os.getenv() so they are type-validated once at startup.
"""

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Tableside"

    # Database - defaults to a local SQLite file, override via DATABASE_URL
    database_url: str = "sqlite:///./data/tableside.db"

    # Security
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # one service shift

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8081"

    # Billing: a single flat tax rate applied on top of the order subtotal
    tax_rate: Decimal = Decimal("0.05")

    # Inventory: release() never pushes a stock count past this value
    max_stock_count: Decimal = Decimal("100000")

    # Seats created for a freshly registered hotel
    default_table_count: int = 10

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_orders: str = "60/minute"

    @field_validator("tax_rate")
    @classmethod
    def validate_tax_rate(cls, v: Decimal) -> Decimal:
        if v < 0 or v >= 1:
            raise ValueError("tax_rate must be a fraction between 0 and 1")
        return v

    @field_validator("default_table_count")
    @classmethod
    def validate_table_count(cls, v: int) -> int:
        if v < 0:
            raise ValueError("default_table_count cannot be negative")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Refuse to run in production mode with the default secret."""
        if not self.debug and self.secret_key == "change-me-in-production":
            raise ValueError(
                "FATAL: Cannot start in production mode with default SECRET_KEY. "
                "Set a secure SECRET_KEY environment variable (minimum 32 characters)."
            )
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def redacted_database_url(self) -> Optional[str]:
        """Database URL with any password replaced, safe for log output."""
        if "@" not in self.database_url or "://" not in self.database_url:
            return self.database_url
        scheme, rest = self.database_url.split("://", 1)
        creds, host = rest.rsplit("@", 1)
        user = creds.split(":", 1)[0]
        return f"{scheme}://{user}:***@{host}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
