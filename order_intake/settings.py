"""
settings.py — Environment-driven Configuration for the Order Intake Service

All runtime configuration is read from environment variables (or a local `.env`
file) through pydantic-settings. A module-level `settings` instance is created at
import time; tests and embedders may build their own `Settings(...)` and pass it
to `create_app()`.
"""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # =========================================================================
    # Database
    # =========================================================================
    DATABASE_URL: str = Field(default="sqlite:///./order_intake.db")
    DB_SSL: bool = Field(default=False, description="Require TLS for the database connection")
    DB_POOL_SIZE: int = Field(default=5)
    DB_ECHO: bool = Field(default=False)
    SEED_FILE: Optional[Path] = Field(default=None)

    # =========================================================================
    # Access gates
    # =========================================================================
    CONTRACTOR_ACCESS_CODE: str = Field(default="contractor")
    ADMIN_USERNAME: str = Field(default="admin")
    ADMIN_PASSWORD: Optional[str] = Field(default=None)
    ADMIN_COOKIE_NAME: str = Field(default="marlowe_admin")
    ADMIN_SESSION_TTL_SECONDS: int = Field(default=8 * 60 * 60, gt=0)
    ADMIN_COOKIE_SECURE: bool = Field(default=False)

    # =========================================================================
    # Mail transport
    # =========================================================================
    SMTP_HOST: str = Field(default="localhost")
    SMTP_PORT: int = Field(default=587)
    SMTP_USER: Optional[str] = Field(default=None)
    SMTP_PASS: Optional[str] = Field(default=None)
    SMTP_STARTTLS: bool = Field(default=True)
    SMTP_TIMEOUT: float = Field(default=15.0)
    FROM_EMAIL: Optional[str] = Field(default=None)
    OWNER_EMAIL: str = Field(default="owner@example.com")

    # =========================================================================
    # Purchase order
    # =========================================================================
    STORE_NAME: str = Field(default="The Marlowe Collection")
    TAX_RATE: Decimal = Field(default=Decimal("0.0925"), ge=0)
    LOGO_PATH: Optional[Path] = Field(default=None)

    # Stock stays reserved when the PO cannot be rendered or mailed; set this
    # to true to restock on those failures instead.
    RELEASE_ON_NOTIFY_FAILURE: bool = Field(default=False)

    # =========================================================================
    # HTTP server
    # =========================================================================
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000)
    STATIC_DIR: Optional[Path] = Field(default=None)
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # =========================================================================
    # Logging
    # =========================================================================
    LOG_FILE: Optional[str] = Field(default="order_intake.log")
    LOG_LEVEL: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def sender_address(self) -> str:
        """Address used in the From header; falls back to the SMTP login."""
        return self.FROM_EMAIL or self.SMTP_USER or self.OWNER_EMAIL


settings = Settings()
