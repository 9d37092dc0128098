"""
Application configuration using pydantic-settings.

Loads configuration from environment variables with sensible defaults.
Transport credentials live here and are passed to the transports at
construction time; nothing downstream reads the environment directly.
"""
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class DeclaredValuePolicy(str, Enum):
    """How a declared value that differs from the items total is handled."""
    PRESERVE = "preserve"  # Store as submitted
    WARN = "warn"          # Store as submitted, log the mismatch
    ENFORCE = "enforce"    # Reject the write


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database (SQLite for local dev, PostgreSQL for production)
    database_url: str = "sqlite:///./filingdesk.db"
    database_pool_size: int = 10
    database_max_overflow: int = 20

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # Receipts
    currency_code: str = "INR"
    declared_value_policy: DeclaredValuePolicy = DeclaredValuePolicy.PRESERVE
    pdf_page_size: str = "A4"

    # Mail transport
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_timeout_seconds: float = 30.0
    mail_from_email: str = "noreply@filingdesk.local"
    mail_from_name: str = "FilingDesk"

    # SMS gateway
    sms_gateway_url: Optional[str] = None
    sms_gateway_api_key: str = ""
    sms_sender_id: str = "FILING"
    sms_timeout_seconds: float = 10.0

    # Payment link decoration (UPI)
    payment_payee_vpa: Optional[str] = None
    payment_payee_name: str = "FilingDesk"

    # Submission notice
    submission_notice_delay_seconds: float = 1.0
    submission_webhook_url: Optional[str] = None
    webhook_timeout_seconds: float = 30.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
