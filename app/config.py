from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Optional
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./axis_billing.db"

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # JWT Settings
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # App Settings
    APP_NAME: str = "AXIS CRM Billing"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Email/SMTP Settings
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = ""  # Sender email (defaults to SMTP_USER)
    SMTP_FROM_NAME: str = "AXIS CRM"

    # Invoice branding
    COMPANY_NAME: str = "AXIS CRM"
    COMPANY_TAGLINE: str = "Real Estate Management"

    # Recurring invoice engine
    CRON_SECRET: Optional[str] = None  # Required by the cron endpoint when set
    RECURRING_INVOICE_SCHEDULER_ENABLED: bool = True
    RECURRING_INVOICE_CRON_HOUR: int = 1  # Daily run at 01:00 in SCHEDULER_TIMEZONE
    RECURRING_INVOICE_CRON_MINUTE: int = 0
    RECURRING_INVOICE_DEFAULT_DUE_DAYS: int = 30
    # "billing_date": next run is computed from the billed invoice date
    # "generation": next run is computed from the moment of generation, so a
    # late batch shifts every later billing date
    RECURRING_INVOICE_ANCHOR: str = "billing_date"
    SCHEDULER_TIMEZONE: str = "UTC"

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('RECURRING_INVOICE_ANCHOR')
    @classmethod
    def validate_anchor(cls, v):
        if v not in ("generation", "billing_date"):
            raise ValueError("RECURRING_INVOICE_ANCHOR must be 'generation' or 'billing_date'")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
