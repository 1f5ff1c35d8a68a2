"""Application configuration read from environment variables"""
import os
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Runtime settings; every field can be overridden by an env var of the same name in upper case"""

    # Pricing & booking policy
    tax_rate: Decimal = Field(default=Decimal("0.12"), ge=0)
    guests_per_room: int = Field(default=3, ge=1)
    special_request_max_words: int = Field(default=100, ge=1)
    cancellation_cutoff_hours: int = Field(default=24, ge=0)
    calendar_horizon_days: int = Field(default=30, ge=1)

    # Store access
    store_timeout_seconds: float = Field(default=5.0, gt=0)
    reference_retry_attempts: int = Field(default=3, ge=1)

    # Auth (in production, set these from the environment)
    secret_key: str = "your-secret-key-keep-it-secret"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    admin_username: str = "admin"
    admin_password: str = "admin123"
    admin_email: str = "admin@example.com"

    log_level: str = "INFO"

    class Config:
        frozen = True

    @classmethod
    def from_env(cls) -> "Settings":
        overrides = {}
        for name in cls.model_fields:
            value = os.getenv(name.upper())
            if value is not None:
                overrides[name] = value
        return cls(**overrides)


@lru_cache()
def get_settings() -> Settings:
    """Settings from the process environment, after loading a local .env file if present"""
    load_dotenv()
    return Settings.from_env()
