"""Application-wide settings for the skin concierge backend."""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DAY_MS = 24 * 60 * 60 * 1000


class Settings(BaseSettings):
    """Global application configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # OpenAI (vision analysis, letter generation, aging previews)
    openai_api_key: Optional[str] = Field(default=None)
    openai_base_url: Optional[str] = Field(default=None)
    openai_vision_model: str = Field(default="gpt-4o-mini")
    openai_text_model: str = Field(default="gpt-4.1-mini")
    openai_image_model: str = Field(default="gpt-image-1")
    openai_image_size: str = Field(default="1024x1024")
    openai_request_timeout: float = Field(default=120.0)
    openai_retry_attempts: int = Field(default=2)
    openai_retry_backoff_seconds: float = Field(default=1.5)
    report_letter_attempts: int = Field(default=3)
    report_photo_max_bytes: int = Field(default=8 * 1024 * 1024)

    # Resend email delivery
    resend_api_key: Optional[str] = Field(default=None)
    resend_base_url: str = Field(default="https://api.resend.com")
    resend_from_email: str = Field(
        default="Dr. Lazuk Esthetics <no-reply@drlazuk.com>"
    )
    resend_clinic_email: str = Field(default="contact@skindoctor.ai")
    resend_request_timeout: float = Field(default=10.0)
    esthetics_from_email: str = Field(
        default="Lazuk Esthetics <no-reply@drlazuk.com>"
    )
    esthetics_provider_email: str = Field(default="contact@drlazuk.com")
    esthetics_reply_to: Optional[str] = Field(default=None)

    # Geo lookup (ipapi.co compatible)
    geo_lookup_base_url: str = Field(default="https://ipapi.co")
    geo_lookup_timeout_seconds: float = Field(default=4.0)
    geo_country_header: str = Field(default="x-vercel-ip-country")
    allowed_country_code: Optional[str] = Field(default="US")

    # Debug rate-limit probe
    debug_rate_window_ms: int = Field(default=60_000)
    debug_rate_max_requests: int = Field(default=20)

    # Esthetics concierge session gate (ZIP 30004)
    esthetics_center_lat: float = Field(default=34.14352)
    esthetics_center_lon: float = Field(default=-84.29926)
    esthetics_radius_miles: float = Field(default=20.0)
    esthetics_rate_window_ms: int = Field(default=DAY_MS)
    esthetics_rate_max_requests: int = Field(default=2)

    # Ask chat gate
    ask_rate_window_ms: int = Field(default=15 * 60 * 1000)
    ask_rate_max_requests: int = Field(default=30)

    # One report per email per cooldown window
    report_cooldown_days: int = Field(default=30)

    # Request audit log (JSONL); empty disables auditing
    audit_log_store_path: Optional[str] = Field(default="storage/audit_logs.jsonl")
    log_level: str = Field(default="INFO")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["DAY_MS", "Settings", "get_settings"]
