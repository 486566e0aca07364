"""Configuration management for the AI Receptionist call engine."""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ===========================================
    # Supabase Configuration
    # ===========================================
    SUPABASE_URL: str = Field(default="", description="Supabase project URL")
    SUPABASE_SERVICE_KEY: str = Field(default="", description="Supabase service role key")

    CALLS_TABLE: str = Field(default="calls", description="Call records table")
    BUSINESSES_TABLE: str = Field(default="businesses", description="Business registry table")
    NOTIFICATION_LOGS_TABLE: str = Field(
        default="notification_logs",
        description="Notification attempt log table"
    )
    ANALYTICS_INCREMENT_FUNCTION: str = Field(
        default="increment_call_analytics",
        description="Postgres function performing the atomic daily analytics increment"
    )

    # ===========================================
    # Retell AI Configuration
    # ===========================================
    RETELL_COST_PER_MINUTE: float = Field(
        default=0.091,
        ge=0,
        description="Retell per-minute price used to derive call cost"
    )

    # ===========================================
    # Notification Configuration
    # ===========================================
    SLACK_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for Slack incoming-webhook posts"
    )

    # ===========================================
    # Server Configuration
    # ===========================================
    SERVICE_NAME: str = Field(default="ai-receptionist", description="Service name reported by health checks")
    DEBUG: bool = Field(default=True, description="Debug mode")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def format_phone_number(phone: Optional[str]) -> Optional[str]:
    """
    Format a phone number into the canonical form used for storage and lookup.

    Extraction and business lookup both go through this function, so the
    output for a given input must never change.

    Args:
        phone: Raw phone number string

    Returns:
        "+1" + digits for 10 digits, "+" + digits for any other length,
        or None when the input carries no digits
    """
    if not phone:
        return None

    # Remove all non-numeric characters
    digits = "".join(c for c in str(phone) if c.isdigit())

    if not digits:
        return None

    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def calculate_call_cost(duration_seconds: Optional[float], rate_per_minute: float) -> Optional[float]:
    """Derive call cost from its duration, or None when no duration is known."""
    if duration_seconds is None:
        return None
    return round((duration_seconds / 60) * rate_per_minute, 4)


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
