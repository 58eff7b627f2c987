"""Application configuration."""

import os
from dataclasses import dataclass

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

_MISSING_ENV_MESSAGE = (
    "Missing Supabase env vars. Add SUPABASE_URL and SUPABASE_ANON_KEY "
    "(or NEXT_PUBLIC_SUPABASE_URL and NEXT_PUBLIC_SUPABASE_ANON_KEY) to .env. "
    "Example:\n"
    "SUPABASE_URL=https://your-project.supabase.co\n"
    "SUPABASE_ANON_KEY=your-anon-key"
)


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("supabase_url", "next_public_supabase_url"),
    )
    supabase_anon_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "supabase_anon_key", "next_public_supabase_anon_key"
        ),
    )
    oauth_provider: str = "google"
    site_url: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


@dataclass(frozen=True)
class SupabaseEnv:
    """Validated Supabase connection values."""

    url: str
    anon_key: str


def require_supabase_env(settings: Settings) -> SupabaseEnv:
    """Return the Supabase URL and anon key, or fail loudly."""
    url = (settings.supabase_url or "").strip()
    anon_key = (settings.supabase_anon_key or "").strip()
    if not url or not anon_key:
        raise ConfigurationError(_MISSING_ENV_MESSAGE)
    return SupabaseEnv(url=url, anon_key=anon_key)
