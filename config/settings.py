"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``POLITICA_`` prefix; Supabase credentials use their
canonical environment variable names via ``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


DEFAULT_TRUSTED_DOMAINS: tuple[str, ...] = (
    "elecam.cm",
    "gov.cm",
    "minat.gov.cm",
    "assemblee-nationale.cm",
    "senat.cm",
    "cameroon-tribune.cm",
    "mincom.gov.cm",
    "prc.cm",
)


class Settings(BaseSettings):
    """Central configuration for the Politica scanner service.

    Environment variables are loaded from a ``.env`` file when present.
    App-specific keys are prefixed with ``POLITICA_``; Supabase keys use
    their standard names (configured via ``validation_alias``).
    """

    model_config = SettingsConfigDict(
        env_prefix="POLITICA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── Persistence ────────────────────────────────────────────────────
    store_backend: Literal["memory", "supabase"] = "memory"
    supabase_url: str = Field(default="", validation_alias="SUPABASE_URL")
    supabase_service_role_key: str = Field(default="", validation_alias="SUPABASE_SERVICE_ROLE_KEY")
    store_retry_attempts: int = Field(default=3, ge=1)

    # ── Trusted sources ────────────────────────────────────────────────
    trusted_domains: list[str] = Field(default_factory=lambda: list(DEFAULT_TRUSTED_DOMAINS))
    search_url_templates: list[str] = Field(
        default_factory=lambda: [f"https://www.{domain}/?s={{query}}" for domain in DEFAULT_TRUSTED_DOMAINS],
    )
    fetch_timeout_seconds: float = 30.0
    max_relevant_sentences: int = Field(default=10, ge=1)

    # ── Confidence thresholds ──────────────────────────────────────────
    auto_apply_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    dispute_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    verified_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    name_match_threshold: float = Field(default=0.6, ge=0.0, le=1.0)

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION


# Module-level singleton: import ``settings`` everywhere.
settings = Settings()
