"""
Configuration settings for the Leap Academy study service.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Application
    # ========================================
    app_id: str = Field(
        default="default-quantum-leap-app",
        description="Application identifier used in document store paths",
    )

    # ========================================
    # Document Store
    # ========================================
    database_url: str = Field(
        default="sqlite:///./academy.db",
        description="Database backing the per-user module documents",
    )
    module_query_limit: int = Field(
        default=100,
        description="Maximum number of modules delivered per subscription snapshot",
    )

    # ========================================
    # Identity
    # ========================================
    auth_token: str | None = Field(
        default=None,
        description="Sign-in token; anonymous sign-in is used when unset",
    )
    identity_file: Path = Field(
        default=Path.home() / ".academy" / "identity.json",
        description="Where the anonymous learner identity is remembered",
    )

    # ========================================
    # AI Integration (content + assessment generation)
    # ========================================
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Generative AI (Gemini) API key",
    )
    gemini_api_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Gemini REST API",
    )
    ai_model: str = Field(
        default="gemini-2.0-flash",
        description="Model used for resource, assignment and question generation",
    )
    generation_timeout_seconds: float | None = Field(
        default=None,
        description="Request timeout for generation calls (None waits indefinitely)",
    )

    # ========================================
    # Assessment
    # ========================================
    pass_threshold: float = Field(
        default=80.0,
        description="Score (inclusive) needed to pass a quiz or earn a certificate",
    )
    assessment_question_count: int = Field(
        default=5,
        description="Number of multiple-choice questions per quiz or final test",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def has_ai_configured(self) -> bool:
        """Check if the generation credential is available."""
        return bool(self.gemini_api_key)

    def get_generation_config(self) -> dict[str, object]:
        """Get generation client configuration as a dictionary."""
        return {
            "api_key": self.gemini_api_key,
            "base_url": self.gemini_api_base_url,
            "model": self.ai_model,
            "timeout": self.generation_timeout_seconds,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
