"""
Application configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase (auth, row storage, roles)
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_anon_key: SecretStr = Field(default=SecretStr(""))
    supabase_service_key: SecretStr = Field(default=SecretStr(""))
    supabase_timeout_seconds: float = Field(default=10.0, gt=0)

    # OpenAI-compatible LLM gateway
    openai_api_key: SecretStr = Field(default=SecretStr(""))
    openai_base_url: Optional[str] = Field(
        default=None, description="Override for OpenAI-compatible gateways"
    )
    openai_model: str = Field(default="gpt-4o-mini")
    llm_timeout_seconds: float = Field(default=60.0, gt=0)
    llm_temperature_analysis: float = Field(default=0.3, ge=0, le=2)
    llm_temperature_letters: float = Field(default=0.7, ge=0, le=2)

    # Daily analysis quota
    quota_daily_limit: int = Field(
        default=1, ge=1, description="Analyses allowed per user per rolling window"
    )
    quota_window_hours: float = Field(default=24.0, gt=0)
    quota_table: str = Field(default="analysis_logs")

    # HTTP server
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Comma-separated list of allowed origins",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
