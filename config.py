"""
Centralized configuration for WebPage Reporter
All environment variables and settings are defined here
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Provides centralized configuration with validation and defaults.
    """

    # ======================
    # PageSpeed Insights Configuration
    # ======================
    PSI_API_KEY: Optional[str] = Field(
        default=None,
        description="PageSpeed Insights API key (falls back to API_KEY)"
    )
    API_KEY: Optional[str] = Field(
        default=None,
        description="Shared Google API key used when PSI_API_KEY is not set"
    )
    PSI_API_URL: str = Field(
        default="https://www.googleapis.com/pagespeedonline/v5/runPagespeed",
        description="PageSpeed Insights runPagespeed endpoint"
    )
    PSI_TIMEOUT: float = Field(
        default=120.0,
        description="Transport timeout for a single PageSpeed request in seconds"
    )
    PSI_DEFAULT_STRATEGY: str = Field(
        default="mobile",
        description="Lighthouse strategy used when the caller does not pick one"
    )

    # ======================
    # Analysis (Anthropic) Configuration
    # ======================
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key")
    ANTHROPIC_MODEL: str = Field(
        default="claude-sonnet-4-20250514",
        description="Claude model to use for analysis"
    )
    MAX_TOKENS: int = Field(default=4000, description="Max tokens for Claude response")
    ANALYSIS_TIMEOUT: float = Field(
        default=180.0,
        description="Transport timeout for a single analysis request in seconds"
    )

    # ======================
    # Upstream Retry Configuration
    # ======================
    UPSTREAM_MAX_ATTEMPTS: int = Field(
        default=1,
        ge=1,
        description="Attempts per stage for transport failures (1 = single attempt)"
    )

    # ======================
    # Server Configuration
    # ======================
    SERVER_HOST: str = Field(default="0.0.0.0", description="Bind address")
    SERVER_PORT: int = Field(default=3001, description="Bind port")
    CORS_ALLOW_ORIGINS: List[str] = Field(
        default=["*"],
        description="Origins allowed to call the API"
    )

    # ======================
    # Logging Configuration
    # ======================
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    @property
    def psi_key(self) -> str:
        """Get PageSpeed key, defaulting to API_KEY if not set"""
        return (self.PSI_API_KEY or self.API_KEY or "").strip()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Allow extra env vars in .env file


# Global settings instance
settings = Settings()


# ======================
# Convenience Functions
# ======================

def get_psi_api_key() -> str:
    """Get PageSpeed Insights API key"""
    return settings.psi_key


def get_anthropic_api_key() -> str:
    """Get Anthropic API key"""
    return settings.ANTHROPIC_API_KEY.strip()


def get_anthropic_model() -> str:
    """Get Anthropic model name"""
    return settings.ANTHROPIC_MODEL
