"""Process settings for kb-studio, read from the environment and an optional .env file.

Groups: application and logging, LLM routing, the session database, the
portal API, and workflow timing (polling, autosave, saved-session cap).
"""

from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """kb-studio settings.

    APP_NAME and ENVIRONMENT must be set; everything else has a default.
    Keys, tokens and the database URL are ``SecretStr`` and only leave the
    object through the ``get_*`` accessors.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    # Application
    APP_NAME: str = Field(
        ...,
        description="Name attached to JSON log records"
    )

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        ...,
        description="Deployment environment"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level"
    )

    LOG_FORMAT: Literal["standard", "json"] = Field(
        default="standard",
        description="Log output format"
    )

    DEBUG: bool = Field(
        default=False,
        description="Echo SQL statements"
    )

    API_TIMEOUT: int = Field(
        default=30,
        description="HTTP timeout for portal API calls in seconds",
        gt=0
    )

    BRAND_NAME: str = Field(
        default="Seed Financial",
        description="Brand name used in generation prompts"
    )

    # LLM configuration
    LLM_PROVIDER: Literal["anthropic", "openai", "gemini"] = Field(
        default="anthropic",
        description="Hosted LLM provider"
    )

    LLM_API_KEY: SecretStr | None = Field(
        default=None,
        description="API key for the hosted LLM provider"
    )

    LLM_DEFAULT_MODEL: str = Field(
        default="claude-sonnet-4-20250514",
        description="Default model id"
    )

    LLM_MAX_TOKENS: int = Field(
        default=4000,
        description="Maximum tokens per completion",
        gt=0
    )

    LLM_TIMEOUT: float = Field(
        default=120.0,
        description="LLM request timeout in seconds",
        gt=0
    )

    LLM_MAX_RETRIES: int = Field(
        default=2,
        description="Retries after the first LLM attempt",
        ge=0
    )

    LLM_RETRY_DELAY: float = Field(
        default=1.0,
        description="Initial delay between LLM retries in seconds",
        gt=0
    )

    CUSTOM_LLM_BASE_URL: str | None = Field(
        default=None,
        description="OpenAI-compatible endpoint (takes priority over LLM_PROVIDER)"
    )

    CUSTOM_LLM_MODEL: str | None = Field(
        default=None,
        description="Model id for the custom endpoint"
    )

    CUSTOM_LLM_API_KEY: SecretStr | None = Field(
        default=None,
        description="API key for the custom endpoint"
    )

    # Database configuration
    DATABASE_URL: SecretStr | None = Field(
        default=None,
        description="SQLAlchemy database URL for the session store"
    )

    DB_POOL_SIZE: int = Field(
        default=5,
        description="Pooled connections (ignored for SQLite)",
        gt=0
    )

    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Connections allowed beyond the pool (ignored for SQLite)",
        ge=0
    )

    DB_POOL_TIMEOUT: int = Field(
        default=30,
        description="Seconds to wait for a pooled connection",
        gt=0
    )

    DB_MAX_RETRIES: int = Field(
        default=3,
        description="Retries after the first attempt on transient database errors",
        ge=0
    )

    DB_RETRY_DELAY: float = Field(
        default=1.0,
        description="First database retry backoff in seconds, doubled per attempt",
        gt=0
    )

    # Portal API (job submission / status)
    PORTAL_API_BASE_URL: str = Field(
        default="http://localhost:5000",
        description="Base URL of the portal backend"
    )

    PORTAL_API_TOKEN: SecretStr | None = Field(
        default=None,
        description="Bearer token for the portal backend"
    )

    # Workflow timing
    JOB_POLL_INTERVAL: float = Field(
        default=2.0,
        description="Seconds between job status polls",
        gt=0
    )

    JOB_TIMEOUT: float = Field(
        default=300.0,
        description="Absolute deadline for a polled job in seconds",
        gt=0
    )

    AUTOSAVE_INTERVAL: float = Field(
        default=30.0,
        description="Seconds between session autosaves",
        gt=0
    )

    MAX_SAVED_SESSIONS: int = Field(
        default=10,
        description="Number of manually saved sessions kept",
        gt=0
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {list(LOG_LEVELS)}, got '{v}'")
        return level

    def get_database_url(self) -> str | None:
        return self.DATABASE_URL.get_secret_value() if self.DATABASE_URL else None

    def get_llm_api_key(self) -> str | None:
        return self.LLM_API_KEY.get_secret_value() if self.LLM_API_KEY else None

    def get_custom_llm_api_key(self) -> str | None:
        return self.CUSTOM_LLM_API_KEY.get_secret_value() if self.CUSTOM_LLM_API_KEY else None

    def get_portal_api_token(self) -> str | None:
        return self.PORTAL_API_TOKEN.get_secret_value() if self.PORTAL_API_TOKEN else None


_settings: Settings | None = None


def get_settings() -> Settings:
    """Settings built on first call and cached for the process.

    Raises:
        ValidationError: APP_NAME or ENVIRONMENT is missing, or a value is invalid
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
