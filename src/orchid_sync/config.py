"""Configuration settings for Orchid GitHub Sync."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GitHubConfig(BaseModel):
    """Configuration for the GitHub target and GitHub App credentials.

    The App id, installation id and private key are only required once a
    token is actually requested; missing values surface as AuthConfigError
    at that point rather than at startup.
    """

    repo: str = Field(
        default="Arisayyy/rift",
        description="Target repository in owner/name format",
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )
    api_version: str = Field(
        default="2022-11-28",
        description="Value sent in the X-GitHub-Api-Version header",
    )
    user_agent: str = Field(
        default="orchid-sync",
        description="User-Agent sent with every request",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-call timeout for GitHub requests",
    )

    # GitHub App credentials
    app_id: str | None = Field(default=None, description="GitHub App id")
    installation_id: str | None = Field(default=None, description="GitHub App installation id")
    private_key: str | None = Field(default=None, description="GitHub App private key (PEM)")
    private_key_path: str | None = Field(
        default=None,
        description="Path to the GitHub App private key (used when private_key is unset)",
    )

    # Token lifetime
    token_refresh_margin_seconds: int = Field(
        default=30,
        ge=0,
        description="Refresh the installation token this many seconds before expiry",
    )
    jwt_ttl_seconds: int = Field(
        default=540,
        gt=0,
        le=600,
        description="Lifetime of the signed App assertion (GitHub allows at most 10 minutes)",
    )

    @field_validator("repo")
    @classmethod
    def _validate_repo(cls, value: str) -> str:
        owner, sep, name = value.partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"repo must be in owner/name format, got {value!r}")
        return value

    @property
    def owner_and_name(self) -> tuple[str, str]:
        """Split the configured repository into (owner, name)."""
        owner, name = self.repo.split("/", 1)
        return owner, name

    def load_private_key(self) -> str | None:
        """Return the PEM private key from inline config or the configured file."""
        if self.private_key:
            return self.private_key
        if self.private_key_path:
            path = Path(self.private_key_path)
            if path.exists():
                return path.read_text(encoding="utf-8")
        return None


class RetryConfig(BaseModel):
    """Backoff policy for precondition retries (replication lag)."""

    base_delay_ms: int = Field(
        default=250,
        ge=0,
        description="Linear step per attempt",
    )
    max_delay_ms: int = Field(
        default=2000,
        ge=0,
        description="Cap on the deterministic part of the delay",
    )
    jitter_ms: int = Field(
        default=150,
        ge=0,
        description="Upper bound (exclusive) of uniform jitter added to every delay",
    )
    max_attempts: int = Field(
        default=30,
        ge=1,
        description="Attempts before the scheduler gives up silently",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Document store
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./orchid_sync.db",
        description="Async SQLAlchemy URL of the document store",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # GitHub
    # --------------------------------------------------------------------------
    github: GitHubConfig = Field(
        default_factory=GitHubConfig,
        description="GitHub target and App credentials",
    )

    # --------------------------------------------------------------------------
    # Retry Scheduling
    # --------------------------------------------------------------------------
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Precondition retry backoff",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
