"""Registry configuration: env-driven.

Centralized config using pydantic-settings.  Reads from a .env file and
PANTRY_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class RegistryConfig(BaseSettings):
    """Registry configuration with environment variable overrides.

    All settings can be overridden via PANTRY_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export PANTRY_ENVIRONMENT=staging
        export PANTRY_LOG_LEVEL=DEBUG
        export PANTRY_DB_PATH=/data/registry.db

    Or via .env file::

        PANTRY_ENVIRONMENT=production
        PANTRY_BASE_URL=https://supermarket.example.com
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PANTRY_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    db_path: Path = Path(".pantry/registry.db")
    tarball_store_path: Path = Path(".pantry/tarballs")
    notify_queue_path: Path | None = Path(".pantry/jobs.db")
    analytics_path: Path = Path(".pantry/analytics.jsonl")

    # Public URL used for error messages and version links
    base_url: str = "http://localhost:3000"

    # Request signing
    clock_skew_seconds: int = 900

    # Per-request limits
    parse_timeout_seconds: float = 10.0
    commit_timeout_seconds: float = 5.0
    max_tarball_bytes: int = 32 * 1024 * 1024

    # Post-commit side effects
    effect_workers: int = 4
    universe_cache_key: str = "api-v1-universe"

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton, import as `from pantry.config import config`
config = RegistryConfig()
