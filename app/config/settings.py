"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from urllib.parse import unquote, urlparse

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.constants import (
    DEFAULT_DRAIN_BATCH_LIMIT,
    DEFAULT_DRAIN_INTERVAL_SECONDS,
    DEFAULT_DRAIN_JOB_NAME,
    DEFAULT_DRAIN_LOCK_STALE_MINUTES,
    DEFAULT_HOUSE_USERNAME,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (for Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = "logs/matrix_engine.log"
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Health check HTTP server port"
    )

    # Queue drain
    drain_job_name: str = DEFAULT_DRAIN_JOB_NAME
    drain_batch_limit: int = Field(
        default=DEFAULT_DRAIN_BATCH_LIMIT,
        ge=1,
        le=1000,
        description="Maximum pending entries processed per drain",
    )
    drain_interval_seconds: int = Field(
        default=DEFAULT_DRAIN_INTERVAL_SECONDS,
        ge=10,
        description="Interval between scheduled drains",
    )
    drain_lock_stale_minutes: int = Field(
        default=DEFAULT_DRAIN_LOCK_STALE_MINUTES,
        ge=0,
        description=(
            "A RUNNING drain lock older than this becomes reclaimable "
            "(0 disables automatic reclaim)"
        ),
    )

    # Payout rules
    rolling_reserve_percent: float = Field(
        default=0.0,
        ge=0,
        le=100,
        description=(
            "Rolling reserve withheld from level commissions, cycle and "
            "matching bonuses"
        ),
    )
    allow_sponsor_lookup: bool = Field(
        default=False,
        description=(
            "Walk up the sponsor chain when the direct sponsor has no "
            "position in the matrix"
        ),
    )
    free_referral_bonus: bool = Field(
        default=False,
        description="Pay referral bonuses to inactive (free) sponsors",
    )
    house_username: str = Field(
        default=DEFAULT_HOUSE_USERNAME,
        description="House account that never re-enters after a cycle",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )

            parsed = urlparse(self.database_url)
            if parsed.password:
                password = unquote(parsed.password).lower()
                username = unquote(parsed.username or '').lower()
                if password in ('password', 'changeme', 'admin', 'root'):
                    logger.warning(
                        f'DATABASE_URL uses insecure password "{password}". '
                        'Please change it in .env file for production security.'
                    )
                elif username and password == username:
                    logger.warning(
                        'DATABASE_URL password is the same as username. '
                        'Please change it in .env file for production security.'
                    )

        return self

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ('postgresql://', 'postgresql+asyncpg://', 'sqlite+aiosqlite://')
        ):
            raise ValueError(
                'DATABASE_URL must start with postgresql://, '
                'postgresql+asyncpg:// or sqlite+aiosqlite://'
            )
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


# Global settings instance
settings = Settings()
