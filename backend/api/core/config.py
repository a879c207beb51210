"""Application configuration using Pydantic Settings"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")
    database_ssl: str | None = Field(default=None, description="asyncpg ssl mode, e.g. 'require'")
    database_pool_max: int = Field(default=10, ge=1, description="Max pool connections")
    run_migrations: bool = Field(default=True, description="Apply pending migrations on startup")

    # Server
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=5001, description="Server port")
    frontend_url: str = Field(default="http://localhost:3000", description="Frontend URL for CORS")

    # Media storage
    media_dir: Path = Field(default=Path("uploads"), description="Directory for uploaded media")
    media_url_prefix: str = Field(default="/uploads", description="Public URL prefix for media")
    media_temp_max_age_seconds: int = Field(
        default=3600, ge=60, description="Unreferenced media older than this is swept"
    )
    media_sweep_interval: int = Field(default=600, ge=10, description="Media sweep period")

    # History retention (text/image entries; gifts are kept)
    history_retention_seconds: int = Field(default=172800, ge=60, description="2 days")
    history_sweep_interval: int = Field(default=900, ge=10, description="Retention sweep period")

    # Playback fallback expiry
    playback_expiry_enabled: bool = Field(
        default=True, description="Complete overdue playing items server-side"
    )
    playback_expiry_grace_seconds: int = Field(default=5, ge=0)
    playback_sweep_interval: float = Field(default=2.0, gt=0)

    # Ranking
    ranking_broadcast_limit: int = Field(default=3, ge=1, le=100)

    # Heartbeat
    enable_keep_alive: bool = Field(default=True, description="Enable heartbeat log task")
    keep_alive_interval: int = Field(default=300, description="Heartbeat interval in seconds")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @field_validator("media_url_prefix")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        return "/" + v.strip("/")

    @property
    def cors_origins(self) -> list[str]:
        return [self.frontend_url]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()  # type: ignore[call-arg]
