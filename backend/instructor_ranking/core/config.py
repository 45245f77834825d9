# backend/instructor_ranking/core/config.py
import logging
import os
from pathlib import Path
from typing import Optional, Set

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


PROD_SITE_MODES: Set[str] = {"prod", "production", "beta", "live"}


def _is_production_site_mode(raw_site_mode: Optional[str]) -> bool:
    return (raw_site_mode or "").strip().lower() in PROD_SITE_MODES


class Settings(BaseSettings):
    app_name: str = Field(default=f"{BRAND_NAME} Instructor Rankings")

    # Environment (derived from SITE_MODE)
    environment: str = (
        "production" if _is_production_site_mode(os.getenv("SITE_MODE", "local")) else "development"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./instructor_rankings.db",
        description="SQLAlchemy URL of the stats, lesson and user store",
    )
    database_echo: bool = Field(default=False)

    # Redis (Celery broker + ranking pass lock)
    redis_url: str = Field(default="redis://localhost:6379")
    lock_namespace: str = Field(default="instructor_ranking")

    # Ranking batch pass
    ranking_refresh_interval_seconds: int = Field(
        default=60,
        ge=5,
        description="How often Celery beat runs the dirty-ranking pass",
    )
    ranking_lock_ttl_seconds: int = Field(default=300, ge=1)
    top_instructors_default_limit: int = Field(default=10, ge=1)
    top_instructors_max_limit: int = Field(default=1000, ge=1)

    # Seasonal stats: a season starts on the first day of this month
    season_start_month: int = Field(default=11, ge=1, le=12)

    # Monitoring
    slow_operation_threshold_seconds: float = Field(default=1.0, gt=0)

    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> str:
        normalized = str(value or "INFO").strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            logger.warning("Invalid LOG_LEVEL=%s; defaulting to INFO", value)
            return "INFO"
        return normalized


settings = Settings()
