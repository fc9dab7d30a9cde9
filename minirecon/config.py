"""
Configuration management using Pydantic Settings.
All parameters are loaded from environment variables with sensible defaults.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

import os

from .models.enums import MatchRateBasis

# Persistent base path shared by the history cache, logs and the .env file
APP_BASE_PATH = Path(os.environ.get(
    "MINIRECON_BASE_PATH",
    Path.home() / "Documents" / "minirecon"
))
ENV_FILE_PATH = APP_BASE_PATH / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: str = Field(default="development")
    app_debug: bool = Field(default=False)
    app_log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    # Matching
    amount_tolerance: float = Field(default=0.01, ge=0)
    match_rate_basis: MatchRateBasis = Field(default=MatchRateBasis.INPUT_ROWS)

    # Batch processing
    batch_pair_delay_seconds: float = Field(default=0.0, ge=0)

    # History cache
    history_path: Path = Field(default=APP_BASE_PATH / "data" / "history.json")
    max_history_records: int = Field(default=100, gt=0)

    # Insight thresholds (percentages unless noted)
    excellent_match_rate: float = Field(default=95.0)
    good_match_rate: float = Field(default=85.0)
    high_volume_threshold: int = Field(default=10000)  # transactions
    trend_change_threshold: float = Field(default=5.0)
    trend_change_high_impact: float = Field(default=10.0)
    anomaly_threshold: float = Field(default=10.0)
    anomaly_min_history: int = Field(default=3)
    batch_failure_high_impact_rate: float = Field(default=20.0)

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def log_dir(self) -> Path:
        return APP_BASE_PATH / "logs"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
