"""
Configuration management for the Retraining Trigger service
"""
from pathlib import Path
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    # Project
    PROJECT_NAME: str = "retraining-trigger"
    VERSION: str = "1.0.0"

    # Paths
    BASE_DIR: Path = Path(__file__).parent
    STATE_DIR: Path = BASE_DIR / "state"
    JOBS_DIR: Path = BASE_DIR / "retraining_jobs"

    # Trigger rules
    RULES_PATH: Optional[Path] = Field(
        default=None,
        description="JSON file with trigger rules; built-in rules are used when unset"
    )
    STATE_PATH: Path = STATE_DIR / "evaluation_state.json"
    DEFAULT_COOLDOWN_HOURS: float = 24.0

    # Scheduling
    CHECK_INTERVAL_SECONDS: int = 3600

    # Monitoring
    DRIFT_P_VALUE_THRESHOLD: float = 0.05

    # Serving
    SERVING_HOST: str = "0.0.0.0"
    SERVING_PORT: int = 8000

    # MLflow
    ENABLE_MLFLOW_TRACKING: bool = False
    MLFLOW_TRACKING_URI: str = "sqlite:///mlflow.db"
    MLFLOW_EXPERIMENT_NAME: str = "retraining-triggers"

    # Logging
    LOG_LEVEL: str = "INFO"

    def create_directories(self):
        """Create necessary directories if they don't exist."""
        for dir_path in [self.STATE_DIR, self.JOBS_DIR]:
            dir_path.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
