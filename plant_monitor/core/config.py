from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="PLANT_", extra="ignore")

    app_name: str = "Plant Monitoring Dashboard"
    timezone: str = "Asia/Singapore"

    # Sampling
    sample_seconds: int = 10
    gap_threshold_seconds: int = 15  # one missed tick tolerated before backfill
    backfill_lookback_hours: int = 24

    # Queries
    history_limit: int = 10

    # Storage
    sqlite_path: str = Field(default="plant_monitor.db")

    # Store reconnect policy
    reconnect_initial_backoff_seconds: float = 1.0
    reconnect_max_backoff_seconds: float = 30.0
    reconnect_max_attempts: int = 0  # 0 = keep trying

    # Simulator
    feeder_enabled: bool = True
    seed_on_startup: bool = True

    # Logging
    log_level: str = "INFO"
    log_file: str = "plant_monitor.log"


settings = Settings()
