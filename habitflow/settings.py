from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILES = [PROJECT_ROOT / ".env", ".env"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_FILES, extra="ignore")

    # DB
    DATABASE_URL: str = "sqlite:///./data/habitflow.db"

    # App
    TZ: str = "UTC"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # API
    API_KEY: str | None = None
    API_KEY_SECRET: str | None = None

    # Feasibility thresholds (tunable, not derived from data)
    FEASIBILITY_MAX_ACTIVE_HABITS: int = 10
    FEASIBILITY_MAX_WEEKLY_MINUTES: int = 1200
    FEASIBILITY_MINUTES_PER_COMPLETION: int = 15
    FEASIBILITY_CONFLICT_WINDOW_MIN: int = 30
    FEASIBILITY_LOW_COMPLETION_RATE: float = 0.5
    FEASIBILITY_HISTORY_DAYS: int = 30


settings = Settings()
