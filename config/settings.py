"""Configuration settings loaded from .env file."""

from pathlib import Path

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings

from config.exceptions import InvalidConfigError


class Settings(BaseSettings):
    """Application settings, loaded from .env file.

    Timer values are in seconds. The editor defaults mirror the browser
    client: autosave after 1s of inactivity, history snapshot after 0.5s,
    and a 0.5s "saving" indicator before switching to "saved".
    """

    # Storage
    data_dir: Path = Path("./data")
    sqlite_db_path: Path = Path("./data/herzensbuch.db")
    blob_dir: Path = Path("./data/blobs")
    session_path: Path = Path("./data/session.json")

    # Editor timers
    autosave_delay_seconds: float = 1.0
    history_delay_seconds: float = 0.5
    saved_feedback_delay_seconds: float = 0.5
    time_tracking_interval_seconds: int = 30

    # Limits
    history_limit: int = 10
    activity_log_limit: int = 50

    # Accounts created with these emails become approved employees
    employee_emails: list[str] = []

    # Logging
    log_dir: Path = Path("./data/logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "HERZENSBUCH_",
    }

    @field_validator(
        "autosave_delay_seconds",
        "history_delay_seconds",
        "saved_feedback_delay_seconds",
        "time_tracking_interval_seconds",
    )
    @classmethod
    def validate_delays(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timer delay must be positive")
        return v

    @field_validator("history_limit", "activity_log_limit")
    @classmethod
    def validate_limits(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Limit must be >= 1")
        return v

    @field_validator("employee_emails")
    @classmethod
    def normalize_emails(cls, v: list[str]) -> list[str]:
        return [e.strip().lower() for e in v if e.strip()]

    @field_validator("sqlite_db_path", "session_path", "log_dir", "blob_dir")
    @classmethod
    def ensure_parent_dirs(cls, v: Path) -> Path:
        v.parent.mkdir(parents=True, exist_ok=True)
        return v


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, reporting bad values as InvalidConfigError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise InvalidConfigError(f"Invalid configuration: {e.error_count()} error(s)", {"errors": str(e)}) from e
