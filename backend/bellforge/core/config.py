from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    # Resolve to backend/.env so the engine picks up the same defaults from any cwd.
    model_config = SettingsConfigDict(
        env_file=str(BACKEND_ENV_FILE),
        env_file_encoding="utf-8",
        env_prefix="BELLFORGE_",
    )

    project_name: str = "BellForge"
    log_level: str = "INFO"

    default_period_minutes: int = 50
    default_passing_minutes: int = 5
    default_school_start: str = "08:00"
    default_school_end: str = "15:00"
    default_period_count: int = 7

    default_student_count: int = 800
    default_max_class_size: int = 30
    pe_section_size: int = 50

    coverage_unaccounted_threshold: int = 50
    split_lunch_tolerance_minutes: int = 2

    random_seed: int | None = None
    variant_timeout_seconds: float | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().upper() or "INFO"
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
