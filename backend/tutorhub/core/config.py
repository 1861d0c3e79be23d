from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Resolve backend root (…/backend/) regardless of current working directory
BASE_DIR = Path(__file__).resolve().parents[2]
ENV_FILE = BASE_DIR / ".env"

# Mirrors services.assessment_timeline.TemporalBucket
TEMPORAL_BUCKETS = ("upcoming", "in_progress", "missed", "completed")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Tutorhub Assessments"
    ENV: str = "dev"
    # One origin or several, comma separated
    # e.g. "http://localhost:5173,https://example.com"
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    # Local sqlite file by default; production points this at Postgres.
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'tutorhub.db'}"
    SQL_ECHO: bool = False

    LOG_LEVEL: str = "INFO"

    # ===== Assessment policy =====
    # When enabled, a learner may still submit once the end date has passed;
    # the assessment then reads as completed rather than missed.
    ALLOW_LATE_SUBMISSIONS: bool = True

    # Buckets whose learners receive teacher reminders (no completed response).
    REMINDER_BUCKETS: list[str] = ["in_progress", "upcoming"]
    DEFAULT_REMINDER_TITLE: str = "Assessment reminder"

    @field_validator("BACKEND_CORS_ORIGINS", "REMINDER_BUCKETS", mode="before")
    @classmethod
    def _split_csv(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                return v
            return [p.strip() for p in s.split(",") if p.strip()]
        return v

    @field_validator("REMINDER_BUCKETS")
    @classmethod
    def _known_buckets(cls, v: list[str]) -> list[str]:
        buckets = [b.strip().lower() for b in v]
        unknown = sorted(set(buckets) - set(TEMPORAL_BUCKETS))
        if unknown:
            raise ValueError(f"unknown bucket(s) {unknown}; expected any of {list(TEMPORAL_BUCKETS)}")
        return buckets

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()


settings = Settings()
