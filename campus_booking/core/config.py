from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    PROJECT_NAME: str = "Campus Booking"
    VERSION: str = "1.0.0"

    # Key-value backing store for the /data facade
    DATABASE_URL: str = "sqlite:///./campus_booking.db"

    # Security
    API_KEY: str = "change-me"
    STAFF_PASSWORDS: list[str] = []

    # LINE Messaging API
    LINE_CHANNEL_ACCESS_TOKEN: Optional[str] = None
    LINE_API_URL: str = "https://api.line.me/v2/bot/message"
    LINE_GROUP_IDS: list[str] = []

    # CORS
    BACKEND_CORS_ORIGINS: list[str] = ["*"]

    # College wall clock
    TIMEZONE: str = "Asia/Bangkok"
    APP_URL: str = "http://localhost:5173"

    # Client side (record store client + sync loop)
    STORE_BASE_URL: str = "http://localhost:8000"
    STORE_TIMEOUT_SECONDS: float = 15.0
    POLL_INTERVAL_SECONDS: float = 30
    BOOKING_SWEEP_INTERVAL_SECONDS: float = 60
    BORROWING_SWEEP_INTERVAL_SECONDS: float = 3600
    NOTIFY_MAX_ATTEMPTS: int = 3
    NOTIFY_BACKOFF_SECONDS: float = 1.0

    # Scheduled daily summary
    DAILY_REPORT_ENABLED: bool = False
    DAILY_REPORT_TIME: str = "07:00"

    # Re-check the no-overlap invariant when a rooms blob is written
    ENFORCE_NO_OVERLAP_ON_WRITE: bool = False

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
