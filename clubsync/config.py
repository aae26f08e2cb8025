from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Internal record store (Postgres)
    DATABASE_URL: str | None = None

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 8
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    # =================================================================
    # BACKGROUND SYNC
    # =================================================================
    SYNC_INTERVAL_SECONDS: float = 300.0  # 5 minutes between cycles
    SYNC_INITIAL_DELAY_SECONDS: float = 300.0  # first cycle after startup
    SYNC_RETRY_DELAY_SECONDS: float = 5.0
    SYNC_ALERT_THRESHOLD: int = 2  # consecutive failed cycles before alerting
    SYNC_ALERT_TIMEOUT_SECONDS: float = 10.0

    # Ordered substring patterns for lossy tier inference
    TIER_FUZZY_PATTERNS: list[str] = ["vip", "premium", "corporate", "core", "social", "staff"]

    # =================================================================
    # MAINTENANCE WINDOWS (wall clock in MAINTENANCE_TIMEZONE)
    # =================================================================
    MAINTENANCE_TIMEZONE: str = "America/Los_Angeles"
    MAINTENANCE_CHECK_INTERVAL_SECONDS: float = 3600.0
    SESSION_CLEANUP_HOUR: int = 2
    WEBHOOK_LOG_CLEANUP_HOUR: int = 4
    WEBHOOK_LOG_RETENTION_DAYS: int = 30
    WEEKLY_CLEANUP_WEEKDAY: int = 6  # Monday=0 ... Sunday=6
    WEEKLY_CLEANUP_HOUR: int = 3
    SYNC_RECORD_RETENTION_DAYS: int = 90

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("SESSION_CLEANUP_HOUR", "WEBHOOK_LOG_CLEANUP_HOUR", "WEEKLY_CLEANUP_HOUR")
    @classmethod
    def _validate_hour(cls, value: int) -> int:
        if not 0 <= value <= 23:
            raise ValueError(f"hour must be between 0 and 23, got {value}")
        return value

    @field_validator("WEEKLY_CLEANUP_WEEKDAY")
    @classmethod
    def _validate_weekday(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError(f"weekday must be between 0 (Monday) and 6 (Sunday), got {value}")
        return value

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": 1,
                    "max_size": 4,
                    "timeout": 15.0,
                }
            )

        return config

    def get_sync_config(self) -> dict:
        """Background sync cadence and failure handling."""
        return {
            "interval_seconds": self.SYNC_INTERVAL_SECONDS,
            "initial_delay_seconds": self.SYNC_INITIAL_DELAY_SECONDS,
            "retry_delay_seconds": self.SYNC_RETRY_DELAY_SECONDS,
            "alert_threshold": self.SYNC_ALERT_THRESHOLD,
            "alert_timeout_seconds": self.SYNC_ALERT_TIMEOUT_SECONDS,
        }

    def get_maintenance_config(self) -> dict:
        """Wall-clock windows for the maintenance schedulers."""
        return {
            "timezone": self.MAINTENANCE_TIMEZONE,
            "check_interval_seconds": self.MAINTENANCE_CHECK_INTERVAL_SECONDS,
            "session_cleanup_hour": self.SESSION_CLEANUP_HOUR,
            "webhook_log_cleanup_hour": self.WEBHOOK_LOG_CLEANUP_HOUR,
            "webhook_log_retention_days": self.WEBHOOK_LOG_RETENTION_DAYS,
            "weekly_cleanup_weekday": self.WEEKLY_CLEANUP_WEEKDAY,
            "weekly_cleanup_hour": self.WEEKLY_CLEANUP_HOUR,
            "sync_record_retention_days": self.SYNC_RECORD_RETENTION_DAYS,
        }


settings = Settings()
