from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class ReminderSettings(BaseSettings):
    # Celery configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: Optional[str] = None
    WORKER_CONCURRENCY: int = 2

    # Cross-process run guard (one run per event type at a time)
    REDIS_LOCK_URL: Optional[str] = None  # defaults to the broker URL when it is redis
    RUN_LOCK_TIMEOUT_SECONDS: int = 1800

    # Scheduling
    BIRTHDAY_INTERVAL_SECONDS: int = 900
    ANNIVERSARY_INTERVAL_SECONDS: int = 900
    FESTIVAL_INTERVAL_SECONDS: int = 900
    LEGACY_DAILY_RUN_ENABLED: bool = False
    LEGACY_DAILY_RUN_HOUR: int = 8

    # Run behaviour
    BATCH_SIZE: int = 10
    TEMPLATE_CACHE_TTL_SECONDS: int = 300
    DEDUPE_SAME_DAY: bool = True
    ENFORCE_DELIVERY_TIME: bool = True

    # Channel retry policies
    SMS_MAX_RETRIES: int = 2
    WHATSAPP_MAX_RETRIES: int = 0
    EMAIL_MAX_RETRIES: int = 0
    RETRY_BASE_DELAY_SECONDS: float = 1.0
    DEFAULT_REGION: Optional[str] = None  # ISO region for numbers stored without a country code, e.g. "IN"

    # Metrics
    METRICS_ENABLED: bool = False
    METRICS_PORT: int = 9108

    model_config = SettingsConfigDict(env_prefix="REMINDER_", env_file=".env", extra="ignore")


settings = ReminderSettings()
