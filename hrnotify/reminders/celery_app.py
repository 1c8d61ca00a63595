import logging

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging, worker_ready
from prometheus_client import start_http_server

from hrnotify.core.config import settings as core_settings
from hrnotify.core.logging import init_logging
from hrnotify.models.enums import EventType
from .config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "reminders",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND or None,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.WORKER_CONCURRENCY,
    timezone=core_settings.DEFAULT_TIMEZONE,
    enable_utc=True,
    include=["hrnotify.reminders.tasks"],
)

_INTERVALS = {
    EventType.BIRTHDAY: settings.BIRTHDAY_INTERVAL_SECONDS,
    EventType.ANNIVERSARY: settings.ANNIVERSARY_INTERVAL_SECONDS,
    EventType.FESTIVAL: settings.FESTIVAL_INTERVAL_SECONDS,
}


def build_beat_schedule() -> dict:
    # One independently timed entry per event type
    schedule = {
        f"reminders-{event_type.value.lower()}": {
            "task": "reminders.run_event_type",
            "schedule": interval,
            "args": [event_type.value],
            # A tick that is not picked up before the next one is worthless
            "options": {"expires": interval},
        }
        for event_type, interval in _INTERVALS.items()
    }
    # Legacy "all events once a day" trigger, off unless explicitly enabled
    if settings.LEGACY_DAILY_RUN_ENABLED:
        schedule["reminders-legacy-daily"] = {
            "task": "reminders.run_all",
            "schedule": crontab(hour=settings.LEGACY_DAILY_RUN_HOUR, minute=0),
        }
    return schedule


celery_app.conf.beat_schedule = build_beat_schedule()


@setup_logging.connect
def _configure_logging(**kwargs):
    init_logging(core_settings.LOG_LEVEL)


@worker_ready.connect
def _on_worker_ready(**kwargs):
    from .bootstrap import build_dispatcher, build_store
    from .readiness import build_readiness_report, log_readiness_report

    if settings.METRICS_ENABLED:
        start_http_server(settings.METRICS_PORT)
        logger.info("[Worker] Metrics exposed on :%d", settings.METRICS_PORT)
    try:
        log_readiness_report(build_readiness_report(build_store(), build_dispatcher()))
    except Exception:
        logger.exception("[Worker] Readiness check failed")
