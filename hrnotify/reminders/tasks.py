import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import redis
from celery import shared_task

from hrnotify.models.enums import EventType
from .bootstrap import get_scheduler
from .config import settings
from .metrics import reminder_runs_skipped_total

logger = logging.getLogger(__name__)

_redis: Optional[redis.Redis] = None


def _lock_url() -> Optional[str]:
    if settings.REDIS_LOCK_URL:
        return settings.REDIS_LOCK_URL
    if settings.CELERY_BROKER_URL.startswith(("redis://", "rediss://")):
        return settings.CELERY_BROKER_URL
    return None


def get_redis() -> Optional[redis.Redis]:
    global _redis
    if _redis is None:
        url = _lock_url()
        if url:
            _redis = redis.Redis.from_url(url)
    return _redis


@contextmanager
def run_lock(name: str) -> Iterator[bool]:
    """Cluster-wide guard so a slow run is never overlapped by the next beat tick.

    Yields False when another worker holds the lock. Without a redis URL the
    in-process guard in the scheduler is the only protection.
    """
    client = get_redis()
    if client is None:
        yield True
        return
    lock = client.lock(f"reminders:run:{name}", timeout=settings.RUN_LOCK_TIMEOUT_SECONDS, blocking=False)
    acquired = lock.acquire()
    try:
        yield acquired
    finally:
        if acquired:
            try:
                lock.release()
            except redis.exceptions.LockError:
                # expired while running
                logger.warning("[Reminders] Lock %s expired before release", name)


def _run_locked(kind: EventType, ignore_delivery_time: bool = False) -> dict:
    with run_lock(kind.value) as acquired:
        if not acquired:
            logger.info("[Reminders] %s run already in progress, skipping", kind.value)
            reminder_runs_skipped_total.labels(event_type=kind.value, reason="already_running").inc()
            return {"event_type": kind.value, "status": "skipped", "reason": "already_running"}
        try:
            summary = asyncio.run(get_scheduler().run_event_type(kind, ignore_delivery_time=ignore_delivery_time))
        except Exception as e:
            logger.exception("[Reminders] %s run failed", kind.value)
            return {"event_type": kind.value, "status": "error", "reason": str(e)}
    return summary.as_dict()


@shared_task(name="reminders.run_event_type")
def run_event_type_task(event_type: str) -> dict:
    """Run one scheduling pass for a single event type. Returns the run summary."""
    try:
        kind = EventType(event_type)
    except ValueError:
        logger.error("[Reminders] Unknown event type %r", event_type)
        return {"event_type": event_type, "status": "error", "reason": "unknown_event_type"}
    return _run_locked(kind)


@shared_task(name="reminders.run_all")
def run_all_task() -> list:
    """Legacy daily trigger: every event type in sequence, each under its own run lock."""
    with run_lock("all") as acquired:
        if not acquired:
            logger.info("[Reminders] Daily run already in progress, skipping")
            return []
        return [_run_locked(kind, ignore_delivery_time=True) for kind in EventType]
