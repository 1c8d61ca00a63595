"""
Wires the scheduler from process settings. One scheduler (and so one template
cache) per worker process.
"""
import threading
from typing import Optional

from hrnotify.core.config import settings as core_settings
from hrnotify.services.email_service import EmailService
from hrnotify.services.sms_service import SmsService
from hrnotify.services.whatsapp_service import WhatsAppService

from .config import settings
from .dispatcher import ChannelDispatcher
from .scheduler import ReminderScheduler
from .store import SqlReminderStore
from .template_cache import TemplateCache

_scheduler: Optional[ReminderScheduler] = None
_lock = threading.Lock()


def build_dispatcher() -> ChannelDispatcher:
    return ChannelDispatcher([
        EmailService.from_settings(
            core_settings,
            max_retries=settings.EMAIL_MAX_RETRIES,
            base_delay=settings.RETRY_BASE_DELAY_SECONDS,
        ),
        SmsService.from_settings(
            core_settings,
            max_retries=settings.SMS_MAX_RETRIES,
            base_delay=settings.RETRY_BASE_DELAY_SECONDS,
            default_region=settings.DEFAULT_REGION,
        ),
        WhatsAppService.from_settings(
            core_settings,
            max_retries=settings.WHATSAPP_MAX_RETRIES,
            base_delay=settings.RETRY_BASE_DELAY_SECONDS,
            default_region=settings.DEFAULT_REGION,
        ),
    ])


def build_store() -> SqlReminderStore:
    from hrnotify.db.session import SessionLocal
    return SqlReminderStore(SessionLocal)


def build_scheduler() -> ReminderScheduler:
    store = build_store()
    return ReminderScheduler(
        store=store,
        dispatcher=build_dispatcher(),
        template_cache=TemplateCache(store.find_active_templates, ttl_seconds=settings.TEMPLATE_CACHE_TTL_SECONDS),
        batch_size=settings.BATCH_SIZE,
        dedupe_same_day=settings.DEDUPE_SAME_DAY,
        enforce_delivery_time=settings.ENFORCE_DELIVERY_TIME,
    )


def get_scheduler() -> ReminderScheduler:
    global _scheduler
    with _lock:
        if _scheduler is None:
            _scheduler = build_scheduler()
        return _scheduler
