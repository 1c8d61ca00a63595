import asyncio
from datetime import date, datetime, time
from typing import Dict, List, Optional, Set

import pytest

from hrnotify.models.enums import Channel, EventType
from hrnotify.reminders.dispatcher import ChannelDispatcher
from hrnotify.reminders.scheduler import ReminderScheduler
from hrnotify.reminders.schemas import EmployeeRead, EventConfigRead, FestivalRead, TemplateRead
from hrnotify.reminders.template_cache import TemplateCache
from hrnotify.services.base import DeliveryResult


class FakeStore:
    """In-memory stand-in for SqlReminderStore"""

    def __init__(self):
        self.configs: Dict[EventType, EventConfigRead] = {}
        self.employees: List[EmployeeRead] = []
        self.festivals: List[FestivalRead] = []
        self.templates: List[TemplateRead] = []
        self.records = []
        self.delivered: Set[tuple] = set()
        self.template_queries = 0
        self.fail_record_for: Set[int] = set()

    def get_event_config(self, event_type):
        return self.configs.get(event_type)

    def find_enabled_event_configs(self):
        return [c for c in self.configs.values() if c.enabled]

    def find_active_employees(self):
        return list(self.employees)

    def find_active_festivals(self):
        return list(self.festivals)

    def find_active_templates(self, event_type, channel):
        self.template_queries += 1
        return [t for t in self.templates if t.event_type == event_type and t.channel == channel]

    def count_active_templates(self, event_type, channel):
        return len([t for t in self.templates if t.event_type == event_type and t.channel == channel])

    def create_notification(self, record):
        if record.employee_id in self.fail_record_for:
            raise RuntimeError("database unavailable")
        self.records.append(record)

    def find_delivered_keys(self, event_type, day):
        return set(self.delivered)


class FakeAdapter:
    """Channel adapter double; records every send and fails for chosen recipients"""

    def __init__(self, channel: Channel, configured: bool = True, fail_for=(), raise_for=(), gate=None):
        self.channel = channel
        self.name = channel.value
        self.is_configured = configured
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.gate: Optional[asyncio.Event] = gate
        self.calls = []

    async def send(self, to, subject, body):
        self.calls.append({"to": to, "subject": subject, "body": body})
        if self.gate is not None:
            await self.gate.wait()
        if to in self.raise_for:
            raise RuntimeError(f"adapter blew up for {to}")
        if to in self.fail_for:
            return DeliveryResult.failed("21211", "invalid number", attempts=1, recipient=to)
        return DeliveryResult(success=True, message_id=f"msg-{len(self.calls)}", attempts=1, recipient=to)


class FakeSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_employee(id, **kwargs) -> EmployeeRead:
    data = {
        "full_name": f"Employee {id}",
        "email": f"employee{id}@example.com",
        "mobile_number": f"+9198765{id:05d}",
    }
    data.update(kwargs)
    return EmployeeRead(id=id, **data)


def make_template(id, event_type, channel, body, subject=None) -> TemplateRead:
    return TemplateRead(id=id, event_type=event_type, channel=channel, subject=subject, body=body)


def make_config(event_type, lead_days=(0,), channels=(Channel.EMAIL,), enabled=True, delivery_time=time(9, 0)):
    return EventConfigRead(
        event_type=event_type,
        enabled=enabled,
        lead_days=list(lead_days),
        channels=list(channels),
        delivery_time=delivery_time,
    )


def at(day: date, hour: int = 10) -> datetime:
    return datetime(day.year, day.month, day.day, hour, 0)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def email_adapter():
    return FakeAdapter(Channel.EMAIL)


@pytest.fixture
def sms_adapter():
    return FakeAdapter(Channel.SMS)


@pytest.fixture
def dispatcher(email_adapter, sms_adapter):
    return ChannelDispatcher([email_adapter, sms_adapter])


@pytest.fixture
def make_scheduler(store, dispatcher):
    def _make(**kwargs):
        cache = TemplateCache(store.find_active_templates, ttl_seconds=300, clock=lambda: 0.0)
        return ReminderScheduler(store=store, dispatcher=kwargs.pop("dispatcher", dispatcher), template_cache=cache, **kwargs)
    return _make
