"""
SQLAlchemy-backed store used by the scheduler. Every call opens and closes its
own session so concurrent dispatch tasks never share one.
"""
import logging
from contextlib import contextmanager
from datetime import date, time
from typing import Callable, Iterator, List, Optional, Set, Tuple

from pydantic import ValidationError
from sqlalchemy.orm import Session

from hrnotify.models import Employee, EventConfig, Festival, Template
from hrnotify.models.enums import Channel, EventType
from hrnotify.utils.timezone import local_day_bounds_utc

from . import repository
from .errors import InvalidEventConfigError
from .schemas import EmployeeRead, EventConfigRead, FestivalRead, NotificationCreate, TemplateRead

logger = logging.getLogger(__name__)

# (employee id, channel, festival id or None)
DeliveryKey = Tuple[int, Channel, Optional[int]]


def to_event_config(row: EventConfig) -> EventConfigRead:
    try:
        return EventConfigRead(
            event_type=row.event_type,
            enabled=bool(row.is_enabled),
            lead_days=row.reminder_days if row.reminder_days is not None else [0],
            channels=row.channels or [],
            delivery_time=row.delivery_time or time(9, 0),
        )
    except ValidationError as e:
        raise InvalidEventConfigError(f"event config {row.event_type!r} is invalid: {e}") from e


def to_employee(row: Employee) -> EmployeeRead:
    return EmployeeRead(
        id=row.id,
        full_name=row.full_name,
        email=row.email,
        mobile_number=row.mobile_number,
        chat_handle=row.whatsapp_number,
        date_of_birth=row.date_of_birth,
        date_of_joining=row.date_of_joining,
    )


def to_festival(row: Festival) -> FestivalRead:
    return FestivalRead(id=row.id, name=row.festival_name, festival_date=row.festival_date)


def to_template(row: Template) -> TemplateRead:
    return TemplateRead(
        id=row.id,
        event_type=row.event_type,
        channel=row.channel,
        subject=row.subject,
        body=row.body,
    )


class SqlReminderStore:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def get_event_config(self, event_type: EventType) -> Optional[EventConfigRead]:
        with self._session() as db:
            row = repository.get_event_config(db, event_type)
            return to_event_config(row) if row else None

    def find_enabled_event_configs(self) -> List[EventConfigRead]:
        configs = []
        with self._session() as db:
            for row in repository.list_enabled_event_configs(db):
                try:
                    configs.append(to_event_config(row))
                except InvalidEventConfigError as e:
                    logger.warning("[Store] Skipping %s", e)
        return configs

    def find_active_employees(self) -> List[EmployeeRead]:
        with self._session() as db:
            return [to_employee(row) for row in repository.list_active_employees(db)]

    def find_active_festivals(self) -> List[FestivalRead]:
        with self._session() as db:
            return [to_festival(row) for row in repository.list_active_festivals(db)]

    def find_active_templates(self, event_type: EventType, channel: Channel) -> List[TemplateRead]:
        with self._session() as db:
            return [to_template(row) for row in repository.list_active_templates(db, event_type, channel)]

    def count_active_templates(self, event_type: EventType, channel: Channel) -> int:
        with self._session() as db:
            return repository.count_active_templates(db, event_type, channel)

    def create_notification(self, record: NotificationCreate) -> None:
        with self._session() as db:
            repository.create_notification(db, record)

    def find_delivered_keys(self, event_type: EventType, day: date) -> Set[DeliveryKey]:
        start, end = local_day_bounds_utc(day)
        keys: Set[DeliveryKey] = set()
        with self._session() as db:
            for row in repository.list_successful_notifications(db, event_type, start, end):
                festival_id = (row.metadata_ or {}).get("festival_id")
                keys.add((row.employee_id, Channel(row.channel), festival_id))
        return keys
