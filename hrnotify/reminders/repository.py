from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func, select

from hrnotify.models import Employee, EventConfig, Festival, Notification, Template
from hrnotify.models.enums import Channel, EmployeeStatus, EventType, NotificationStatus
from hrnotify.utils.timezone import to_utc_naive
from .schemas import NotificationCreate


def get_event_config(db: Session, event_type: EventType) -> Optional[EventConfig]:
    stmt = select(EventConfig).where(EventConfig.event_type == EventType(event_type).value)
    return db.execute(stmt).scalars().first()


def list_enabled_event_configs(db: Session) -> List[EventConfig]:
    stmt = select(EventConfig).where(EventConfig.is_enabled == True).order_by(EventConfig.id)  # noqa: E712
    return list(db.execute(stmt).scalars())


def list_active_employees(db: Session) -> List[Employee]:
    stmt = (
        select(Employee)
        .where(Employee.status == EmployeeStatus.ACTIVE.value)
        .order_by(Employee.id)
    )
    return list(db.execute(stmt).scalars())


def list_active_festivals(db: Session) -> List[Festival]:
    stmt = select(Festival).where(Festival.is_active == True).order_by(Festival.id)  # noqa: E712
    return list(db.execute(stmt).scalars())


def list_active_templates(db: Session, event_type: EventType, channel: Channel) -> List[Template]:
    stmt = (
        select(Template)
        .where(Template.event_type == EventType(event_type).value)
        .where(Template.channel == Channel(channel).value)
        .where(Template.is_active == True)  # noqa: E712
        .order_by(Template.id)
    )
    return list(db.execute(stmt).scalars())


def count_active_templates(db: Session, event_type: EventType, channel: Channel) -> int:
    stmt = (
        select(func.count(Template.id))
        .where(Template.event_type == EventType(event_type).value)
        .where(Template.channel == Channel(channel).value)
        .where(Template.is_active == True)  # noqa: E712
    )
    return int(db.execute(stmt).scalar() or 0)


def create_notification(db: Session, data: NotificationCreate) -> Notification:
    notification = Notification(
        employee_id=data.employee_id,
        event_type=data.event_type.value,
        channel=data.channel.value,
        status=data.status.value,
        response_message=data.response_message,
        sent_at=to_utc_naive(data.sent_at),
        metadata_=data.metadata,
        created_at=datetime.utcnow(),
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def list_successful_notifications(
    db: Session,
    event_type: EventType,
    start: datetime,
    end: datetime,
) -> List[Notification]:
    """Successful deliveries for an event type written in [start, end)."""
    stmt = (
        select(Notification)
        .where(Notification.event_type == EventType(event_type).value)
        .where(Notification.status == NotificationStatus.SUCCESS.value)
        .where(Notification.created_at >= to_utc_naive(start))
        .where(Notification.created_at < to_utc_naive(end))
    )
    return list(db.execute(stmt).scalars())
