"""
Append-only delivery log: one row per dispatch attempt outcome.
"""
from datetime import datetime
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text

from hrnotify.db.base import Base
from .enums import NotificationStatus


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    event_type = Column(String, nullable=False)
    channel = Column(String, nullable=False)
    status = Column(String, nullable=False, default=NotificationStatus.PENDING.value)
    response_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_notifications_event_status_created", "event_type", "status", "created_at"),
    )
