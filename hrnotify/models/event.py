"""
Per-event-type reminder configuration (one row per event type).
"""
from datetime import datetime, time
from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Time

from hrnotify.db.base import Base
from .enums import Channel


class EventConfig(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String, nullable=False, unique=True)
    is_enabled = Column(Boolean, nullable=False, default=True)
    reminder_days = Column(JSON, nullable=False, default=lambda: [0])  # lead days, 0 = same day
    channels = Column(JSON, nullable=False, default=lambda: [Channel.EMAIL.value])
    delivery_time = Column(Time, nullable=False, default=time(9, 0))
    config = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
