from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from hrnotify.db.base import Base


class Template(Base):
    """Message template per (event type, channel); at most one should be active"""
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String, nullable=False)
    channel = Column(String, nullable=False)
    subject = Column(String, nullable=True)  # email only
    body = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_templates_event_channel_active", "event_type", "channel", "is_active"),
    )
