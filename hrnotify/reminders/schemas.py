"""
Schemas passed between the store, the scheduler and the channel layer
"""
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from hrnotify.models.enums import Channel, EventType, NotificationStatus


class EventConfigRead(BaseModel):
    """Reminder configuration for one event type"""
    event_type: EventType
    enabled: bool = True
    lead_days: List[int] = Field(default_factory=lambda: [0])
    channels: List[Channel] = Field(default_factory=lambda: [Channel.EMAIL])
    delivery_time: time = time(9, 0)

    @field_validator("lead_days")
    @classmethod
    def _unique_non_negative(cls, v: List[int]) -> List[int]:
        if any(d < 0 for d in v):
            raise ValueError("lead days must be non-negative")
        return sorted(set(v))

    @field_validator("channels")
    @classmethod
    def _unique_channels(cls, v: List[Channel]) -> List[Channel]:
        # Keep configured order, drop repeats
        return list(dict.fromkeys(v))


class EmployeeRead(BaseModel):
    id: int
    full_name: str
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    chat_handle: Optional[str] = None
    date_of_birth: Optional[date] = None
    date_of_joining: Optional[date] = None


class FestivalRead(BaseModel):
    id: int
    name: str
    festival_date: date


class TemplateRead(BaseModel):
    id: int
    event_type: EventType
    channel: Channel
    subject: Optional[str] = None
    body: str


class EventContext(BaseModel):
    """Per-recipient values available to the renderer"""
    years_completed: Optional[int] = None
    festival_id: Optional[int] = None
    festival_name: Optional[str] = None


class RenderedMessage(BaseModel):
    subject: Optional[str] = None
    body: str


class NotificationCreate(BaseModel):
    employee_id: int
    event_type: EventType
    channel: Channel
    status: NotificationStatus
    response_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
