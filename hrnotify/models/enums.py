from enum import Enum


class EventType(str, Enum):
    BIRTHDAY = "Birthday"
    ANNIVERSARY = "JobAnniversary"
    FESTIVAL = "Festival"


class Channel(str, Enum):
    EMAIL = "Email"
    SMS = "SMS"
    WHATSAPP = "WhatsApp"


class EmployeeStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class NotificationStatus(str, Enum):
    SUCCESS = "Success"
    FAILED = "Failed"
    PENDING = "Pending"
