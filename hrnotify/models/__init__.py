from .enums import Channel, EmployeeStatus, EventType, NotificationStatus
from .employee import Employee
from .event import EventConfig
from .festival import Festival
from .template import Template
from .notification import Notification
