"""
Employee directory row. Owned by the directory service; the reminder engine only reads it.
"""
from datetime import datetime
from sqlalchemy import Column, Date, DateTime, Index, Integer, String

from hrnotify.db.base import Base
from .enums import EmployeeStatus


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_code = Column(String, nullable=False, unique=True)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    mobile_number = Column(String, nullable=False)
    whatsapp_number = Column(String, nullable=True)  # falls back to mobile_number
    department = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    date_of_joining = Column(Date, nullable=True)
    status = Column(String, nullable=False, default=EmployeeStatus.ACTIVE.value)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_employees_status", "status"),
    )
