from datetime import datetime
from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String

from hrnotify.db.base import Base


class Festival(Base):
    """Festival master row; only month and day of festival_date are used (recurs yearly)"""
    __tablename__ = "festival_master"

    id = Column(Integer, primary_key=True, autoincrement=True)
    festival_name = Column(String, nullable=False)
    festival_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
