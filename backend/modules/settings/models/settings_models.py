from sqlalchemy import Column, Integer, String, Text

from core.database import Base
from core.mixins import TimestampMixin


class Setting(Base, TimestampMixin):
    """Free-form key/value canteen configuration editable by admins"""
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), nullable=False, unique=True, index=True)
    value = Column(Text, nullable=False, default="")

    def __repr__(self):
        return f"<Setting(key='{self.key}')>"
