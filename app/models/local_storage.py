# app/models/local_storage.py
from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class LocalStorageItem(Base):
    """Пара ключ/значение, аналог window.localStorage"""
    __tablename__ = "local_storage"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
