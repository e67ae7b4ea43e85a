# models/base.py
"""
Base model and mixins for all database tables.
"""
from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, DateTime, TypeDecorator
from datetime import datetime, timezone

Base = declarative_base()


def utcNow() -> datetime:
    return datetime.now(timezone.utc)


class UtcDateTime(TypeDecorator):
    """
    Stores datetimes as naive UTC and always returns them timezone-aware.
    SQLite drops tzinfo, so comparisons with timeMachine.now would fail otherwise.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class AuditMixin:
    createdAt = Column(UtcDateTime, default=utcNow)
    updatedAt = Column(UtcDateTime, default=utcNow, onupdate=utcNow)
