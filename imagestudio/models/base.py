"""
Base model classes for ImageStudio.

Provides SQLAlchemy declarative base and shared mixins.
"""
from datetime import datetime, timezone
from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_values(enum_cls) -> list[str]:
    """Persist str enums by value rather than by member name."""
    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamps to models.

    Uses server-side defaults for automatic timestamp management.
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
