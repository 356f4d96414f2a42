"""
Base model classes and mixins.

- Base: declarative base shared by togglekit tables and host assignables
- TimestampMixin: created_at, updated_at (always use)
- IntegerPKMixin: autoincrement integer primary key
"""

from datetime import datetime
from typing import Any
from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from togglekit.utils.timezone import utc_now


class Base(DeclarativeBase):
    """Base class for all models."""

    # Common type annotations - all datetimes are timezone-aware
    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


# ============================================================
# TIMESTAMP MIXIN
# ============================================================

class TimestampMixin:
    """
    Mixin for created_at and updated_at timestamps.

    All timestamps are stored in UTC. The Python-side default also applies
    to Core bulk inserts, so rows written by the bulk toggler get the same
    clock as ORM-created rows.

    Usage:
        class MyModel(Base, TimestampMixin):
            __tablename__ = "my_table"
            ...
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False,
    )


# ============================================================
# PRIMARY KEY MIXIN
# ============================================================

class IntegerPKMixin:
    """
    Mixin for an autoincrement integer primary key.

    Assignment rows reference assignables by integer id, so every
    assignable model is expected to use this (or an equivalent) key.
    """

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
