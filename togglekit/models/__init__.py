"""
Database models.
"""

from togglekit.models.base import Base, IntegerPKMixin, TimestampMixin

__all__ = ["Base", "IntegerPKMixin", "TimestampMixin"]
