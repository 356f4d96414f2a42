"""
Feature Toggle Models - SQLAlchemy models for features and assignments.

Tables:
- features: Feature definitions with optional group/environment/tenant scope
- feature_assignments: Polymorphic (type, id) links from features to assignables
"""

import re
from enum import IntEnum
from sqlalchemy import (
    String,
    Integer,
    Text,
    ForeignKey,
    Index,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from togglekit.models.base import Base, IntegerPKMixin, TimestampMixin


_NON_ALNUM = re.compile(r"[^a-z0-9]")


def derive_identifier(name: str) -> str:
    """
    Build a machine key from a human label.

    "Dark Mode (beta)" -> "dark_mode__beta_"
    """
    return _NON_ALNUM.sub("_", name.lower())


class FeatureStatus(IntEnum):
    INACTIVE = 0
    ACTIVE = 1

    @classmethod
    def coerce(cls, value: "FeatureStatus | int | str") -> "FeatureStatus":
        """Accept the enum, its integer value or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and not value.isdigit():
            return cls[value.upper()]
        return cls(int(value))


class Feature(Base, IntegerPKMixin, TimestampMixin):
    """
    Feature definition.

    `identifier` is derived from `name` only when it is not supplied; an
    explicit identifier is never overwritten.
    """

    __tablename__ = "features"

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    identifier: Mapped[str] = mapped_column(
        String(200),
        unique=True,
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Scope tags
    group: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    environment: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    tenant_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)

    status: Mapped[FeatureStatus] = mapped_column(
        SQLEnum(FeatureStatus, native_enum=False, length=20),
        default=FeatureStatus.INACTIVE,
        nullable=False,
    )

    assignments: Mapped[list["FeatureAssignment"]] = relationship(
        back_populates="feature",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __init__(self, **kwargs):
        if not kwargs.get("identifier") and kwargs.get("name"):
            kwargs["identifier"] = derive_identifier(kwargs["name"])
        super().__init__(**kwargs)

    @validates("identifier")
    def _validate_identifier(self, key: str, value: str | None) -> str | None:
        if not value and self.name:
            return derive_identifier(self.name)
        return value

    @property
    def is_active(self) -> bool:
        return self.status == FeatureStatus.ACTIVE

    def __repr__(self) -> str:
        state = "ON" if self.is_active else "OFF"
        return f"<Feature {self.identifier} [{state}]>"


class FeatureAssignment(Base, IntegerPKMixin, TimestampMixin):
    """
    Link between a feature and one assignable.

    The assignable is stored as (assignable_type, assignable_id) with no
    foreign key; the type name is resolved through the AssignableRegistry.
    A feature is assigned to a given assignable at most once.
    """

    __tablename__ = "feature_assignments"
    __table_args__ = (
        UniqueConstraint(
            "feature_id",
            "assignable_type",
            "assignable_id",
            name="uq_feature_assignments_feature_assignable",
        ),
        Index("idx_feature_assignments_assignable", "assignable_type", "assignable_id"),
    )

    feature_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("features.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assignable_type: Mapped[str] = mapped_column(String(100), nullable=False)
    assignable_id: Mapped[int] = mapped_column(Integer, nullable=False)

    feature: Mapped[Feature] = relationship(back_populates="assignments")

    def __repr__(self) -> str:
        return (
            f"<FeatureAssignment feature={self.feature_id} "
            f"{self.assignable_type}#{self.assignable_id}>"
        )
