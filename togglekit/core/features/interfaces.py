"""
Feature Toggle Interfaces - Core abstractions.

Value objects passed between the resolver, the bulk toggler and analytics,
and the capability contract every registered assignable type fulfils.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import FeatureStatus


class ToggleDirection(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"


def is_blank(value: Any) -> bool:
    """None, empty strings and empty collections are blank; 0 and False are not."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return not value
    return False


@dataclass(frozen=True)
class FeatureFilters:
    """
    Conjunctive feature filters.

    Blank values are skipped. `role` is a synonym of `group` and `env` of
    `environment`; the canonical name wins when both are given.
    """
    group: str | None = None
    environment: str | None = None
    tenant_id: str | None = None
    status: FeatureStatus | None = None

    @classmethod
    def from_kwargs(cls, **filters: Any) -> "FeatureFilters":
        group = filters.get("group")
        if is_blank(group):
            group = filters.get("role")

        environment = filters.get("environment")
        if is_blank(environment):
            environment = filters.get("env")

        status = filters.get("status")
        return cls(
            group=None if is_blank(group) else str(group),
            environment=None if is_blank(environment) else str(environment),
            tenant_id=None if is_blank(filters.get("tenant_id")) else str(filters["tenant_id"]),
            status=None if is_blank(status) else FeatureStatus.coerce(status),
        )

    def scope_only(self) -> "FeatureFilters":
        """Drop the status filter; bulk toggles only filter on scope tags."""
        return FeatureFilters(
            group=self.group,
            environment=self.environment,
            tenant_id=self.tenant_id,
        )


@dataclass(frozen=True)
class AssignableRef:
    """
    Discriminated reference to one assignable row.

    `kind` is the registered assignable type name, `id` its primary key.
    """
    kind: str
    id: int

    def __str__(self) -> str:
        return f"{self.kind}#{self.id}"


@dataclass
class AnalyticsRecord:
    """Usage of one feature across one assignable type."""
    assignable: str
    feature: str
    enabled_count: int = 0
    disabled_count: int = 0
    total: int = 0
    percentage_enabled: str = "0.00%"
    percentage_disabled: str = "0.00%"
    first_created: datetime | None = None
    last_created: datetime | None = None
    windows: dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        windows = data.pop("windows")
        for days, count in windows.items():
            data[f"past_{days}"] = count
        return data


class AssignableCapability(ABC):
    """
    Population-level queries for one assignable type.

    Implementations:
    - ModelAssignable: SQLAlchemy model mixing in AssignableMixin
    """

    name: str

    @abstractmethod
    def with_features_query(self, feature_ids: Sequence[int]) -> Select:
        """Distinct members holding at least one of `feature_ids`."""
        pass

    @abstractmethod
    def without_features_query(self, feature_ids: Sequence[int]) -> Select:
        """Distinct members holding none of `feature_ids`."""
        pass

    @abstractmethod
    async def count(self, db: AsyncSession) -> int:
        """Size of the whole population."""
        pass

    # Eager variants run the same statements the builders return.

    async def with_features(
        self,
        db: AsyncSession,
        feature_ids: Iterable[int],
    ) -> list[Any]:
        result = await db.execute(self.with_features_query(list(feature_ids)))
        return list(result.scalars().all())

    async def without_features(
        self,
        db: AsyncSession,
        feature_ids: Iterable[int],
    ) -> list[Any]:
        result = await db.execute(self.without_features_query(list(feature_ids)))
        return list(result.scalars().all())

    async def count_with_features(self, db: AsyncSession, feature_ids: Iterable[int]) -> int:
        stmt = select(func.count()).select_from(
            self.with_features_query(list(feature_ids)).subquery()
        )
        return await db.scalar(stmt) or 0

    async def count_without_features(self, db: AsyncSession, feature_ids: Iterable[int]) -> int:
        stmt = select(func.count()).select_from(
            self.without_features_query(list(feature_ids)).subquery()
        )
        return await db.scalar(stmt) or 0
