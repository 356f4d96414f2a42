"""
Feature usage analytics.

For one feature, reports per assignable type:
- how many members have it enabled / disabled, and the percentages
- when it was first / last assigned
- how many assignments were created in the trailing 7/14/30 days

Usage:
    analytics = FeatureAnalytics(db, registry)
    records = await analytics.track("dark_mode")
    # [AnalyticsRecord(assignable="User", enabled_count=120, disabled_count=30,
    #                  total=150, percentage_enabled="80.0%", ...)]

Totals are "members with the feature + members without it", computed with
the same with/without queries the bulk toggler partitions on.
"""

from datetime import datetime
from typing import Callable, Sequence

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from togglekit.core.config import settings
from togglekit.utils.timezone import days_ago, to_utc, utc_now

from .interfaces import AnalyticsRecord, AssignableCapability
from .models import Feature, FeatureAssignment
from .registry import AssignableRegistry, assignables as default_registry
from .resolver import FeatureResolver

logger = structlog.get_logger()


def calculate_percentage(count: int, total: int) -> str:
    """'40.0%' style percentage; '0.00%' when there is nothing to divide by."""
    if not total:
        return "0.00%"
    return f"{round(count / total * 100, 2)}%"


class FeatureAnalytics:
    """Read-only usage report for features."""

    def __init__(
        self,
        db: AsyncSession,
        registry: AssignableRegistry | None = None,
        windows: Sequence[int] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.registry = registry or default_registry
        self.windows = list(windows or settings.features.analytics_windows)
        self.clock = clock

    async def track(self, identifier: str) -> list[AnalyticsRecord]:
        """
        Build one record per assignable type holding the feature.

        Unknown features yield an empty list. Assignable types missing from
        the registry are logged and skipped.
        """
        feature = await FeatureResolver(self.db).find(identifier)
        if feature is None:
            return []

        records = []
        for assignable_type in await self._assignable_types(feature):
            capability = self.registry.resolve(assignable_type)
            if capability is None:
                logger.warning(
                    "invalid_assignable_type",
                    assignable=assignable_type,
                    feature=feature.identifier,
                )
                continue

            record = AnalyticsRecord(assignable=assignable_type, feature=feature.identifier)
            await self._fill_counts(record, capability, feature)
            await self._fill_activity(record, feature, assignable_type)
            records.append(record)

        return records

    async def _assignable_types(self, feature: Feature) -> list[str]:
        stmt = (
            select(FeatureAssignment.assignable_type)
            .where(FeatureAssignment.feature_id == feature.id)
            .distinct()
            .order_by(FeatureAssignment.assignable_type)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _fill_counts(
        self,
        record: AnalyticsRecord,
        capability: AssignableCapability,
        feature: Feature,
    ) -> None:
        record.enabled_count = await capability.count_with_features(self.db, [feature.id])
        record.disabled_count = await capability.count_without_features(self.db, [feature.id])
        record.total = record.enabled_count + record.disabled_count
        record.percentage_enabled = calculate_percentage(record.enabled_count, record.total)
        record.percentage_disabled = calculate_percentage(record.disabled_count, record.total)

    async def _fill_activity(
        self,
        record: AnalyticsRecord,
        feature: Feature,
        assignable_type: str,
    ) -> None:
        now = self.clock()
        created_at = FeatureAssignment.created_at
        window_columns = [
            func.coalesce(
                func.sum(case((created_at.between(days_ago(days, now), now), 1), else_=0)),
                0,
            )
            for days in self.windows
        ]
        stmt = select(func.min(created_at), func.max(created_at), *window_columns).where(
            FeatureAssignment.feature_id == feature.id,
            FeatureAssignment.assignable_type == assignable_type,
        )
        row = (await self.db.execute(stmt)).one()

        first_created, last_created, *counts = row
        record.first_created = to_utc(first_created) if first_created else None
        record.last_created = to_utc(last_created) if last_created else None
        record.windows = {days: int(count) for days, count in zip(self.windows, counts)}
