"""
Bulk Toggler - enable/disable a feature set across a population.

Flow:
1. Resolve features (identifiers + scope filters)
2. Candidates: enable -> members without the features,
   disable -> members with them
3. Optional percentage sampling of the candidates
4. One existence query for (assignable_id, feature_id) pairs
5. One bulk insert of the missing pairs, or one bulk delete of the
   existing ones

Steps 1-5 share one transaction (a SAVEPOINT when the session already has
one open), so a failed write never leaves partial rows behind.
"""

import math
import random
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Iterable, Sequence, Type

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from togglekit.core.exceptions import (
    AssignablesNotFound,
    BulkToggleFailed,
    FeatureNotFound,
)

from .interfaces import AssignableCapability, FeatureFilters, ToggleDirection
from .models import Feature, FeatureAssignment
from .registry import AssignableRegistry, assignables as default_registry
from .resolver import FeatureResolver, normalize_identifiers

logger = structlog.get_logger()

# Filters that narrow the features; "percentage" narrows the population.
ALLOWED_ASSIGNABLE_FILTERS = ("group", "role", "environment", "env", "tenant_id")
ALLOWED_FILTERS = ALLOWED_ASSIGNABLE_FILTERS + ("percentage",)


def sample_size(population: int, percentage: float) -> int:
    """round(population * percentage / 100), halves rounded up."""
    return math.floor(population * float(percentage) / 100 + 0.5)


def sample_assignables(
    candidates: Sequence[Any],
    percentage: float,
    rng: random.Random | None = None,
) -> list[Any]:
    """
    Uniform sample without replacement.

    Raises:
        ValueError: percentage outside 0..100
    """
    percentage = float(percentage)
    if not 0 <= percentage <= 100:
        raise ValueError(f"percentage must be between 0 and 100, got {percentage}")
    count = sample_size(len(candidates), percentage)
    return (rng or random.SystemRandom()).sample(list(candidates), count)


@dataclass
class ToggleResult:
    """What one bulk toggle did."""
    direction: ToggleDirection
    assignable_type: str
    identifiers: list[str]
    feature_ids: list[int] = field(default_factory=list)
    candidates: int = 0
    selected: int = 0
    written: int = 0


class BulkToggler:
    """
    Bulk enable/disable features for one assignable type.

    Usage:
        toggler = BulkToggler(db, User)
        await toggler.enable(["dark_mode", "reports"], group="beta", percentage=25)
        await toggler.disable("dark_mode", env="production")
    """

    def __init__(
        self,
        db: AsyncSession,
        assignable_type: "str | Type[Any]",
        registry: AssignableRegistry | None = None,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.registry = registry or default_registry
        self.capability: AssignableCapability = self.registry.get(assignable_type)
        self.rng = rng or random.SystemRandom()

    @property
    def assignable_type(self) -> str:
        return self.capability.name

    # ============================================================
    # PUBLIC API
    # ============================================================

    async def enable(self, identifiers: str | Iterable[str], **filters: Any) -> bool:
        """
        Enable features for every matching assignable that lacks them.

        Args:
            identifiers: Feature identifier or list of identifiers
            **filters: group/role, environment/env, tenant_id, percentage

        Raises:
            FeatureNotFound: No feature matched
            AssignablesNotFound: Nobody is missing the features
            BulkToggleFailed: The write failed and was rolled back
        """
        await self.toggle(ToggleDirection.ENABLE, identifiers, **filters)
        return True

    async def disable(self, identifiers: str | Iterable[str], **filters: Any) -> bool:
        """Disable features for every matching assignable that holds them."""
        await self.toggle(ToggleDirection.DISABLE, identifiers, **filters)
        return True

    async def toggle(
        self,
        direction: ToggleDirection | str,
        identifiers: str | Iterable[str],
        **filters: Any,
    ) -> ToggleResult:
        direction = ToggleDirection(direction)
        unknown = set(filters) - set(ALLOWED_FILTERS)
        if unknown:
            raise TypeError(f"Unexpected bulk toggle filters: {sorted(unknown)}")

        result = ToggleResult(
            direction=direction,
            assignable_type=self.assignable_type,
            identifiers=normalize_identifiers(identifiers),
        )
        logger.debug(
            "bulk_toggle_started",
            direction=direction.value,
            assignable_type=result.assignable_type,
            identifiers=result.identifiers,
            filters=filters,
        )

        async with self._transaction():
            await self._toggle(result, filters)

        logger.info(
            "bulk_toggle_completed",
            direction=direction.value,
            assignable_type=result.assignable_type,
            identifiers=result.identifiers,
            candidates=result.candidates,
            selected=result.selected,
            rows=result.written,
        )
        return result

    # ============================================================
    # STEPS
    # ============================================================

    async def _toggle(self, result: ToggleResult, filters: dict[str, Any]) -> None:
        features = await self._get_features(result.identifiers, filters)
        result.feature_ids = [feature.id for feature in features]

        candidates = await self._get_assignables(result.direction, result.feature_ids)
        result.candidates = len(candidates)

        percentage = filters.get("percentage")
        if percentage is not None:
            candidates = sample_assignables(candidates, percentage, self.rng)
        result.selected = len(candidates)

        try:
            assignable_ids = [candidate.id for candidate in candidates]
            existing = await self._existing_pairs(assignable_ids, result.feature_ids)

            if result.direction is ToggleDirection.ENABLE:
                result.written = await self._enable_flow(assignable_ids, features, existing)
            else:
                result.written = await self._disable_flow(existing)
        except SQLAlchemyError as e:
            logger.error(
                "bulk_toggle_failed",
                direction=result.direction.value,
                assignable_type=result.assignable_type,
                identifiers=result.identifiers,
                error=str(e),
            )
            raise BulkToggleFailed(
                f"Bulk toggle {result.direction.value} failed for {result.assignable_type} "
                f"with identifiers {result.identifiers!r}",
                e,
            ) from e

    async def _get_features(self, identifiers: list[str], filters: dict[str, Any]) -> list[Feature]:
        scope = {key: filters[key] for key in ALLOWED_ASSIGNABLE_FILTERS if key in filters}
        features = await FeatureResolver(self.db).resolve(
            identifiers,
            FeatureFilters.from_kwargs(**scope).scope_only(),
        )
        if not features:
            raise FeatureNotFound()
        return features

    async def _get_assignables(self, direction: ToggleDirection, feature_ids: list[int]) -> list[Any]:
        if direction is ToggleDirection.ENABLE:
            candidates = await self.capability.without_features(self.db, feature_ids)
        else:
            candidates = await self.capability.with_features(self.db, feature_ids)

        if not candidates:
            raise AssignablesNotFound(self.assignable_type)
        return candidates

    async def _existing_pairs(
        self,
        assignable_ids: list[int],
        feature_ids: list[int],
    ) -> set[tuple[int, int]]:
        if not assignable_ids:
            return set()
        stmt = select(FeatureAssignment.assignable_id, FeatureAssignment.feature_id).where(
            FeatureAssignment.assignable_type == self.assignable_type,
            FeatureAssignment.assignable_id.in_(assignable_ids),
            FeatureAssignment.feature_id.in_(feature_ids),
        )
        result = await self.db.execute(stmt)
        return {(row.assignable_id, row.feature_id) for row in result}

    async def _enable_flow(
        self,
        assignable_ids: list[int],
        features: list[Feature],
        existing: set[tuple[int, int]],
    ) -> int:
        rows = [
            {
                "assignable_id": assignable_id,
                "assignable_type": self.assignable_type,
                "feature_id": feature.id,
            }
            for assignable_id in assignable_ids
            for feature in features
            if (assignable_id, feature.id) not in existing
        ]
        if not rows:
            return 0

        await self.db.execute(self._insert_statement(), rows)
        await self.db.flush()
        return len(rows)

    async def _disable_flow(self, existing: set[tuple[int, int]]) -> int:
        if not existing:
            return 0

        # Inside the transaction the cross product of these ids holds no
        # assignment that is missing from `existing`.
        assignable_ids = sorted({assignable_id for assignable_id, _ in existing})
        feature_ids = sorted({feature_id for _, feature_id in existing})
        stmt = (
            delete(FeatureAssignment)
            .where(
                FeatureAssignment.assignable_type == self.assignable_type,
                FeatureAssignment.assignable_id.in_(assignable_ids),
                FeatureAssignment.feature_id.in_(feature_ids),
            )
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(stmt)
        await self.db.flush()
        return len(existing)

    # ============================================================
    # HELPERS
    # ============================================================

    def _insert_statement(self):
        """INSERT that skips rows colliding with the uniqueness constraint."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(FeatureAssignment).on_conflict_do_nothing(
                index_elements=["feature_id", "assignable_type", "assignable_id"],
            )
        if dialect == "sqlite":
            return sqlite_insert(FeatureAssignment).on_conflict_do_nothing()
        return insert(FeatureAssignment)

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        if self.db.in_transaction():
            async with self.db.begin_nested():
                yield
        else:
            async with self.db.begin():
                yield
