"""
Feature Resolver - identifiers + filters -> Feature rows.

The resolver never raises for an empty result; deciding whether "nothing
matched" is an error belongs to the caller.
"""

from typing import Any, Iterable

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from togglekit.core.exceptions import FeatureNotFound

from .interfaces import FeatureFilters, is_blank
from .models import Feature, FeatureAssignment, FeatureStatus


def normalize_identifiers(identifiers: str | Iterable[Any] | None) -> list[str]:
    """Wrap a single identifier in a list and stringify the rest."""
    if identifiers is None:
        return []
    if isinstance(identifiers, (str, bytes)):
        return [identifiers.decode() if isinstance(identifiers, bytes) else identifiers]
    return [str(i) for i in identifiers]


class FeatureResolver:
    """
    Query features by identifier and scope filters.

    Usage:
        resolver = FeatureResolver(db)
        features = await resolver.resolve(["dark_mode"], group="beta", env="prod")
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============================================================
    # RESOLUTION
    # ============================================================

    def resolve_query(
        self,
        identifiers: str | Iterable[Any] | None = None,
        filters: FeatureFilters | None = None,
    ) -> Select:
        """Build the conjunctive feature query without executing it."""
        stmt = select(Feature)
        identifiers = normalize_identifiers(identifiers)
        filters = filters or FeatureFilters()

        if identifiers:
            stmt = stmt.where(Feature.identifier.in_(identifiers))
        if filters.group is not None:
            stmt = stmt.where(Feature.group == filters.group)
        if filters.environment is not None:
            stmt = stmt.where(Feature.environment == filters.environment)
        if filters.tenant_id is not None:
            stmt = stmt.where(Feature.tenant_id == filters.tenant_id)
        if filters.status is not None:
            stmt = stmt.where(Feature.status == filters.status)

        return stmt.order_by(Feature.id)

    async def resolve(
        self,
        identifiers: str | Iterable[Any] | None = None,
        filters: FeatureFilters | None = None,
        **filter_kwargs: Any,
    ) -> list[Feature]:
        """
        Resolve identifiers and filters into Feature rows.

        Args:
            identifiers: One identifier or a list (IN semantics)
            filters: Pre-built FeatureFilters
            **filter_kwargs: group/role, environment/env, tenant_id, status

        Returns:
            Matching features, possibly empty
        """
        if filters is None:
            filters = FeatureFilters.from_kwargs(**filter_kwargs)
        result = await self.db.execute(self.resolve_query(identifiers, filters))
        return list(result.scalars().all())

    async def get(self, identifier: str) -> Feature:
        """
        Get one feature by identifier.

        Raises:
            FeatureNotFound: No feature has this identifier
        """
        if is_blank(identifier):
            raise FeatureNotFound(f"Feature '{identifier}' not found")
        stmt = select(Feature).where(Feature.identifier == str(identifier))
        result = await self.db.execute(stmt)
        feature = result.scalar_one_or_none()
        if feature is None:
            raise FeatureNotFound(f"Feature '{identifier}' not found")
        return feature

    async def find(self, identifier: str) -> Feature | None:
        """Get one feature by identifier, or None."""
        try:
            return await self.get(identifier)
        except FeatureNotFound:
            return None

    # ============================================================
    # SCOPES
    # ============================================================

    async def all(self) -> list[Feature]:
        return await self._all(select(Feature))

    async def for_group(self, group: str) -> list[Feature]:
        return await self._all(select(Feature).where(Feature.group == group))

    async def without_group(self) -> list[Feature]:
        return await self._all(select(Feature).where(Feature.group.is_(None)))

    async def for_environment(self, environment: str) -> list[Feature]:
        return await self._all(select(Feature).where(Feature.environment == environment))

    async def without_environment(self) -> list[Feature]:
        return await self._all(select(Feature).where(Feature.environment.is_(None)))

    async def for_tenant(self, tenant_id: str) -> list[Feature]:
        return await self._all(select(Feature).where(Feature.tenant_id == tenant_id))

    async def without_tenant(self) -> list[Feature]:
        return await self._all(select(Feature).where(Feature.tenant_id.is_(None)))

    async def with_status(self, status: FeatureStatus | int | str) -> list[Feature]:
        status = FeatureStatus.coerce(status)
        return await self._all(select(Feature).where(Feature.status == status))

    async def assignments_for_type(self, assignable_type: str) -> list[FeatureAssignment]:
        """All assignments held by one assignable type."""
        stmt = (
            select(FeatureAssignment)
            .where(FeatureAssignment.assignable_type == assignable_type)
            .order_by(FeatureAssignment.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # Aliases
    for_role = for_group
    without_role = without_group
    for_env = for_environment
    without_env = without_environment

    async def _all(self, stmt: Select) -> list[Feature]:
        result = await self.db.execute(stmt.order_by(Feature.id))
        return list(result.scalars().all())
