"""
Feature Toggle Service - one entry point over the feature subsystems.

Usage:
    service = FeatureToggleService(db)

    await service.bulk_enable("User", ["dark_mode"], group="beta", percentage=25)
    await service.bulk_disable("User", "dark_mode", env="production")
    records = await service.track("dark_mode")

    user_features = service.for_assignable(user)
    await user_features.has_effective_feature("reports")
"""

import random
from typing import Any, Iterable, Type

from sqlalchemy.ext.asyncio import AsyncSession

from .analytics import FeatureAnalytics
from .assignable import AssignableMixin, FeatureAssignableManager
from .dependency_index import DependencyIndex, get_dependency_index
from .interfaces import AnalyticsRecord
from .manager import FeatureManager
from .models import Feature
from .registry import AssignableRegistry, assignables as default_registry
from .resolver import FeatureResolver
from .toggler import BulkToggler, ToggleResult


class FeatureToggleService:
    """Facade used by the API layer and by host applications."""

    def __init__(
        self,
        db: AsyncSession,
        registry: AssignableRegistry | None = None,
        index: DependencyIndex | None = None,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.registry = registry or default_registry
        self.index = index or get_dependency_index()
        self.rng = rng
        self.resolver = FeatureResolver(db)
        self.manager = FeatureManager(db)

    # ============================================================
    # FEATURES
    # ============================================================

    async def resolve_features(
        self,
        identifiers: str | Iterable[str] | None = None,
        **filters: Any,
    ) -> list[Feature]:
        return await self.resolver.resolve(identifiers, **filters)

    async def get_feature(self, identifier: str) -> Feature:
        return await self.manager.get(identifier)

    async def create_feature(self, **attrs: Any) -> Feature:
        return await self.manager.create(**attrs)

    async def update_feature(self, identifier: str, **attrs: Any) -> Feature:
        return await self.manager.update(identifier, **attrs)

    async def destroy_feature(self, identifier: str) -> Feature:
        return await self.manager.destroy(identifier)

    async def toggle_feature(self, identifier: str) -> Feature:
        return await self.manager.toggle(identifier)

    async def activate_feature(self, identifier: str) -> Feature:
        return await self.manager.activate(identifier)

    async def inactivate_feature(self, identifier: str) -> Feature:
        return await self.manager.inactivate(identifier)

    # ============================================================
    # BULK
    # ============================================================

    def toggler(self, assignable_type: "str | Type[AssignableMixin]") -> BulkToggler:
        return BulkToggler(self.db, assignable_type, registry=self.registry, rng=self.rng)

    async def bulk_enable(
        self,
        assignable_type: "str | Type[AssignableMixin]",
        identifiers: str | Iterable[str],
        **filters: Any,
    ) -> ToggleResult:
        return await self.toggler(assignable_type).toggle("enable", identifiers, **filters)

    async def bulk_disable(
        self,
        assignable_type: "str | Type[AssignableMixin]",
        identifiers: str | Iterable[str],
        **filters: Any,
    ) -> ToggleResult:
        return await self.toggler(assignable_type).toggle("disable", identifiers, **filters)

    # ============================================================
    # ANALYTICS / DEPENDENCIES
    # ============================================================

    async def track(self, identifier: str) -> list[AnalyticsRecord]:
        return await FeatureAnalytics(self.db, registry=self.registry).track(identifier)

    def dependencies_for(self, identifier: str) -> list[str]:
        return list(self.index.ordered_dependencies_for(identifier))

    def dependents_of(self, identifier: str) -> list[str]:
        return sorted(self.index.dependents_of(identifier))

    def for_assignable(self, assignable: AssignableMixin) -> FeatureAssignableManager:
        """Per-member operations; the assignable's type must be registered."""
        self.registry.ref(assignable)
        return FeatureAssignableManager(self.db, assignable, index=self.index)
