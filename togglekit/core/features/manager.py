"""
Feature Manager - create, update, destroy and toggle single features.
"""

from typing import Any

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from togglekit.core.exceptions import InvalidFeatureAttribute

from .models import Feature, FeatureAssignment, FeatureStatus
from .resolver import FeatureResolver

logger = structlog.get_logger()

EDITABLE_ATTRIBUTES = frozenset(
    {"name", "identifier", "description", "group", "environment", "tenant_id", "status"}
)


class FeatureManager:
    """
    Thin management layer over the features table.

    Changes are flushed, never committed; the caller owns the unit of work.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.resolver = FeatureResolver(db)

    async def create(self, **attrs: Any) -> Feature:
        """
        Create a feature.

        Raises:
            InvalidFeatureAttribute: Unknown attribute name
        """
        self._check_attributes(attrs)
        if "status" in attrs:
            attrs["status"] = FeatureStatus.coerce(attrs["status"])

        feature = Feature(**attrs)
        self.db.add(feature)
        await self.db.flush()
        await self.db.refresh(feature)

        logger.info("feature_created", identifier=feature.identifier)
        return feature

    async def get(self, identifier: str) -> Feature:
        return await self.resolver.get(identifier)

    async def update(self, identifier: str, **attrs: Any) -> Feature:
        """
        Update a feature's attributes.

        Raises:
            FeatureNotFound: Unknown identifier
            InvalidFeatureAttribute: Unknown attribute name
        """
        self._check_attributes(attrs)
        feature = await self.get(identifier)

        for field, value in attrs.items():
            if field == "status":
                value = FeatureStatus.coerce(value)
            setattr(feature, field, value)

        await self.db.flush()
        await self.db.refresh(feature)
        return feature

    async def destroy(self, identifier: str) -> Feature:
        """Delete a feature and every assignment of it."""
        feature = await self.get(identifier)

        await self.db.execute(
            delete(FeatureAssignment)
            .where(FeatureAssignment.feature_id == feature.id)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.delete(feature)
        await self.db.flush()

        logger.info("feature_destroyed", identifier=feature.identifier)
        return feature

    async def toggle(self, identifier: str) -> Feature:
        """Flip the feature between active and inactive."""
        feature = await self.get(identifier)
        status = FeatureStatus.INACTIVE if feature.is_active else FeatureStatus.ACTIVE
        return await self._set_status(feature, status)

    async def activate(self, identifier: str) -> Feature:
        return await self._set_status(await self.get(identifier), FeatureStatus.ACTIVE)

    async def inactivate(self, identifier: str) -> Feature:
        return await self._set_status(await self.get(identifier), FeatureStatus.INACTIVE)

    async def _set_status(self, feature: Feature, status: FeatureStatus) -> Feature:
        feature.status = status
        await self.db.flush()
        return feature

    def _check_attributes(self, attrs: dict[str, Any]) -> None:
        for attr in attrs:
            if attr not in EDITABLE_ATTRIBUTES:
                raise InvalidFeatureAttribute(attr)
