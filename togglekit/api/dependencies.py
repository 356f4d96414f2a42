"""
FastAPI dependencies.

Hosts mounting the router override `get_db` (and, when they keep their own
assignable registry, `get_toggle_service`) through
`app.dependency_overrides`.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from togglekit.core.features import FeatureToggleService
from togglekit.models.database import async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_toggle_service(db: AsyncSession = Depends(get_db)) -> FeatureToggleService:
    """Get feature toggle service instance."""
    return FeatureToggleService(db)


# Type alias for cleaner injection
ToggleService = Annotated[FeatureToggleService, Depends(get_toggle_service)]
