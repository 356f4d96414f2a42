"""
Pytest fixtures for testing.

Provides:
- Async SQLite session (aiosqlite, in-memory) with SAVEPOINT support
- Host models registered as assignables
- Factory fixtures for features, users and accounts
- Test client for the admin router
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from togglekit.api import router, get_toggle_service
from togglekit.core.features import (
    DependencyIndex,
    Feature,
    FeatureStatus,
    FeatureToggleService,
)
from togglekit.models.base import Base
from togglekit.models.database import enable_sqlite_savepoints

from hosts import DEPENDENCIES, Account, User, registry


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============ Database ============


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Database session; anything left uncommitted is rolled back."""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def index() -> DependencyIndex:
    return DependencyIndex.from_mapping(DEPENDENCIES)


@pytest.fixture
def service(db: AsyncSession, index: DependencyIndex) -> FeatureToggleService:
    return FeatureToggleService(db, registry=registry, index=index)


@pytest_asyncio.fixture(scope="function")
async def client(service: FeatureToggleService) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the toggle service override."""
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_toggle_service] = lambda: service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ============ Factory Fixtures ============


class FeatureFactory:
    """Factory for creating test features."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        name: str,
        identifier: str | None = None,
        status: FeatureStatus = FeatureStatus.ACTIVE,
        **attrs,
    ) -> Feature:
        feature = Feature(name=name, identifier=identifier, status=status, **attrs)
        self.db.add(feature)
        await self.db.commit()
        return feature


class AssignableFactory:
    """Factory for creating host rows of one model."""

    def __init__(self, db: AsyncSession, model: type):
        self.db = db
        self.model = model

    async def create(self, name: str = "Test") -> Base:
        row = self.model(name=name)
        self.db.add(row)
        await self.db.commit()
        return row

    async def create_batch(self, count: int) -> list:
        rows = [self.model(name=f"{self.model.__name__} {i}") for i in range(count)]
        self.db.add_all(rows)
        await self.db.commit()
        return rows


@pytest_asyncio.fixture
async def feature_factory(db: AsyncSession) -> FeatureFactory:
    return FeatureFactory(db)


@pytest_asyncio.fixture
async def user_factory(db: AsyncSession) -> AssignableFactory:
    return AssignableFactory(db, User)


@pytest_asyncio.fixture
async def account_factory(db: AsyncSession) -> AssignableFactory:
    return AssignableFactory(db, Account)
