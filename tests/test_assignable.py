"""
Tests for per-assignable feature operations and population queries.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from togglekit.core.exceptions import (
    DependencyMissing,
    FeatureNotFound,
    UnknownAssignableType,
)
from togglekit.core.features import FeatureAssignableManager, FeatureStatus

from hosts import User, count_assignments, registry


@pytest.mark.asyncio
async def test_add_feature_is_idempotent(db: AsyncSession, feature_factory, user_factory, index):
    await feature_factory.create("Dark Mode")
    user = await user_factory.create()
    manager = FeatureAssignableManager(db, user, index=index)

    assert await manager.add_feature("dark_mode") is True
    assert await manager.add_feature("dark_mode") is False

    assert await count_assignments(db, assignable_type="User", assignable_id=user.id) == 1


@pytest.mark.asyncio
async def test_remove_absent_feature_is_noop(db: AsyncSession, feature_factory, user_factory, index):
    await feature_factory.create("Dark Mode")
    user = await user_factory.create()
    manager = FeatureAssignableManager(db, user, index=index)

    assert await manager.remove_feature("dark_mode") is False

    await manager.add_feature("dark_mode")
    assert await manager.remove_feature("dark_mode") is True
    assert not await manager.has_direct_feature("dark_mode")


@pytest.mark.asyncio
async def test_unknown_identifier_raises(db: AsyncSession, user_factory, index):
    user = await user_factory.create()
    manager = FeatureAssignableManager(db, user, index=index)

    with pytest.raises(FeatureNotFound):
        await manager.add_feature("ghost_feature")


@pytest.mark.asyncio
async def test_clear_features(db: AsyncSession, feature_factory, user_factory, index):
    await feature_factory.create("Dark Mode")
    await feature_factory.create("Search")
    user = await user_factory.create()
    other = await user_factory.create()
    manager = FeatureAssignableManager(db, user, index=index)
    await manager.add_features(["dark_mode", "search"])
    await FeatureAssignableManager(db, other, index=index).add_feature("search")

    assert await manager.clear_features() == 2
    assert await manager.features() == []
    assert await count_assignments(db, assignable_id=other.id) == 1


@pytest.mark.asyncio
async def test_same_id_different_types_are_separate(
    db: AsyncSession, feature_factory, user_factory, account_factory, index
):
    await feature_factory.create("Dark Mode")
    user = await user_factory.create()
    account = await account_factory.create()
    assert user.id == account.id

    await FeatureAssignableManager(db, user, index=index).add_feature("dark_mode")

    assert not await FeatureAssignableManager(db, account, index=index).has_direct_feature("dark_mode")
    assert await count_assignments(db, assignable_type="Org") == 0


# ============ Direct vs effective ============


@pytest.mark.asyncio
async def test_effective_feature_through_dependents(
    db: AsyncSession, feature_factory, user_factory, index
):
    """advanced_reports -> reports -> dashboard"""
    await feature_factory.create("Dashboard")
    await feature_factory.create("Reports")
    await feature_factory.create("Advanced Reports")
    user = await user_factory.create()
    manager = FeatureAssignableManager(db, user, index=index)

    await manager.add_feature("advanced_reports")

    assert not await manager.has_direct_feature("dashboard")
    assert await manager.has_effective_feature("dashboard")
    assert await manager.has_effective_feature("reports")
    assert await manager.has_effective_feature("advanced_reports")


@pytest.mark.asyncio
async def test_effective_feature_ignores_inactive(
    db: AsyncSession, feature_factory, user_factory, index
):
    await feature_factory.create("Dashboard")
    await feature_factory.create("Reports", status=FeatureStatus.INACTIVE)
    user = await user_factory.create()
    manager = FeatureAssignableManager(db, user, index=index)

    await manager.add_feature("reports")

    assert await manager.has_direct_feature("reports")
    assert not await manager.has_effective_feature("reports")
    assert not await manager.has_effective_feature("dashboard")


@pytest.mark.asyncio
async def test_missing_dependencies(db: AsyncSession, feature_factory, user_factory, index):
    await feature_factory.create("Dashboard")
    await feature_factory.create("Reports")
    await feature_factory.create("Advanced Reports")
    user = await user_factory.create()
    manager = FeatureAssignableManager(db, user, index=index)

    await manager.add_feature("reports")

    assert await manager.missing_dependencies("advanced_reports") == ["dashboard"]
    with pytest.raises(DependencyMissing) as exc_info:
        await manager.ensure_dependencies("advanced_reports")
    assert exc_info.value.required == "dashboard"

    await manager.add_feature("dashboard")
    await manager.ensure_dependencies("advanced_reports")


# ============ Population queries ============


@pytest.mark.asyncio
async def test_with_and_without_partition_population(
    db: AsyncSession, feature_factory, user_factory, index
):
    dark_mode = await feature_factory.create("Dark Mode")
    search = await feature_factory.create("Search")
    users = await user_factory.create_batch(6)
    await FeatureAssignableManager(db, users[0], index=index).add_features(["dark_mode", "search"])
    await FeatureAssignableManager(db, users[1], index=index).add_feature("dark_mode")
    await FeatureAssignableManager(db, users[2], index=index).add_feature("search")

    capability = registry.get(User)
    feature_ids = [dark_mode.id, search.id]
    with_ids = {u.id for u in await capability.with_features(db, feature_ids)}
    without_ids = {u.id for u in await capability.without_features(db, feature_ids)}

    assert with_ids == {users[0].id, users[1].id, users[2].id}
    assert with_ids.isdisjoint(without_ids)
    assert with_ids | without_ids == {u.id for u in users}
    assert await capability.count_with_features(db, feature_ids) == 3
    assert await capability.count(db) == 6


@pytest.mark.asyncio
async def test_other_types_do_not_leak_into_population(
    db: AsyncSession, feature_factory, user_factory, account_factory, index
):
    dark_mode = await feature_factory.create("Dark Mode")
    await user_factory.create()
    account = await account_factory.create()
    await FeatureAssignableManager(db, account, index=index).add_feature("dark_mode")

    capability = registry.get("User")

    assert await capability.with_features(db, [dark_mode.id]) == []
    assert await capability.count_without_features(db, [dark_mode.id]) == 1


def test_registry_lookup():
    assert registry.get("Org").name == "Org"
    assert "User" in registry
    assert registry.resolve("Ghost") is None

    with pytest.raises(UnknownAssignableType):
        registry.get("Ghost")


def test_registry_rejects_duplicate_names():
    from togglekit.core.features import AssignableRegistry, ModelAssignable

    local = AssignableRegistry()
    local.register(User)

    with pytest.raises(ValueError):
        local.add(ModelAssignable(User))
