"""
Tests for feature usage analytics.
"""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from togglekit.core.features import (
    AnalyticsRecord,
    FeatureAnalytics,
    FeatureAssignableManager,
    FeatureAssignment,
    calculate_percentage,
)
from togglekit.utils.timezone import utc_now

from hosts import registry


def test_calculate_percentage():
    assert calculate_percentage(2, 5) == "40.0%"
    assert calculate_percentage(1, 3) == "33.33%"
    assert calculate_percentage(0, 0) == "0.00%"


def test_record_flattens_windows():
    record = AnalyticsRecord(assignable="User", feature="dark_mode", windows={7: 1, 30: 4})

    data = record.to_dict()

    assert data["past_7"] == 1
    assert data["past_30"] == 4
    assert "windows" not in data


@pytest.mark.asyncio
async def test_dark_mode_usage(db: AsyncSession, feature_factory, user_factory, index):
    await feature_factory.create("Dark Mode")
    users = await user_factory.create_batch(5)
    for user in users[:2]:
        await FeatureAssignableManager(db, user, index=index).add_feature("dark_mode")
    await db.commit()

    records = await FeatureAnalytics(db, registry=registry).track("dark_mode")

    assert len(records) == 1
    record = records[0]
    assert record.assignable == "User"
    assert record.feature == "dark_mode"
    assert record.total == 5
    assert record.enabled_count == 2
    assert record.disabled_count == 3
    assert record.percentage_enabled == "40.0%"
    assert record.percentage_disabled == "60.0%"
    assert record.first_created <= record.last_created
    assert record.windows == {7: 2, 14: 2, 30: 2}


@pytest.mark.asyncio
async def test_activity_windows(db: AsyncSession, feature_factory, user_factory):
    feature = await feature_factory.create("Dark Mode")
    users = await user_factory.create_batch(4)
    now = utc_now()
    for user, age in zip(users, [1, 10, 20, 45]):
        db.add(
            FeatureAssignment(
                feature_id=feature.id,
                assignable_type="User",
                assignable_id=user.id,
                created_at=now - timedelta(days=age),
            )
        )
    await db.commit()

    analytics = FeatureAnalytics(db, registry=registry, clock=lambda: now)
    [record] = await analytics.track("dark_mode")

    assert record.windows == {7: 1, 14: 2, 30: 3}
    assert record.to_dict()["past_14"] == 2
    assert (now - record.first_created).days == 45
    assert (now - record.last_created).days == 1


@pytest.mark.asyncio
async def test_one_record_per_assignable_type(
    db: AsyncSession, feature_factory, user_factory, account_factory, index
):
    await feature_factory.create("Dark Mode")
    user = await user_factory.create()
    await account_factory.create_batch(4)
    await FeatureAssignableManager(db, user, index=index).add_feature("dark_mode")
    await db.commit()

    records = await FeatureAnalytics(db, registry=registry).track("dark_mode")

    assert [r.assignable for r in records] == ["User"]


@pytest.mark.asyncio
async def test_unregistered_type_is_skipped(db: AsyncSession, feature_factory, user_factory, index):
    feature = await feature_factory.create("Dark Mode")
    user = await user_factory.create()
    await FeatureAssignableManager(db, user, index=index).add_feature("dark_mode")
    db.add(FeatureAssignment(feature_id=feature.id, assignable_type="Ghost", assignable_id=99))
    await db.commit()

    records = await FeatureAnalytics(db, registry=registry).track("dark_mode")

    assert [r.assignable for r in records] == ["User"]


@pytest.mark.asyncio
async def test_unknown_feature_yields_nothing(db: AsyncSession):
    assert await FeatureAnalytics(db, registry=registry).track("ghost_feature") == []


@pytest.mark.asyncio
async def test_unassigned_feature_yields_nothing(db: AsyncSession, feature_factory, user_factory):
    await feature_factory.create("Dark Mode")
    await user_factory.create_batch(3)

    assert await FeatureAnalytics(db, registry=registry).track("dark_mode") == []
