"""
Tests for the admin API routes.
"""

import pytest
from httpx import AsyncClient

from togglekit.core.features import FeatureStatus


@pytest.mark.asyncio
async def test_list_features(client: AsyncClient, feature_factory):
    await feature_factory.create("Dark Mode", group="beta")
    await feature_factory.create("Search", status=FeatureStatus.INACTIVE)

    response = await client.get("/features", params={"group": "beta"})

    assert response.status_code == 200
    data = response.json()
    assert [f["identifier"] for f in data] == ["dark_mode"]
    assert data[0]["status"] == "active"


@pytest.mark.asyncio
async def test_list_features_by_identifier_and_status(client: AsyncClient, feature_factory):
    await feature_factory.create("Dark Mode")
    await feature_factory.create("Search", status=FeatureStatus.INACTIVE)

    response = await client.get(
        "/features",
        params={"identifier": ["dark_mode", "search"], "status": "inactive"},
    )

    assert response.status_code == 200
    assert [f["identifier"] for f in response.json()] == ["search"]


@pytest.mark.asyncio
async def test_list_features_invalid_status(client: AsyncClient):
    response = await client.get("/features", params={"status": "sideways"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_bulk_enable(client: AsyncClient, feature_factory, user_factory):
    await feature_factory.create("Dark Mode")
    await user_factory.create_batch(4)

    response = await client.post(
        "/features/bulk/User/enable",
        json={"identifiers": ["dark_mode"], "percentage": 50},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["direction"] == "enable"
    assert data["candidates"] == 4
    assert data["selected"] == 2
    assert data["written"] == 2


@pytest.mark.asyncio
async def test_bulk_disable_unknown_feature(client: AsyncClient, user_factory):
    await user_factory.create()

    response = await client.post(
        "/features/bulk/User/disable",
        json={"identifiers": ["ghost_feature"]},
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_bulk_unknown_type(client: AsyncClient, feature_factory):
    await feature_factory.create("Dark Mode")

    response = await client.post(
        "/features/bulk/Ghost/enable",
        json={"identifiers": ["dark_mode"]},
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_bulk_nothing_to_toggle(client: AsyncClient, feature_factory, user_factory):
    await feature_factory.create("Dark Mode")
    await user_factory.create()

    response = await client.post(
        "/features/bulk/User/disable",
        json={"identifiers": ["dark_mode"]},
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_bulk_rejects_bad_percentage(client: AsyncClient):
    response = await client.post(
        "/features/bulk/User/enable",
        json={"identifiers": ["dark_mode"], "percentage": 150},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_analytics(client: AsyncClient, service, feature_factory, user_factory):
    await feature_factory.create("Dark Mode")
    users = await user_factory.create_batch(5)
    for user in users[:2]:
        await service.for_assignable(user).add_feature("dark_mode")

    response = await client.get("/features/dark_mode/analytics")

    assert response.status_code == 200
    [record] = response.json()
    assert record["assignable"] == "User"
    assert record["total"] == 5
    assert record["percentage_enabled"] == "40.0%"
    assert record["past_7"] == 2


@pytest.mark.asyncio
async def test_dependencies(client: AsyncClient):
    response = await client.get("/features/reports/dependencies")

    assert response.status_code == 200
    assert response.json() == {
        "identifier": "reports",
        "requires": ["dashboard"],
        "required_by": ["advanced_reports"],
    }
