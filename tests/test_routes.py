from __future__ import annotations

from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from conftest import make_permission
from rolegraph.core.database.engine import get_db
from rolegraph.features.permissions.store import PermissionStore
from rolegraph.main import app


@pytest_asyncio.fixture
async def async_client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def _create(client: AsyncClient, **payload: Any) -> dict:
    response = await client.post("/roles", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_create_and_get_role(async_client: AsyncClient) -> None:
    created = await _create(async_client, owner="acme", name="viewer", users=["acme/bob"])
    assert created["owner"] == "acme"
    assert created["users"] == ["acme/bob"]

    response = await async_client.get("/roles/acme/viewer")
    assert response.status_code == 200
    assert response.json()["name"] == "viewer"

    duplicate = await async_client.post("/roles", json={"owner": "acme", "name": "viewer"})
    assert duplicate.status_code == 409


@pytest.mark.asyncio
async def test_create_rejects_bad_identifiers(async_client: AsyncClient) -> None:
    response = await async_client.post("/roles", json={"owner": "acme", "name": "a/b"})
    assert response.status_code == 400
    assert "name" in response.json()

    response = await async_client.post("/roles", json={"owner": "acme", "name": "x", "roles": ["nosep"]})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_and_mask(async_client: AsyncClient) -> None:
    await _create(async_client, owner="acme", name="viewer", users=["acme/bob"])
    await _create(async_client, owner="acme", name="editor", roles=["acme/viewer"])

    response = await async_client.get("/roles", params={"owner": "acme", "masked": "true"})
    assert response.status_code == 200
    payload = response.json()
    assert {role["name"] for role in payload} == {"viewer", "editor"}
    assert all(role["users"] == [] for role in payload)

    response = await async_client.get("/roles", params={"user": "acme/bob"})
    assert [role["name"] for role in response.json()] == ["viewer"]

    response = await async_client.get("/roles/count", params={"owner": "acme"})
    assert response.json() == {"owner": "acme", "count": 2}

    assert (await async_client.get("/roles")).status_code == 400


@pytest.mark.asyncio
async def test_ancestors(async_client: AsyncClient) -> None:
    await _create(async_client, owner="acme", name="viewer")
    await _create(async_client, owner="acme", name="editor", roles=["acme/viewer"])
    await _create(async_client, owner="acme", name="admin", roles=["acme/editor"])

    response = await async_client.get("/roles/acme/viewer/ancestors")

    assert response.status_code == 200
    assert {role["name"] for role in response.json()} == {"editor", "admin"}
    assert (await async_client.get("/roles/acme/nobody/ancestors")).status_code == 404


@pytest.mark.asyncio
async def test_rename_through_api(async_client: AsyncClient, session_factory) -> None:
    await _create(async_client, owner="acme", name="r1")
    await _create(async_client, owner="acme", name="container", roles=["acme/r1"])
    async with session_factory() as session:
        await PermissionStore(session).insert(make_permission("acme/perm1", roles=["acme/r1"]))

    response = await async_client.put("/roles/acme/r1", json={"name": "r2", "users": ["acme/alice"]})

    assert response.status_code == 200, response.text
    assert response.json()["name"] == "r2"
    assert (await async_client.get("/roles/acme/r1")).status_code == 404
    container = (await async_client.get("/roles/acme/container")).json()
    assert container["roles"] == ["acme/r2"]
    async with session_factory() as session:
        assert (await PermissionStore(session).get("acme/perm1")).roles == ["acme/r2"]


@pytest.mark.asyncio
async def test_update_and_delete_missing(async_client: AsyncClient) -> None:
    response = await async_client.put("/roles/acme/ghost", json={"name": "ghost"})
    assert response.status_code == 404

    response = await async_client.delete("/roles/acme/ghost")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_role(async_client: AsyncClient, session_factory) -> None:
    await _create(async_client, owner="acme", name="viewer")
    async with session_factory() as session:
        await PermissionStore(session).insert(make_permission("acme/read", roles=["acme/viewer", "acme/x"]))

    response = await async_client.delete("/roles/acme/viewer")

    assert response.status_code == 204
    assert (await async_client.get("/roles/acme/viewer")).status_code == 404
    async with session_factory() as session:
        assert (await PermissionStore(session).get("acme/read")).roles == ["acme/x"]


@pytest.mark.asyncio
async def test_rename_onto_existing_role(async_client: AsyncClient) -> None:
    await _create(async_client, owner="acme", name="r1", users=["acme/alice"])
    await _create(async_client, owner="acme", name="r2", users=["acme/bob"])

    response = await async_client.put("/roles/acme/r1", json={"name": "r2"})

    assert response.status_code == 404
    assert (await async_client.get("/roles/acme/r1")).json()["users"] == ["acme/alice"]
    assert (await async_client.get("/roles/acme/r2")).json()["users"] == ["acme/bob"]
