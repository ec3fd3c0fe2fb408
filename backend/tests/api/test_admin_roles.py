"""
角色与权限接口测试
"""
import uuid

import pytest
from httpx import AsyncClient

PREFIX = "/api/v1/admin"


async def _create_role(client: AsyncClient, name: str, **extra) -> dict:
    resp = await client.post(f"{PREFIX}/roles", json={"name": name, **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_role_crud(client: AsyncClient):
    role = await _create_role(client, "editor", description="编辑")

    dup = await client.post(f"{PREFIX}/roles", json={"name": "editor"})
    assert dup.status_code == 409

    resp = await client.patch(f"{PREFIX}/roles/{role['id']}", json={"is_active": False})
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    resp = await client.get(f"{PREFIX}/roles")
    assert [r["name"] for r in resp.json()] == ["editor"]

    resp = await client.delete(f"{PREFIX}/roles/{role['id']}")
    assert resp.status_code == 200
    assert (await client.get(f"{PREFIX}/roles/{role['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_assign_and_permission_tree(client: AsyncClient, seeded: dict):
    role = await _create_role(client, "viewer")
    resp = await client.put(
        f"{PREFIX}/roles/{role['id']}/resources",
        json={"resource_ids": [seeded["api"]["id"]]},
    )
    assert resp.status_code == 200
    assert resp.json()["resource_ids"] == [seeded["api"]["id"]]

    resp = await client.get(f"{PREFIX}/roles/{role['id']}/permission-tree")
    assert resp.status_code == 200
    root = resp.json()["permission_tree"][0]
    assert root["resource_id"] == seeded["menu"]["id"]
    assert root["is_assigned"] is False
    assert root["is_indeterminate"] is True
    assert root["children"][0]["is_assigned"] is True
    assert root["children"][1]["is_assigned"] is False


@pytest.mark.asyncio
async def test_assign_unknown_resource(client: AsyncClient, seeded: dict):
    role = await _create_role(client, "viewer")
    resp = await client.put(
        f"{PREFIX}/roles/{role['id']}/resources",
        json={"resource_ids": [str(uuid.uuid4())]},
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_batch_diff_and_stats(client: AsyncClient, seeded: dict):
    role = await _create_role(client, "viewer")
    menu_id, api_id, page_id = seeded["menu"]["id"], seeded["api"]["id"], seeded["page"]["id"]

    resp = await client.post(
        f"{PREFIX}/roles/{role['id']}/resources/batch",
        json={"grant_resource_ids": [menu_id, api_id], "revoke_resource_ids": []},
    )
    assert sorted(resp.json()["resource_ids"]) == sorted([menu_id, api_id])

    resp = await client.post(
        f"{PREFIX}/roles/{role['id']}/resources/diff",
        json={"target_resource_ids": [api_id, page_id]},
    )
    diff = resp.json()
    assert [b["resource_id"] for b in diff["to_grant"]] == [page_id]
    assert [b["resource_id"] for b in diff["to_revoke"]] == [menu_id]
    assert diff["unchanged_count"] == 1

    resp = await client.get(f"{PREFIX}/roles/{role['id']}/resources/stats")
    stats = resp.json()
    assert stats["assigned_resources"] == 2
    assert stats["total_resources"] == 3
    assert stats["type_distribution"] == {"MENU": 1, "API": 1}


@pytest.mark.asyncio
async def test_preview_and_check(client: AsyncClient, seeded: dict):
    role = await _create_role(client, "viewer")
    admin = await _create_role(client, "admin", is_super_admin=True)
    await client.put(f"{PREFIX}/roles/{role['id']}/resources", json={"resource_ids": [seeded["page"]["id"]]})
    ghost = str(uuid.uuid4())

    resp = await client.post(f"{PREFIX}/permissions/preview", json={"role_ids": [role["id"], ghost]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["missing_role_ids"] == [ghost]
    assert body["assigned_resource_ids"] == [seeded["page"]["id"]]
    assert body["tree"][0]["is_indeterminate"] is True

    resp = await client.post(
        f"{PREFIX}/permissions/check",
        json={"role_ids": [role["id"]], "resource": "PAGE_system_user"},
    )
    assert resp.json() == {"resource": "PAGE_system_user", "allowed": True}

    resp = await client.post(
        f"{PREFIX}/permissions/check",
        json={"role_ids": [role["id"]], "resource": seeded["api"]["id"]},
    )
    assert resp.json()["allowed"] is False

    resp = await client.post(f"{PREFIX}/permissions/preview", json={"role_ids": [admin["id"]]})
    body = resp.json()
    assert body["is_super_admin"] is True
    assert len(body["assigned_resource_ids"]) == 3


@pytest.mark.asyncio
async def test_permission_tree_for_missing_role(client: AsyncClient):
    resp = await client.get(f"{PREFIX}/roles/{uuid.uuid4()}/permission-tree")
    assert resp.status_code == 404
