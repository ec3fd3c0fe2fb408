"""
角色权限服务测试（内存 SQLite）
"""
import uuid

import pytest
import pytest_asyncio

from admin_rbac.constants.resources import ResourceType
from admin_rbac.schemas.resource import ResourceCreate
from admin_rbac.schemas.role import RoleCreate, RoleUpdate
from admin_rbac.services.rbac import (
    DuplicateRoleNameError,
    PermissionAggregator,
    ResourceNotFoundError,
    ResourceService,
    RoleNotFoundError,
    RolePermissionService,
    SqlResourceStore,
    SqlRoleStore,
)


@pytest.fixture
def aggregator(session_factory, rbac_cache):
    return PermissionAggregator(SqlRoleStore(session_factory), SqlResourceStore(session_factory), cache=rbac_cache)


@pytest.fixture
def service(db_session, aggregator):
    return RolePermissionService(db_session, aggregator)


@pytest_asyncio.fixture
async def resources(db_session, aggregator):
    resource_service = ResourceService(db_session, aggregator)
    menu = await resource_service.create(ResourceCreate(name="系统管理", type=ResourceType.MENU, path="/system"))
    api = await resource_service.create(
        ResourceCreate(name="用户详情", type=ResourceType.API, path="/api/users/:id", parent_id=menu.id)
    )
    page = await resource_service.create(
        ResourceCreate(name="角色管理", type=ResourceType.PAGE, path="/system/role", parent_id=menu.id, sort_order=1)
    )
    return {"menu": menu, "api": api, "page": page}


@pytest.mark.asyncio
async def test_role_crud(service):
    role = await service.create_role(RoleCreate(name="editor", description="编辑"))
    assert role.is_active is True
    assert role.is_super_admin is False

    with pytest.raises(DuplicateRoleNameError):
        await service.create_role(RoleCreate(name="editor"))

    updated = await service.update_role(role.id, RoleUpdate(description="内容编辑", is_active=False))
    assert updated.description == "内容编辑"
    assert updated.is_active is False
    assert [r.name for r in await service.list_roles(is_active=False)] == ["editor"]

    await service.delete_role(role.id)
    with pytest.raises(RoleNotFoundError):
        await service.get_role(role.id)


@pytest.mark.asyncio
async def test_assign_and_tree(service, resources):
    role = await service.create_role(RoleCreate(name="viewer"))
    assigned = await service.assign_resources(role.id, [resources["api"].id, resources["api"].id])
    assert assigned.resource_ids == [resources["api"].id]

    tree = await service.role_permission_tree(role.id)
    root = tree.permission_tree[0]
    assert root.res_code == "MENU_system"
    assert root.is_assigned is False
    assert root.is_indeterminate is True
    api_node, page_node = root.children
    assert (api_node.res_code, api_node.is_assigned, api_node.level) == ("API_users_id", True, 1)
    assert page_node.is_assigned is False


@pytest.mark.asyncio
async def test_assign_unknown_resource_rejected(service, resources):
    role = await service.create_role(RoleCreate(name="viewer"))
    with pytest.raises(ResourceNotFoundError):
        await service.assign_resources(role.id, [resources["api"].id, uuid.uuid4()])
    assert (await service.permission_stats(role.id)).assigned_resources == 0


@pytest.mark.asyncio
async def test_assignment_invalidates_cached_grant(service, aggregator, resources):
    role = await service.create_role(RoleCreate(name="viewer"))
    await service.assign_resources(role.id, [resources["api"].id])
    assert await aggregator.check([str(role.id)], "API_users_id") is True

    await service.batch_assign(role.id, [resources["page"].id], [resources["api"].id])
    assert await aggregator.check([str(role.id)], "API_users_id") is False
    assert await aggregator.check([str(role.id)], "PAGE_system_role") is True


@pytest.mark.asyncio
async def test_super_admin_flag_change_invalidates(service, aggregator, resources):
    role = await service.create_role(RoleCreate(name="ops"))
    assert (await aggregator.resolve([str(role.id)])).assigned_ids == []

    await service.update_role(role.id, RoleUpdate(is_super_admin=True))
    result = await aggregator.resolve([str(role.id)])
    assert result.is_super_admin is True
    assert len(result.assigned_ids) == 3


@pytest.mark.asyncio
async def test_permission_diff(service, resources):
    role = await service.create_role(RoleCreate(name="viewer"))
    await service.assign_resources(role.id, [resources["menu"].id, resources["api"].id])

    diff = await service.permission_diff(role.id, [resources["api"].id, resources["page"].id])
    assert [b.resource_id for b in diff.to_grant] == [resources["page"].id]
    assert [b.resource_id for b in diff.to_revoke] == [resources["menu"].id]
    assert diff.unchanged_count == 1
    assert diff.total_changes == 2


@pytest.mark.asyncio
async def test_permission_stats(service, resources):
    role = await service.create_role(RoleCreate(name="viewer"))
    await service.assign_resources(role.id, [resources["menu"].id, resources["api"].id])

    stats = await service.permission_stats(role.id)
    assert stats.total_resources == 3
    assert stats.assigned_resources == 2
    assert stats.unassigned_resources == 1
    assert stats.permission_coverage == pytest.approx(66.67)
    assert stats.type_distribution == {"MENU": 1, "API": 1}


@pytest.mark.asyncio
async def test_preview_degrades_missing_roles(service, resources):
    role = await service.create_role(RoleCreate(name="viewer"))
    await service.assign_resources(role.id, [resources["page"].id])
    ghost = str(uuid.uuid4())

    preview = await service.preview([str(role.id), ghost, "not-a-uuid"])
    assert preview.missing_role_ids == [ghost, "not-a-uuid"]
    assert preview.assigned_resource_ids == [str(resources["page"].id)]

    check = await service.check([str(role.id)], str(resources["page"].id))
    assert check.allowed is True


@pytest.mark.asyncio
async def test_role_permission_tree_for_missing_role(service):
    with pytest.raises(RoleNotFoundError):
        await service.role_permission_tree(uuid.uuid4())
