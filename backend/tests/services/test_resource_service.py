"""
资源管理服务测试（内存 SQLite）
"""
import pytest
import pytest_asyncio
from fastapi_pagination import Params

from admin_rbac.constants.resources import ResourceType
from admin_rbac.models import Role, RoleResource
from admin_rbac.schemas.resource import ResCodeRequest, ResourceCreate, ResourceUpdate
from admin_rbac.services.rbac import (
    InvalidInputError,
    PermissionAggregator,
    ResourceInUseError,
    ResourceNotFoundError,
    ResourceService,
    SqlResourceStore,
    SqlRoleStore,
    StructuralViolationError,
    ViolationKind,
)


@pytest.fixture
def aggregator(session_factory, rbac_cache):
    return PermissionAggregator(SqlRoleStore(session_factory), SqlResourceStore(session_factory), cache=rbac_cache)


@pytest.fixture
def service(db_session, aggregator):
    return ResourceService(db_session, aggregator, strict=True)


@pytest_asyncio.fixture
async def system_tree(service):
    """/system 菜单 -> 用户页面 -> 导出按钮；/api/users/:id 接口挂在菜单下"""
    root = await service.create(ResourceCreate(name="系统管理", type=ResourceType.MENU, path="/system"))
    page = await service.create(
        ResourceCreate(name="用户管理", type=ResourceType.PAGE, path="/system/user", parent_id=root.id, sort_order=1)
    )
    button = await service.create(
        ResourceCreate(name="导出", type=ResourceType.MODULE, custom_suffix="user_export", parent_id=page.id)
    )
    api = await service.create(
        ResourceCreate(name="用户详情", type="API", path="/api/users/:id", parent_id=root.id)
    )
    return {"root": root, "page": page, "button": button, "api": api}


@pytest.mark.asyncio
async def test_create_generates_code_and_whole_id(system_tree):
    root, page, button, api = (system_tree[k] for k in ("root", "page", "button", "api"))
    assert root.res_code == "MENU_system"
    assert root.whole_id == str(root.id)
    assert page.res_code == "PAGE_system_user"
    assert button.res_code == "MODULE_user_export"
    assert button.whole_id == f"{root.id}.{page.id}.{button.id}"
    assert api.res_code == "API_users_id"
    assert api.type == ResourceType.API


@pytest.mark.asyncio
async def test_create_duplicate_code_rejected(service, system_tree):
    with pytest.raises(StructuralViolationError) as exc_info:
        await service.create(ResourceCreate(name="重复", type=ResourceType.MENU, path="/system/"))
    assert [v.kind for v in exc_info.value.violations] == [ViolationKind.DUPLICATE_RES_CODE]
    assert len(await service.list_all()) == 4


@pytest.mark.asyncio
async def test_create_with_missing_parent(service):
    import uuid

    with pytest.raises(ResourceNotFoundError):
        await service.create(
            ResourceCreate(name="孤儿", type=ResourceType.PAGE, path="/orphan", parent_id=uuid.uuid4())
        )


@pytest.mark.asyncio
async def test_create_module_requires_suffix(service):
    with pytest.raises(InvalidInputError):
        await service.create(ResourceCreate(name="按钮", type=ResourceType.MODULE))


@pytest.mark.asyncio
async def test_update_keeps_code(service, system_tree):
    page = system_tree["page"]
    updated = await service.update(
        page.id,
        ResourceUpdate(name="用户列表", path="/system/users", sort_order=3, description="desc"),
    )
    assert updated.name == "用户列表"
    assert updated.path == "/system/users"
    assert updated.sort_order == 3
    assert updated.res_code == "PAGE_system_user"


@pytest.mark.asyncio
async def test_move_rederives_subtree_whole_ids(service, system_tree):
    root, page, button, api = (system_tree[k] for k in ("root", "page", "button", "api"))
    moved = await service.move(page.id, api.id)
    assert moved.parent_id == api.id
    assert moved.whole_id == f"{root.id}.{api.id}.{page.id}"

    refreshed = await service.get(button.id)
    assert refreshed.whole_id == f"{root.id}.{api.id}.{page.id}.{button.id}"

    to_root = await service.move(page.id, None)
    assert to_root.parent_id is None
    assert to_root.whole_id == str(page.id)
    assert (await service.get(button.id)).whole_id == f"{page.id}.{button.id}"
    assert (await service.validate_tree()).is_valid


@pytest.mark.asyncio
async def test_move_into_own_subtree_rejected(service, system_tree):
    root, button = system_tree["root"], system_tree["button"]
    with pytest.raises(StructuralViolationError) as exc_info:
        await service.move(root.id, button.id)
    assert exc_info.value.violations[0].kind is ViolationKind.CYCLE
    assert (await service.get(root.id)).parent_id is None


@pytest.mark.asyncio
async def test_delete_with_children_requires_cascade(service, system_tree):
    page = system_tree["page"]
    with pytest.raises(StructuralViolationError) as exc_info:
        await service.delete(page.id)
    assert exc_info.value.violations[0].kind is ViolationKind.ORPHANED_CHILDREN

    deleted = await service.delete(page.id, cascade=True)
    assert deleted == [system_tree["button"].id, page.id]
    assert len(await service.list_all()) == 2
    assert (await service.validate_tree()).is_valid


@pytest.mark.asyncio
async def test_delete_refuses_attached_resources(service, db_session, system_tree):
    role = Role(name="auditor")
    db_session.add(role)
    await db_session.flush()
    db_session.add(RoleResource(role_id=role.id, resource_id=system_tree["button"].id))
    await db_session.commit()

    with pytest.raises(ResourceInUseError) as exc_info:
        await service.delete(system_tree["page"].id, cascade=True)
    assert exc_info.value.resource_ids == [system_tree["button"].id]

    # 未被引用的叶子节点可以直接删除
    assert await service.delete(system_tree["api"].id) == [system_tree["api"].id]


@pytest.mark.asyncio
async def test_get_missing_resource(service):
    import uuid

    with pytest.raises(ResourceNotFoundError):
        await service.get(uuid.uuid4())


@pytest.mark.asyncio
async def test_tree_and_path(service, system_tree):
    tree = await service.tree()
    assert [n.res_code for n in tree] == ["MENU_system"]
    assert [c.res_code for c in tree[0].children] == ["API_users_id", "PAGE_system_user"]
    assert tree[0].children[1].children[0].level == 2

    path = await service.resource_path(system_tree["button"].id)
    assert [r.res_code for r in path] == ["MENU_system", "PAGE_system_user", "MODULE_user_export"]


@pytest.mark.asyncio
async def test_mutations_invalidate_catalog_cache(service, aggregator, system_tree):
    assert len(await aggregator.load_catalog()) == 4
    await service.create(ResourceCreate(name="监控", type=ResourceType.MENU, path="/monitor"))
    assert len(await aggregator.load_catalog()) == 5


def test_preview_res_code():
    resp = ResourceService.preview_res_code(ResCodeRequest(type="api", path="/api/roles/:id"))
    assert resp.res_code == "API_roles_id"
    assert resp.type is ResourceType.API
    assert resp.suffix == "roles_id"


@pytest.mark.asyncio
async def test_list_page_filters_on_async_session(service, system_tree):
    page = await service.list_page(Params(page=1, size=2))
    assert page.total == 4
    assert len(page.items) == 2

    children = await service.list_page(Params(page=1, size=10), parent_id=system_tree["root"].id)
    assert {r.res_code for r in children.items} == {"PAGE_system_user", "API_users_id"}

    apis = await service.list_page(Params(page=1, size=10), resource_type=int(ResourceType.API))
    assert [r.res_code for r in apis.items] == ["API_users_id"]


@pytest.mark.asyncio
async def test_tree_of_deep_chain(service, db_session):
    import uuid

    from admin_rbac.models import Resource

    depth = 1500
    ids = [uuid.uuid4() for _ in range(depth)]
    db_session.add_all([
        Resource(
            id=rid,
            name=f"n{i}",
            type=int(ResourceType.MENU),
            res_code=f"MENU_deep_n{i}",
            parent_id=ids[i - 1] if i else None,
            whole_id=str(rid),
        )
        for i, rid in enumerate(ids)
    ])
    await db_session.commit()

    tree = await service.tree()

    assert len(tree) == 1
    node, levels = tree[0], 0
    while node.children:
        node = node.children[0]
        levels += 1
    assert levels == depth - 1
    assert node.id == ids[-1]
