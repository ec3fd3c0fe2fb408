"""
角色与权限 API 路由 (/api/v1/admin)

端点:
- POST /admin/roles - 创建角色
- GET /admin/roles - 角色列表
- GET /admin/roles/{role_id} - 角色详情
- PATCH /admin/roles/{role_id} - 更新角色
- DELETE /admin/roles/{role_id} - 删除角色
- PUT /admin/roles/{role_id}/resources - 整体替换角色资源
- POST /admin/roles/{role_id}/resources/batch - 批量授予 / 撤销
- POST /admin/roles/{role_id}/resources/diff - 权限差异预览
- GET /admin/roles/{role_id}/resources/stats - 权限统计
- GET /admin/roles/{role_id}/permission-tree - 单角色三态权限树
- POST /admin/permissions/preview - 多角色权限预览
- POST /admin/permissions/check - 单点权限判断
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from admin_rbac.deps.rbac import get_role_permission_service
from admin_rbac.schemas.base import MessageResponse
from admin_rbac.schemas.permission import (
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionPreviewRequest,
    PermissionPreviewResponse,
    RolePermissionTreeResponse,
)
from admin_rbac.schemas.role import (
    AssignResourcesRequest,
    BatchAssignRequest,
    PermissionDiffRequest,
    PermissionDiffResponse,
    PermissionStatsResponse,
    RoleCreate,
    RoleRead,
    RoleResourcesRead,
    RoleUpdate,
)
from admin_rbac.services.rbac import RolePermissionService

router = APIRouter(prefix="/admin", tags=["Admin - Roles"])


@router.post("/roles", response_model=RoleRead, status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreate,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> RoleRead:
    return RoleRead.model_validate(await service.create_role(data))


@router.get("/roles", response_model=list[RoleRead])
async def list_roles(
    is_active: bool | None = Query(None, description="是否启用"),
    service: RolePermissionService = Depends(get_role_permission_service),
) -> list[RoleRead]:
    roles = await service.list_roles(is_active=is_active)
    return [RoleRead.model_validate(r) for r in roles]


@router.get("/roles/{role_id}", response_model=RoleRead)
async def get_role(
    role_id: UUID,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> RoleRead:
    return RoleRead.model_validate(await service.get_role(role_id))


@router.patch("/roles/{role_id}", response_model=RoleRead)
async def update_role(
    role_id: UUID,
    data: RoleUpdate,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> RoleRead:
    return RoleRead.model_validate(await service.update_role(role_id, data))


@router.delete("/roles/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: UUID,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> MessageResponse:
    await service.delete_role(role_id)
    return MessageResponse(message="Role deleted")


@router.put("/roles/{role_id}/resources", response_model=RoleResourcesRead)
async def assign_role_resources(
    role_id: UUID,
    data: AssignResourcesRequest,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> RoleResourcesRead:
    return await service.assign_resources(role_id, data.resource_ids)


@router.post("/roles/{role_id}/resources/batch", response_model=RoleResourcesRead)
async def batch_assign_role_resources(
    role_id: UUID,
    data: BatchAssignRequest,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> RoleResourcesRead:
    return await service.batch_assign(role_id, data.grant_resource_ids, data.revoke_resource_ids)


@router.post("/roles/{role_id}/resources/diff", response_model=PermissionDiffResponse)
async def diff_role_resources(
    role_id: UUID,
    data: PermissionDiffRequest,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> PermissionDiffResponse:
    return await service.permission_diff(role_id, data.target_resource_ids)


@router.get("/roles/{role_id}/resources/stats", response_model=PermissionStatsResponse)
async def role_resource_stats(
    role_id: UUID,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> PermissionStatsResponse:
    return await service.permission_stats(role_id)


@router.get("/roles/{role_id}/permission-tree", response_model=RolePermissionTreeResponse)
async def role_permission_tree(
    role_id: UUID,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> RolePermissionTreeResponse:
    return await service.role_permission_tree(role_id)


@router.post("/permissions/preview", response_model=PermissionPreviewResponse)
async def preview_permissions(
    data: PermissionPreviewRequest,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> PermissionPreviewResponse:
    return await service.preview(data.role_ids)


@router.post("/permissions/check", response_model=PermissionCheckResponse)
async def check_permission(
    data: PermissionCheckRequest,
    service: RolePermissionService = Depends(get_role_permission_service),
) -> PermissionCheckResponse:
    return await service.check(data.role_ids, data.resource)
