"""
角色权限服务：角色 CRUD、资源分配、权限差异与统计、三态权限树

角色资源或角色标记（启用 / 超管）变更后，失效该角色的授权缓存。
"""
from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from admin_rbac.constants.resources import ResourceType
from admin_rbac.core.logging import logger
from admin_rbac.models import Role
from admin_rbac.repositories import ResourceRepository, RoleRepository
from admin_rbac.schemas.permission import (
    PermissionCheckResponse,
    PermissionPreviewResponse,
    PermissionTreeNode,
    RolePermissionTreeResponse,
)
from admin_rbac.schemas.role import (
    PermissionDiffResponse,
    PermissionStatsResponse,
    ResourceBrief,
    RoleCreate,
    RoleResourcesRead,
    RoleUpdate,
)
from admin_rbac.services.rbac.aggregator import PermissionAggregator, PermissionResolution
from admin_rbac.services.rbac.errors import (
    DuplicateRoleNameError,
    ResourceNotFoundError,
    RoleNotFoundError,
)


class RolePermissionService:
    """角色权限服务"""

    def __init__(self, db: AsyncSession, aggregator: PermissionAggregator):
        self.db = db
        self.role_repo = RoleRepository(db)
        self.resource_repo = ResourceRepository(db)
        self.aggregator = aggregator

    # ===== 角色 CRUD =====

    async def get_role(self, role_id: UUID) -> Role:
        role = await self.role_repo.get_by_id(role_id)
        if role is None:
            raise RoleNotFoundError(role_id)
        return role

    async def list_roles(self, is_active: bool | None = None) -> list[Role]:
        return await self.role_repo.list_roles(is_active=is_active)

    async def create_role(self, data: RoleCreate) -> Role:
        if await self.role_repo.get_by_name(data.name):
            raise DuplicateRoleNameError(data.name)
        role = await self.role_repo.add(Role(**data.model_dump()))
        await self.db.commit()
        logger.info("role_created", extra={"role_id": str(role.id), "name": role.name})
        return role

    async def update_role(self, role_id: UUID, data: RoleUpdate) -> Role:
        role = await self.get_role(role_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        new_name = changes.get("name")
        if new_name and new_name != role.name and await self.role_repo.get_by_name(new_name):
            raise DuplicateRoleNameError(new_name)
        role = await self.role_repo.update(role, **changes)
        await self._commit_role(role_id)
        logger.info("role_updated", extra={"role_id": str(role_id), "fields": sorted(changes)})
        return role

    async def delete_role(self, role_id: UUID) -> None:
        role = await self.get_role(role_id)
        await self.role_repo.delete(role)
        await self._commit_role(role_id)
        logger.info("role_deleted", extra={"role_id": str(role_id)})

    # ===== 资源分配 =====

    async def assign_resources(self, role_id: UUID, resource_ids: Iterable[UUID]) -> RoleResourcesRead:
        """整体替换角色的资源集合"""
        await self.get_role(role_id)
        ids = list(dict.fromkeys(resource_ids))
        await self._ensure_resources_exist(ids)
        await self.role_repo.replace_resources(role_id, ids)
        await self._commit_role(role_id)
        logger.info("role_resources_assigned", extra={"role_id": str(role_id), "count": len(ids)})
        return await self._role_resources(role_id)

    async def batch_assign(
        self,
        role_id: UUID,
        grant_ids: Iterable[UUID],
        revoke_ids: Iterable[UUID],
    ) -> RoleResourcesRead:
        await self.get_role(role_id)
        grant = list(dict.fromkeys(grant_ids))
        revoke = list(dict.fromkeys(revoke_ids))
        await self._ensure_resources_exist(grant)
        await self.role_repo.add_resources(role_id, grant)
        await self.role_repo.remove_resources(role_id, revoke)
        await self._commit_role(role_id)
        logger.info(
            "role_resources_batch_assigned",
            extra={"role_id": str(role_id), "granted": len(grant), "revoked": len(revoke)},
        )
        return await self._role_resources(role_id)

    async def permission_diff(self, role_id: UUID, target_ids: Iterable[UUID]) -> PermissionDiffResponse:
        role = await self.get_role(role_id)
        current = await self.role_repo.resource_ids(role_id)
        target = set(target_ids)
        to_grant = target - current
        to_revoke = current - target
        return PermissionDiffResponse(
            role_id=role.id,
            role_name=role.name,
            to_grant=await self._briefs(to_grant),
            to_revoke=await self._briefs(to_revoke),
            unchanged_count=len(current & target),
            total_changes=len(to_grant) + len(to_revoke),
        )

    async def permission_stats(self, role_id: UUID) -> PermissionStatsResponse:
        role = await self.get_role(role_id)
        total = await self.resource_repo.count()
        assigned = len(await self.role_repo.resource_ids(role_id))
        distribution = await self.role_repo.type_distribution(role_id)
        return PermissionStatsResponse(
            role_id=role.id,
            role_name=role.name,
            total_resources=total,
            assigned_resources=assigned,
            unassigned_resources=max(total - assigned, 0),
            permission_coverage=round(assigned / total * 100, 2) if total else 0.0,
            type_distribution={
                ResourceType(rtype).name: count for rtype, count in sorted(distribution.items())
            },
        )

    # ===== 权限树 / 校验 =====

    async def role_permission_tree(self, role_id: UUID) -> RolePermissionTreeResponse:
        """单个角色的三态权限树；角色不存在时报 404（与多角色聚合的降级规则不同）"""
        role = await self.get_role(role_id)
        resolution = await self.aggregator.resolve([role_id])
        return RolePermissionTreeResponse(
            role_id=str(role.id),
            role_name=role.name,
            permission_tree=_tree_nodes(resolution),
        )

    async def preview(self, role_ids: Iterable[str]) -> PermissionPreviewResponse:
        role_ids = list(role_ids)
        resolution = await self.aggregator.preview_by_role_ids(role_ids)
        return PermissionPreviewResponse(
            role_ids=role_ids,
            is_super_admin=resolution.is_super_admin,
            missing_role_ids=resolution.missing_role_ids,
            tree=_tree_nodes(resolution),
            assigned_resource_ids=resolution.assigned_ids,
        )

    async def check(self, role_ids: Iterable[str], resource_ref: str) -> PermissionCheckResponse:
        allowed = await self.aggregator.check(list(role_ids), resource_ref)
        return PermissionCheckResponse(resource=resource_ref, allowed=allowed)

    # ===== 内部 =====

    async def _ensure_resources_exist(self, resource_ids: list[UUID]) -> None:
        found = {r.id for r in await self.resource_repo.get_by_ids(resource_ids)}
        for resource_id in resource_ids:
            if resource_id not in found:
                raise ResourceNotFoundError(resource_id)

    async def _briefs(self, resource_ids: set[UUID]) -> list[ResourceBrief]:
        resources = await self.resource_repo.get_by_ids(resource_ids)
        resources.sort(key=lambda r: (r.sort_order, r.res_code))
        return [
            ResourceBrief(resource_id=r.id, resource_name=r.name, resource_type=r.type)
            for r in resources
        ]

    async def _role_resources(self, role_id: UUID) -> RoleResourcesRead:
        ids = await self.role_repo.resource_ids(role_id)
        return RoleResourcesRead(role_id=role_id, resource_ids=sorted(ids, key=str))

    async def _commit_role(self, role_id: UUID) -> None:
        await self.db.commit()
        await self.aggregator.invalidate_role(role_id)


def _tree_nodes(resolution: PermissionResolution) -> list[PermissionTreeNode]:
    return [PermissionTreeNode.model_validate(node) for node in resolution.tree]
