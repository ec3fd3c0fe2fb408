"""
资源管理服务：创建 / 更新 / 移动 / 删除资源，以及资源树、面包屑查询

- 写操作在提交前用 TreeValidator 校验整个目录，校验失败回滚并抛出 StructuralViolationError
- type / res_code 创建后不可修改
- 删除时不允许留下孤儿子树：有子节点需显式 cascade，被角色引用的资源拒绝删除
- 每次提交后失效资源目录缓存
"""
from __future__ import annotations

import uuid
from uuid import UUID

from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import apaginate
from sqlalchemy.ext.asyncio import AsyncSession

from admin_rbac.core.config import settings
from admin_rbac.core.logging import logger
from admin_rbac.models import Resource
from admin_rbac.repositories import ResourceRepository
from admin_rbac.schemas.resource import (
    ResCodeRequest,
    ResCodeResponse,
    ResourceCreate,
    ResourceRead,
    ResourceTreeRead,
    ResourceUpdate,
    TreeValidationResponse,
    TreeViolationRead,
)
from admin_rbac.services.rbac.aggregator import PermissionAggregator
from admin_rbac.services.rbac.errors import (
    ResourceInUseError,
    ResourceNotFoundError,
    StructuralViolationError,
)
from admin_rbac.services.rbac.res_code import (
    derive_whole_id,
    extract_suffix,
    extract_type,
    generate_res_code,
)
from admin_rbac.services.rbac.stores import ResourceRecord
from admin_rbac.services.rbac.tree import (
    ResourceTreeNode,
    ancestor_path,
    build_resource_tree,
    subtree,
)
from admin_rbac.services.rbac.validator import (
    TreeValidator,
    TreeViolation,
    ViolationKind,
    would_create_cycle,
)
from admin_rbac.utils.time_utils import Datetime


class ResourceService:
    """资源管理服务"""

    def __init__(
        self,
        db: AsyncSession,
        aggregator: PermissionAggregator | None = None,
        strict: bool | None = None,
    ):
        self.db = db
        self.repo = ResourceRepository(db)
        self.aggregator = aggregator
        self.validator = TreeValidator(
            strict=settings.RBAC_STRICT_PARENT_CHECK if strict is None else strict
        )

    # ===== 查询 =====

    async def get(self, resource_id: UUID) -> Resource:
        resource = await self.repo.get_by_id(resource_id)
        if resource is None:
            raise ResourceNotFoundError(resource_id)
        return resource

    async def list_all(self) -> list[Resource]:
        return await self.repo.list_all()

    async def list_page(
        self,
        params: Params,
        resource_type: int | None = None,
        name: str | None = None,
        parent_id: UUID | None = None,
    ) -> Page[ResourceRead]:
        stmt = self.repo.list_stmt(resource_type=resource_type, name=name, parent_id=parent_id)

        def _transform(items):
            return [ResourceRead.model_validate(item) for item in items]

        return await apaginate(self.db, stmt, params=params, transformer=_transform)

    async def tree(self) -> list[ResourceTreeRead]:
        forest = build_resource_tree(await self.repo.list_all())
        return _to_tree_read(forest)

    async def resource_path(self, resource_id: UUID) -> list[ResourceRead]:
        """从根到目标资源的链路（面包屑）"""
        resources = await self.repo.list_all()
        chain = ancestor_path(resources, resource_id)
        if not chain:
            raise ResourceNotFoundError(resource_id)
        return [ResourceRead.model_validate(r) for r in chain]

    async def validate_tree(self) -> TreeValidationResponse:
        records = [ResourceRecord.from_orm(r) for r in await self.repo.list_all()]
        violations = self.validator.validate_catalog(records)
        return TreeValidationResponse(
            is_valid=not violations,
            violations=[_violation_read(v) for v in violations],
        )

    @staticmethod
    def preview_res_code(request: ResCodeRequest) -> ResCodeResponse:
        res_code = generate_res_code(request.type, request.path, request.custom_suffix)
        return ResCodeResponse(
            res_code=res_code,
            type=extract_type(res_code),
            suffix=extract_suffix(res_code),
        )

    # ===== 写操作 =====

    async def create(self, data: ResourceCreate) -> Resource:
        res_code = generate_res_code(data.type, data.path, data.custom_suffix)

        parent: Resource | None = None
        if data.parent_id is not None:
            parent = await self.repo.get_by_id(data.parent_id)
            if parent is None:
                raise ResourceNotFoundError(data.parent_id)

        resource_id = uuid.uuid4()
        ancestors = parent.whole_id.split(".") if parent is not None else []
        resource = Resource(
            id=resource_id,
            name=data.name,
            type=int(data.type),
            path=data.path,
            custom_suffix=data.custom_suffix,
            res_code=res_code,
            parent_id=data.parent_id,
            whole_id=derive_whole_id(ancestors, resource_id),
            sort_order=data.sort_order,
            description=data.description,
            is_active=data.is_active,
            created_at=Datetime.now(),
        )

        # 先在内存中校验，避免唯一约束在 flush 时才报错
        records = [ResourceRecord.from_orm(r) for r in await self.repo.list_all()]
        records.append(ResourceRecord.from_orm(resource))
        self.validator.assert_valid(build_resource_tree(records))

        await self.repo.add(resource)
        await self._commit()
        await self.db.refresh(resource)
        logger.info(
            "resource_created",
            extra={"resource_id": str(resource.id), "res_code": res_code, "parent_id": str(data.parent_id)},
        )
        return resource

    async def update(self, resource_id: UUID, data: ResourceUpdate) -> Resource:
        resource = await self.get(resource_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for key, value in changes.items():
            setattr(resource, key, value)

        await self.db.flush()
        await self._validate_or_rollback()
        await self._commit()
        await self.db.refresh(resource)
        logger.info("resource_updated", extra={"resource_id": str(resource_id), "fields": sorted(changes)})
        return resource

    async def move(self, resource_id: UUID, new_parent_id: UUID | None) -> Resource:
        """
        调整父级并重算整棵子树的 whole_id。
        目标父级为自身或自身后代时拒绝（成环）。
        """
        resource = await self.get(resource_id)
        parent: Resource | None = None
        if new_parent_id is not None:
            parent = await self.repo.get_by_id(new_parent_id)
            if parent is None:
                raise ResourceNotFoundError(new_parent_id)

        resources = await self.repo.list_all()
        if would_create_cycle(resources, resource_id, new_parent_id):
            raise StructuralViolationError([
                TreeViolation(
                    ViolationKind.CYCLE,
                    str(resource_id),
                    f"moving resource {resource_id} under {new_parent_id} would create a cycle",
                )
            ])

        moved = subtree(build_resource_tree(resources), resource_id)
        resource.parent_id = new_parent_id
        ancestors = parent.whole_id.split(".") if parent is not None else []
        resource.whole_id = derive_whole_id(ancestors, resource.id)
        whole_ids = {resource.id: resource.whole_id}
        # 先序遍历保证父节点先于子节点重算
        for node in moved[1:]:
            child = node.resource
            child.whole_id = f"{whole_ids[child.parent_id]}.{child.id}"
            whole_ids[child.id] = child.whole_id

        await self.db.flush()
        await self._validate_or_rollback()
        await self._commit()
        await self.db.refresh(resource)
        logger.info(
            "resource_moved",
            extra={
                "resource_id": str(resource_id),
                "new_parent_id": str(new_parent_id),
                "subtree_size": len(moved),
            },
        )
        return resource

    async def delete(self, resource_id: UUID, cascade: bool = False) -> list[UUID]:
        """删除资源；cascade=True 时删除整棵子树。返回被删除的资源 ID（子节点在前）"""
        await self.get(resource_id)
        forest = build_resource_tree(await self.repo.list_all())
        nodes = subtree(forest, resource_id)
        if len(nodes) > 1 and not cascade:
            raise StructuralViolationError([
                TreeViolation(
                    ViolationKind.ORPHANED_CHILDREN,
                    str(resource_id),
                    f"resource {resource_id} has {len(nodes) - 1} descendant(s); delete with cascade",
                )
            ])

        doomed = [node.id for node in reversed(nodes)]
        attached = await self.repo.attached_resource_ids(doomed)
        if attached:
            raise ResourceInUseError(sorted(attached, key=str))

        await self.repo.delete_many(doomed)
        await self._validate_or_rollback()
        await self._commit()
        logger.info(
            "resource_deleted",
            extra={"resource_id": str(resource_id), "cascade": cascade, "deleted": len(doomed)},
        )
        return doomed

    # ===== 内部 =====

    async def _validate_or_rollback(self) -> None:
        records = [ResourceRecord.from_orm(r) for r in await self.repo.list_all()]
        violations = self.validator.validate_catalog(records)
        if violations:
            await self.db.rollback()
            logger.warning(
                "resource_tree_violation",
                extra={"violations": [v.message for v in violations]},
            )
            raise StructuralViolationError(violations)

    async def _commit(self) -> None:
        await self.db.commit()
        if self.aggregator is not None:
            await self.aggregator.invalidate_catalog()


def _to_tree_read(forest: list[ResourceTreeNode]) -> list[ResourceTreeRead]:
    roots: list[ResourceTreeRead] = []
    stack: list[tuple[ResourceTreeNode, ResourceTreeRead | None]] = [(node, None) for node in reversed(forest)]
    while stack:
        node, parent = stack.pop()
        data = ResourceRead.model_validate(node.resource).model_dump()
        item = ResourceTreeRead(**data, level=node.level)
        (parent.children if parent is not None else roots).append(item)
        stack.extend((child, item) for child in reversed(node.children))
    return roots


def _violation_read(violation: TreeViolation) -> TreeViolationRead:
    return TreeViolationRead(
        kind=violation.kind.value,
        resource_id=violation.resource_id,
        message=violation.message,
    )
