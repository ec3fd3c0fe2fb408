from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from admin_rbac.models import Resource, RoleResource


class ResourceRepository:
    """
    资源表仓库封装。只做 flush，事务提交由 Service 在结构校验通过后负责。
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, resource_id: UUID) -> Resource | None:
        return await self.session.get(Resource, resource_id)

    async def get_by_ids(self, resource_ids: Iterable[UUID]) -> list[Resource]:
        ids = list(resource_ids)
        if not ids:
            return []
        result = await self.session.execute(select(Resource).where(Resource.id.in_(ids)))
        return list(result.scalars().all())

    def list_stmt(
        self,
        resource_type: int | None = None,
        name: str | None = None,
        parent_id: UUID | None = None,
    ) -> Select[tuple[Resource]]:
        stmt = select(Resource)
        if resource_type is not None:
            stmt = stmt.where(Resource.type == resource_type)
        if name:
            stmt = stmt.where(Resource.name.ilike(f"%{name}%"))
        if parent_id is not None:
            stmt = stmt.where(Resource.parent_id == parent_id)
        return stmt.order_by(Resource.sort_order.asc(), Resource.created_at.asc(), Resource.id.asc())

    async def list_all(self) -> list[Resource]:
        result = await self.session.execute(self.list_stmt())
        return list(result.scalars().all())

    async def add(self, resource: Resource) -> Resource:
        self.session.add(resource)
        await self.session.flush()
        return resource

    async def delete_many(self, resource_ids: Iterable[UUID]) -> int:
        """按传入顺序逐条删除（调用方需保证子节点在父节点之前）"""
        deleted = 0
        for resource_id in resource_ids:
            result = await self.session.execute(delete(Resource).where(Resource.id == resource_id))
            deleted += result.rowcount or 0
        await self.session.flush()
        return deleted

    async def attached_resource_ids(self, resource_ids: Iterable[UUID]) -> set[UUID]:
        """返回仍被任意角色引用的资源 ID"""
        ids = list(resource_ids)
        if not ids:
            return set()
        stmt = select(RoleResource.resource_id).where(RoleResource.resource_id.in_(ids)).distinct()
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(Resource))
        return result.scalar() or 0
