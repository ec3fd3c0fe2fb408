from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from admin_rbac.models import Resource, Role, RoleResource


class RoleRepository:
    """
    角色及角色-资源关联的仓库封装，避免在业务层直接写 SQL/ORM。
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, role_id: UUID) -> Role | None:
        return await self.session.get(Role, role_id)

    async def get_by_name(self, name: str) -> Role | None:
        result = await self.session.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def list_roles(self, is_active: bool | None = None) -> list[Role]:
        stmt = select(Role).order_by(Role.name)
        if is_active is not None:
            stmt = stmt.where(Role.is_active == is_active)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, role: Role) -> Role:
        self.session.add(role)
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def update(self, role: Role, **fields) -> Role:
        for key, value in fields.items():
            if hasattr(role, key) and value is not None:
                setattr(role, key, value)
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def delete(self, role: Role) -> None:
        await self.session.execute(delete(RoleResource).where(RoleResource.role_id == role.id))
        await self.session.execute(delete(Role).where(Role.id == role.id))
        await self.session.flush()

    async def resource_ids(self, role_id: UUID) -> set[UUID]:
        stmt = select(RoleResource.resource_id).where(RoleResource.role_id == role_id)
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def replace_resources(self, role_id: UUID, resource_ids: Iterable[UUID]) -> None:
        """整体替换角色的资源集合"""
        await self.session.execute(delete(RoleResource).where(RoleResource.role_id == role_id))
        for resource_id in dict.fromkeys(resource_ids):
            self.session.add(RoleResource(role_id=role_id, resource_id=resource_id))
        await self.session.flush()

    async def add_resources(self, role_id: UUID, resource_ids: Iterable[UUID]) -> None:
        """追加资源（去重，避免违反联合唯一约束）"""
        existing = await self.resource_ids(role_id)
        for resource_id in dict.fromkeys(resource_ids):
            if resource_id in existing:
                continue
            self.session.add(RoleResource(role_id=role_id, resource_id=resource_id))
        await self.session.flush()

    async def remove_resources(self, role_id: UUID, resource_ids: Iterable[UUID]) -> None:
        ids = list(resource_ids)
        if not ids:
            return
        stmt = delete(RoleResource).where(
            RoleResource.role_id == role_id,
            RoleResource.resource_id.in_(ids),
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def type_distribution(self, role_id: UUID) -> dict[int, int]:
        """按资源类型统计角色已分配资源数"""
        stmt = (
            select(Resource.type, func.count(Resource.id))
            .join(RoleResource, RoleResource.resource_id == Resource.id)
            .where(RoleResource.role_id == role_id)
            .group_by(Resource.type)
        )
        result = await self.session.execute(stmt)
        return {int(rtype): int(count) for rtype, count in result.all()}
