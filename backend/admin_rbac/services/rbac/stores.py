"""
权限聚合所依赖的存储适配器

- ResourceStore / RoleStore 为聚合器消费的只读协议
- Sql* 实现每次调用单独开 Session，便于多个角色的加载并发进行
- InMemory* 实现用于无数据库场景（脚本、单元测试）

记录类型为不可变 dataclass，可被 pickle 写入 Redis 二级缓存。
ID 在记录中统一以字符串保存。
"""
from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admin_rbac.repositories import ResourceRepository, RoleRepository
from admin_rbac.services.rbac.errors import ResourceNotFoundError, RoleNotFoundError


@dataclass(frozen=True)
class ResourceRecord:
    id: str
    name: str
    type: int
    res_code: str
    whole_id: str
    parent_id: str | None = None
    path: str | None = None
    custom_suffix: str | None = None
    sort_order: int = 0
    created_at: datetime | None = None
    description: str | None = None
    is_active: bool = True

    @classmethod
    def from_orm(cls, resource: Any) -> "ResourceRecord":
        return cls(
            id=str(resource.id),
            name=resource.name,
            type=int(resource.type),
            res_code=resource.res_code,
            whole_id=resource.whole_id,
            parent_id=str(resource.parent_id) if resource.parent_id is not None else None,
            path=resource.path,
            custom_suffix=resource.custom_suffix,
            sort_order=resource.sort_order,
            created_at=resource.created_at,
            description=resource.description,
            is_active=resource.is_active,
        )


@dataclass(frozen=True)
class RoleRecord:
    id: str
    name: str
    is_active: bool = True
    is_super_admin: bool = False
    description: str | None = None

    @classmethod
    def from_orm(cls, role: Any) -> "RoleRecord":
        return cls(
            id=str(role.id),
            name=role.name,
            is_active=role.is_active,
            is_super_admin=role.is_super_admin,
            description=role.description,
        )


class ResourceStore(Protocol):
    async def list_all(self) -> list[ResourceRecord]: ...

    async def get_by_id(self, resource_id: Any) -> ResourceRecord: ...


class RoleStore(Protocol):
    async def get_role(self, role_id: Any) -> RoleRecord: ...

    async def get_resource_ids(self, role_id: Any) -> set[str]: ...


def _parse_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class SqlResourceStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_all(self) -> list[ResourceRecord]:
        async with self.session_factory() as session:
            resources = await ResourceRepository(session).list_all()
            return [ResourceRecord.from_orm(r) for r in resources]

    async def get_by_id(self, resource_id: Any) -> ResourceRecord:
        rid = _parse_uuid(resource_id)
        if rid is None:
            raise ResourceNotFoundError(resource_id)
        async with self.session_factory() as session:
            resource = await ResourceRepository(session).get_by_id(rid)
            if resource is None:
                raise ResourceNotFoundError(resource_id)
            return ResourceRecord.from_orm(resource)


class SqlRoleStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_role(self, role_id: Any) -> RoleRecord:
        rid = _parse_uuid(role_id)
        if rid is None:
            raise RoleNotFoundError(role_id)
        async with self.session_factory() as session:
            role = await RoleRepository(session).get_by_id(rid)
            if role is None:
                raise RoleNotFoundError(role_id)
            return RoleRecord.from_orm(role)

    async def get_resource_ids(self, role_id: Any) -> set[str]:
        rid = _parse_uuid(role_id)
        if rid is None:
            raise RoleNotFoundError(role_id)
        async with self.session_factory() as session:
            ids = await RoleRepository(session).resource_ids(rid)
            return {str(i) for i in ids}


class InMemoryResourceStore:
    def __init__(self, resources: Iterable[ResourceRecord] = ()):
        self._resources: dict[str, ResourceRecord] = {}
        for resource in resources:
            self.put(resource)

    def put(self, resource: ResourceRecord) -> None:
        self._resources[str(resource.id)] = resource

    async def list_all(self) -> list[ResourceRecord]:
        return list(self._resources.values())

    async def get_by_id(self, resource_id: Any) -> ResourceRecord:
        try:
            return self._resources[str(resource_id)]
        except KeyError:
            raise ResourceNotFoundError(resource_id) from None


@dataclass
class _RoleEntry:
    role: RoleRecord
    resource_ids: set[str] = field(default_factory=set)


class InMemoryRoleStore:
    def __init__(self):
        self._roles: dict[str, _RoleEntry] = {}

    def put(self, role: RoleRecord, resource_ids: Iterable[Any] = ()) -> None:
        self._roles[str(role.id)] = _RoleEntry(role=role, resource_ids={str(r) for r in resource_ids})

    def set_resources(self, role_id: Any, resource_ids: Iterable[Any]) -> None:
        self._entry(role_id).resource_ids = {str(r) for r in resource_ids}

    def _entry(self, role_id: Any) -> _RoleEntry:
        try:
            return self._roles[str(role_id)]
        except KeyError:
            raise RoleNotFoundError(role_id) from None

    async def get_role(self, role_id: Any) -> RoleRecord:
        return self._entry(role_id).role

    async def get_resource_ids(self, role_id: Any) -> set[str]:
        return set(self._entry(role_id).resource_ids)
