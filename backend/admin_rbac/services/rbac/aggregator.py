"""
权限聚合

给定一组角色 ID，计算授权资源并集，并投影到资源树上得到三态权限树：
- is_assigned: 资源 ID 在授权集合中（父级分配不会隐式授予子级）
- is_indeterminate: 自身未分配，但存在已分配或半选的后代
- 任一启用中的超管角色：所有资源视为已分配

每个角色的授权快照与资源目录都经过 SingleFlightCache 加载，
同一 key 的并发请求只会触发一次存储查询。
"""
from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from admin_rbac.core.cache_keys import CacheKeys
from admin_rbac.core.logging import logger
from admin_rbac.core.singleflight import SingleFlightCache
from admin_rbac.services.rbac.errors import NotFoundError
from admin_rbac.services.rbac.stores import ResourceRecord, ResourceStore, RoleStore
from admin_rbac.services.rbac.tree import ResourceTreeNode, build_resource_tree, node_key


@dataclass(frozen=True)
class RoleGrant:
    """单个角色的授权快照"""

    role_id: str
    role_name: str
    is_active: bool
    is_super_admin: bool
    resource_ids: frozenset[str]


@dataclass
class PermissionNode:
    resource_id: str
    resource_name: str
    resource_type: int
    resource_path: str | None
    res_code: str
    parent_id: str | None
    level: int
    is_assigned: bool = False
    is_indeterminate: bool = False
    children: list["PermissionNode"] = field(default_factory=list)


@dataclass
class PermissionResolution:
    tree: list[PermissionNode]
    assigned_ids: list[str]
    is_super_admin: bool = False
    missing_role_ids: list[str] = field(default_factory=list)

    def is_allowed(self, resource_id: Any) -> bool:
        return node_key(resource_id) in set(self.assigned_ids)


class PermissionAggregator:
    """
    缓存实例由调用方创建并注入（每个进程一份），聚合器只负责读取与失效。
    """

    def __init__(
        self,
        role_store: RoleStore,
        resource_store: ResourceStore,
        cache: SingleFlightCache[Any] | None = None,
        role_ttl: float | None = None,
        catalog_ttl: float | None = None,
    ):
        self.role_store = role_store
        self.resource_store = resource_store
        self.cache = cache if cache is not None else SingleFlightCache(name="rbac")
        self.role_ttl = role_ttl
        self.catalog_ttl = catalog_ttl

    # ===== 数据加载 =====

    async def load_role_grant(self, role_id: Any) -> RoleGrant:
        key = node_key(role_id)

        async def _fetch() -> RoleGrant:
            role = await self.role_store.get_role(key)
            resource_ids = await self.role_store.get_resource_ids(key)
            return RoleGrant(
                role_id=role.id,
                role_name=role.name,
                is_active=role.is_active,
                is_super_admin=role.is_super_admin,
                resource_ids=frozenset(node_key(r) for r in resource_ids),
            )

        return await self.cache.get_or_fetch(CacheKeys.role_grant(key), _fetch, ttl=self.role_ttl)

    async def load_catalog(self) -> list[ResourceRecord]:
        async def _fetch() -> tuple[ResourceRecord, ...]:
            return tuple(await self.resource_store.list_all())

        catalog = await self.cache.get_or_fetch(CacheKeys.resource_catalog(), _fetch, ttl=self.catalog_ttl)
        return list(catalog)

    async def collect_grants(self, role_ids: Iterable[Any]) -> tuple[list[RoleGrant], list[str]]:
        """
        并发加载各角色授权，全部结束后再汇总。
        缺失的角色降级为空授权；其余异常在所有加载结束后原样抛出。
        """
        keys = list(dict.fromkeys(node_key(r) for r in role_ids))
        if not keys:
            return [], []

        results = await asyncio.gather(
            *(self.load_role_grant(k) for k in keys),
            return_exceptions=True,
        )

        grants: list[RoleGrant] = []
        missing: list[str] = []
        failure: BaseException | None = None
        for key, result in zip(keys, results):
            if isinstance(result, NotFoundError):
                missing.append(key)
                logger.warning("role_grant_missing", extra={"role_id": key})
            elif isinstance(result, BaseException):
                failure = failure or result
            else:
                grants.append(result)
        if failure is not None:
            raise failure
        return grants, missing

    # ===== 聚合 =====

    async def resolve(
        self,
        role_ids: Iterable[Any],
        catalog: Iterable[Any] | None = None,
    ) -> PermissionResolution:
        grants, missing = await self.collect_grants(role_ids)
        records = list(catalog) if catalog is not None else await self.load_catalog()

        active = [g for g in grants if g.is_active]
        is_super_admin = any(g.is_super_admin for g in active)
        granted: set[str] = set()
        if not is_super_admin:
            for grant in active:
                granted |= grant.resource_ids

        forest = build_resource_tree(records)
        tree = _project(forest, granted, is_super_admin)
        assigned_ids = [node.resource_id for node in _iter_permission_nodes(tree) if node.is_assigned]
        return PermissionResolution(
            tree=tree,
            assigned_ids=assigned_ids,
            is_super_admin=is_super_admin,
            missing_role_ids=missing,
        )

    async def preview_by_role_ids(self, role_ids: Iterable[Any]) -> PermissionResolution:
        """只读预览，用于提交角色分配变更前确认效果"""
        return await self.resolve(role_ids)

    async def check(self, role_ids: Iterable[Any], resource_ref: Any) -> bool:
        """资源 ID 或 res_code 的单点权限判断；未知资源返回 False"""
        resolution = await self.resolve(role_ids)
        ref = node_key(resource_ref)
        for node in _iter_permission_nodes(resolution.tree):
            if node.resource_id == ref or node.res_code == ref:
                return node.is_assigned
        return False

    # ===== 失效 =====

    async def invalidate_role(self, role_id: Any) -> None:
        await self.cache.invalidate(CacheKeys.role_grant(node_key(role_id)))

    async def invalidate_catalog(self) -> None:
        await self.cache.invalidate(CacheKeys.resource_catalog())

    async def invalidate_all(self) -> None:
        await self.cache.invalidate_all()


def _project(forest: list[ResourceTreeNode], granted: set[str], grant_all: bool) -> list[PermissionNode]:
    """先序建节点，再逆序（子节点先于父节点）回填半选状态"""
    roots: list[PermissionNode] = []
    ordered: list[PermissionNode] = []
    stack: list[tuple[ResourceTreeNode, PermissionNode | None]] = [(node, None) for node in reversed(forest)]
    while stack:
        node, parent = stack.pop()
        projected = _permission_node(node, grant_all or node.key in granted)
        (parent.children if parent is not None else roots).append(projected)
        ordered.append(projected)
        stack.extend((child, projected) for child in reversed(node.children))

    for projected in reversed(ordered):
        projected.is_indeterminate = not projected.is_assigned and any(
            c.is_assigned or c.is_indeterminate for c in projected.children
        )
    return roots


def _permission_node(node: ResourceTreeNode, assigned: bool) -> PermissionNode:
    resource = node.resource
    return PermissionNode(
        resource_id=node.key,
        resource_name=resource.name,
        resource_type=int(resource.type),
        resource_path=getattr(resource, "path", None),
        res_code=resource.res_code,
        parent_id=node_key(resource.parent_id) if getattr(resource, "parent_id", None) is not None else None,
        level=node.level,
        is_assigned=assigned,
    )


def _iter_permission_nodes(tree: Iterable[PermissionNode]):
    stack = list(reversed(list(tree)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))
