"""
RBAC 依赖

单航班缓存与权限聚合器每个进程只创建一份，挂在 app.state 上；
路由通过依赖获取，测试可用 dependency_overrides 替换。
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admin_rbac.core.cache import CacheService, cache
from admin_rbac.core.config import settings
from admin_rbac.core.database import get_db
from admin_rbac.core.singleflight import SingleFlightCache
from admin_rbac.services.rbac import (
    PermissionAggregator,
    ResourceService,
    RolePermissionService,
    SqlResourceStore,
    SqlRoleStore,
)


def build_rbac_cache(remote: CacheService | None = None) -> SingleFlightCache:
    if remote is None and settings.RBAC_USE_REMOTE_CACHE:
        remote = cache
    return SingleFlightCache(name="rbac", remote=remote)


def build_permission_aggregator(
    session_factory: async_sessionmaker[AsyncSession],
    rbac_cache: SingleFlightCache | None = None,
) -> PermissionAggregator:
    return PermissionAggregator(
        role_store=SqlRoleStore(session_factory),
        resource_store=SqlResourceStore(session_factory),
        cache=rbac_cache if rbac_cache is not None else build_rbac_cache(),
        role_ttl=settings.RBAC_ROLE_GRANT_TTL,
        catalog_ttl=settings.RBAC_CATALOG_TTL,
    )


def get_permission_aggregator(request: Request) -> PermissionAggregator:
    return request.app.state.permission_aggregator


def get_rbac_cache(
    aggregator: PermissionAggregator = Depends(get_permission_aggregator),
) -> SingleFlightCache:
    return aggregator.cache


def get_resource_service(
    db: AsyncSession = Depends(get_db),
    aggregator: PermissionAggregator = Depends(get_permission_aggregator),
) -> ResourceService:
    return ResourceService(db, aggregator)


def get_role_permission_service(
    db: AsyncSession = Depends(get_db),
    aggregator: PermissionAggregator = Depends(get_permission_aggregator),
) -> RolePermissionService:
    return RolePermissionService(db, aggregator)
