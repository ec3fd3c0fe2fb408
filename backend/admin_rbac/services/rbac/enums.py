"""
前端枚举查询（资源类型下拉、标签颜色）
"""
from __future__ import annotations

from admin_rbac.constants.resources import RESOURCE_TYPE_OPTIONS, ResourceTypeOption
from admin_rbac.core.cache_keys import CacheKeys
from admin_rbac.core.singleflight import SingleFlightCache

RESOURCE_TYPE_ENUM = "resource_type"


async def resource_type_options(
    cache: SingleFlightCache,
    ttl: float | None = None,
) -> list[ResourceTypeOption]:
    async def _fetch() -> tuple[ResourceTypeOption, ...]:
        return RESOURCE_TYPE_OPTIONS

    options = await cache.get_or_fetch(CacheKeys.enum_options(RESOURCE_TYPE_ENUM), _fetch, ttl=ttl)
    return list(options)
