import pickle
import random
from typing import Any

from redis.asyncio import Redis, from_url

from admin_rbac.core.config import settings
from admin_rbac.core.logging import logger


class CacheService:
    """
    Redis 缓存服务

    作为进程内单航班缓存的二级存储使用；未配置 REDIS_URL 时所有操作降级为空操作。
    """
    def __init__(self):
        self._redis: Redis | None = None

    def init(self) -> None:
        """初始化 Redis 连接池"""
        if settings.REDIS_URL:
            self._redis = from_url(
                settings.REDIS_URL,
                encoding=settings.REDIS_ENCODING,
                decode_responses=False # 我们手动处理序列化，支持对象缓存
            )
            logger.info(f"Redis initialized at {settings.REDIS_URL}")
        else:
            logger.warning("REDIS_URL not set, cache will be disabled")

    async def close(self) -> None:
        """关闭 Redis 连接"""
        if self._redis:
            await self._redis.close()
            logger.info("Redis connection closed")

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    @property
    def redis(self) -> Redis:
        if not self._redis:
            raise RuntimeError("CacheService not initialized. Call init() first.")
        return self._redis

    def _make_key(self, key: str) -> str:
        return f"{settings.CACHE_PREFIX}{key}"

    async def get(self, key: str) -> Any | None:
        """获取缓存值 (自动反序列化)"""
        if not self._redis: return None
        try:
            data = await self._redis.get(self._make_key(key))
            if data:
                return pickle.loads(data)
        except Exception as e:
            logger.error(f"Cache get error for key {key}: {e}")
        return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = settings.CACHE_DEFAULT_TTL,
        nx: bool | None = None,
    ) -> bool:
        """设置缓存值 (自动序列化)"""
        if not self._redis: return False
        try:
            data = pickle.dumps(value)
            kwargs: dict[str, Any] = {"ex": ttl}
            if nx is not None:
                kwargs["nx"] = nx
            return bool(await self._redis.set(self._make_key(key), data, **kwargs))
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """删除缓存"""
        if not self._redis: return False
        try:
            await self._redis.delete(self._make_key(key))
            return True
        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {e}")
            return False

    async def clear_prefix(self, prefix: str) -> int:
        """根据前缀清除缓存"""
        if not self._redis: return 0
        try:
            # prefix 不需要包含 settings.CACHE_PREFIX，keys 搜索需要完整的 pattern
            pattern = f"{settings.CACHE_PREFIX}{prefix}*"
            keys = await self._redis.keys(pattern)
            if keys:
                return await self._redis.delete(*keys)
            return 0
        except Exception as e:
            logger.error(f"Cache clear_prefix error for {prefix}: {e}")
            return 0

    @staticmethod
    def jitter_ttl(ttl: int, jitter_ratio: float = 0.1) -> int:
        """为 TTL 添加抖动，防止雪崩"""
        if ttl <= 0:
            return ttl
        delta = int(ttl * jitter_ratio)
        return ttl + random.randint(-delta, delta)


# 单例实例（Redis 连接池，进程级）
cache = CacheService()
