"""
测试全局配置

- 默认禁用真实 Redis 连接，统一使用内存 DummyRedis
- 数据库使用内存 SQLite (aiosqlite)，每个测试独立建表，互不干扰
- 环境变量需在导入 admin_rbac 之前设置
"""
from __future__ import annotations

import os
import time
from collections.abc import AsyncGenerator
from typing import Any

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("LOG_FILE_PATH", "")
os.environ.setdefault("LOG_ASYNC", "false")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from admin_rbac.core.cache import cache
from admin_rbac.core.config import settings
from admin_rbac.core.singleflight import SingleFlightCache
from admin_rbac.models import Base

settings.REDIS_URL = ""


class DummyRedis:
    """
    轻量内存 Redis 替身，覆盖 CacheService 用到的方法：get/set/delete/keys/flushall

    记录每次 set 的 ex，并按 clock 模拟过期（测试可替换 clock）。
    """

    def __init__(self):
        self.store: dict[str, Any] = {}
        self.ex: dict[str, int | None] = {}
        self.expires_at: dict[str, float] = {}
        self.clock = time.monotonic

    async def get(self, key: str):
        deadline = self.expires_at.get(key)
        if deadline is not None and deadline <= self.clock():
            self.store.pop(key, None)
            self.expires_at.pop(key, None)
        return self.store.get(key)

    async def set(self, key: str, value, ex=None, nx: bool | None = None):
        if nx and await self.get(key) is not None:
            return False
        self.store[key] = value
        self.ex[key] = ex
        if ex is not None:
            self.expires_at[key] = self.clock() + ex
        else:
            self.expires_at.pop(key, None)
        return True

    async def delete(self, *keys):
        removed = 0
        for k in keys:
            removed += 1 if self.store.pop(k, None) is not None else 0
        return removed

    async def keys(self, pattern: str):
        if pattern.endswith("*"):
            prefix = pattern[:-1]
            return [k for k in self.store if k.startswith(prefix)]
        return [k for k in self.store if k == pattern]

    async def flushall(self):
        self.store.clear()
        self.ex.clear()
        self.expires_at.clear()
        self.clock = time.monotonic

    async def close(self):
        return None


# 仅在未被其他 conftest 覆盖时注入 DummyRedis
if getattr(cache, "_redis", None) is None:
    cache._redis = DummyRedis()  # type: ignore[attr-defined]


@pytest_asyncio.fixture(autouse=True)
async def _reset_dummy_redis():
    """每个测试前清空内存 Redis，避免缓存状态串扰"""
    if hasattr(cache._redis, "flushall"):
        await cache._redis.flushall()  # type: ignore[union-attr]
    yield


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def rbac_cache() -> SingleFlightCache:
    return SingleFlightCache(name="rbac-test")
