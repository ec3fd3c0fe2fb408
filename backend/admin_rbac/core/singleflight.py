"""
单航班（single-flight）缓存

同一个 key 在缓存未命中时，无论有多少并发调用方，只会触发一次底层加载：
- 已缓存且未过期：直接返回
- 正在加载：等待同一个加载结果（成功值或同一个异常对象）
- 否则：发起加载，成功后写入缓存；失败不缓存，下一次调用会重新加载

状态机（每个 key）:
    EMPTY -> FETCHING -> CACHED   加载成功
    FETCHING -> EMPTY             加载失败
    CACHED -> EMPTY               主动失效 / 过期

实例由调用方显式创建并持有（通常每个进程一个），不使用模块级全局状态。
可选挂载 Redis (CacheService) 作为二级存储，便于多进程共享加载结果。
"""
from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from admin_rbac.core.cache import CacheService
from admin_rbac.core.logging import logger

T = TypeVar("T")


class CacheState(str, Enum):
    EMPTY = "empty"
    FETCHING = "fetching"
    CACHED = "cached"


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    joins: int = 0
    fetches: int = 0
    failures: int = 0


@dataclass
class _Entry(Generic[T]):
    value: T
    expires_at: float | None


class SingleFlightCache(Generic[T]):
    """
    带并发合并的异步 Key-Value 缓存。

    in-flight 标记的检查与写入之间没有任何 await，在事件循环内是原子的，
    因此两个并发调用方不可能同时触发同一个 key 的加载。
    加载在独立的 Task 中运行，调用方通过 asyncio.shield 等待：
    单个调用方被取消不会取消共享的加载，其余等待者仍然拿到结果。
    """

    def __init__(
        self,
        name: str = "singleflight",
        ttl: float | None = None,
        remote: CacheService | None = None,
        remote_ttl: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.ttl = ttl
        self._remote = remote
        self._remote_ttl = remote_ttl
        self._clock = clock
        self._values: dict[str, _Entry[T]] = {}
        self._inflight: dict[str, asyncio.Future[T]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self.stats = CacheStats()

    # ===== 查询 =====

    def _lookup(self, key: str) -> _Entry[T] | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            # 过期视为 EMPTY
            del self._values[key]
            return None
        return entry

    def peek(self, key: str) -> T | None:
        """返回已缓存的值（不触发加载）"""
        entry = self._lookup(key)
        return entry.value if entry is not None else None

    def state(self, key: str) -> CacheState:
        if self._lookup(key) is not None:
            return CacheState.CACHED
        if key in self._inflight:
            return CacheState.FETCHING
        return CacheState.EMPTY

    # ===== 加载 =====

    async def get_or_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T:
        entry = self._lookup(key)
        if entry is not None:
            self.stats.hits += 1
            return entry.value

        future = self._inflight.get(key)
        if future is None:
            self.stats.misses += 1
            loop = asyncio.get_running_loop()
            future = loop.create_future()
            future.add_done_callback(_consume_outcome)
            self._inflight[key] = future
            task = loop.create_task(self._run_fetch(key, fetch_fn, future, ttl))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            self.stats.joins += 1

        return await asyncio.shield(future)

    async def _run_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[T]],
        future: asyncio.Future[T],
        ttl: float | None,
    ) -> None:
        self.stats.fetches += 1
        effective_ttl = ttl if ttl is not None else self.ttl
        try:
            value = await self._load(key, fetch_fn, effective_ttl)
        except asyncio.CancelledError:
            self._inflight.pop(key, None)
            future.cancel()
            raise
        except Exception as exc:
            self.stats.failures += 1
            self._inflight.pop(key, None)
            logger.warning(
                "singleflight_fetch_failed",
                extra={"cache": self.name, "key": key, "error": repr(exc)},
            )
            if not future.done():
                future.set_exception(exc)
            return

        expires_at = self._clock() + effective_ttl if effective_ttl is not None else None
        self._values[key] = _Entry(value=value, expires_at=expires_at)
        self._inflight.pop(key, None)
        if not future.done():
            future.set_result(value)

    async def _load(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[T]],
        ttl: float | None,
    ) -> T:
        if self._remote is not None and self._remote.enabled:
            cached = await self._remote.get(self._remote_key(key))
            if cached is not None:
                return cached

        value = await fetch_fn()

        if self._remote is not None and self._remote.enabled:
            await self._remote.set(self._remote_key(key), value, ttl=self._remote_expiry(ttl))
        return value

    def _remote_key(self, key: str) -> str:
        return f"{self.name}:{key}"

    def _remote_expiry(self, ttl: float | None) -> int | None:
        """Redis 副本的过期秒数：显式 remote_ttl 优先，否则跟随本地 TTL（向上取整，带抖动）"""
        if self._remote_ttl is not None:
            return self._remote_ttl
        if ttl is None:
            return None
        return max(CacheService.jitter_ttl(math.ceil(ttl)), 1)

    # ===== 失效 =====

    async def invalidate(self, key: str) -> None:
        """丢弃 key 的缓存值；不会取消正在进行的加载"""
        self._values.pop(key, None)
        if self._remote is not None:
            await self._remote.delete(self._remote_key(key))

    async def invalidate_prefix(self, prefix: str) -> int:
        keys = [k for k in self._values if k.startswith(prefix)]
        for k in keys:
            del self._values[k]
        if self._remote is not None:
            await self._remote.clear_prefix(self._remote_key(prefix))
        return len(keys)

    async def invalidate_all(self) -> None:
        self._values.clear()
        if self._remote is not None:
            await self._remote.clear_prefix(f"{self.name}:")
        logger.info("singleflight_cache_cleared", extra={"cache": self.name})

    def __len__(self) -> int:
        return len(self._values)


def _consume_outcome(future: asyncio.Future[Any]) -> None:
    # 所有等待者都被取消时，避免 "exception was never retrieved" 告警
    if not future.cancelled():
        future.exception()
