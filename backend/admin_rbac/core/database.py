from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from admin_rbac.core.config import settings

# 创建异步引擎
_db_url = settings.DATABASE_URL
_engine_kwargs = {
    "echo": settings.DEBUG,
    "future": True,
    "pool_pre_ping": True,
}
if not _db_url.startswith("sqlite"):
    # 连接池配置（仅非 sqlite 场景启用）
    _engine_kwargs.update(pool_size=20, max_overflow=10)

engine = create_async_engine(_db_url, **_engine_kwargs)

# 创建异步 Session 工厂
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 依赖项: 获取数据库 Session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
