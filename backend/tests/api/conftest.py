"""
测试配置与 fixtures（API 层）

- 使用内存 SQLite (aiosqlite) 运行真实业务逻辑
- 覆盖 get_db 与权限聚合器依赖，避免连接真实 PostgreSQL
"""
import sys
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# 确保 backend/ 在 sys.path，便于导入 main
BASE_DIR = Path(__file__).resolve().parents[2]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from admin_rbac.core.database import get_db
from admin_rbac.deps.rbac import build_permission_aggregator, get_permission_aggregator
from main import app


@pytest_asyncio.fixture
async def client(session_factory, rbac_cache) -> AsyncGenerator[AsyncClient, None]:
    aggregator = build_permission_aggregator(session_factory, rbac_cache)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_permission_aggregator] = lambda: aggregator
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seeded(client: AsyncClient) -> dict:
    """/system 菜单下挂接口 /api/users/:id 与页面 /system/user"""
    menu = await client.post(
        "/api/v1/admin/resources",
        json={"name": "系统管理", "type": 1, "path": "/system"},
    )
    assert menu.status_code == 201, menu.text
    menu_id = menu.json()["id"]
    api = await client.post(
        "/api/v1/admin/resources",
        json={"name": "用户详情", "type": "API", "path": "/api/users/:id", "parent_id": menu_id},
    )
    page = await client.post(
        "/api/v1/admin/resources",
        json={"name": "用户管理", "type": 2, "path": "/system/user", "parent_id": menu_id, "sort_order": 1},
    )
    assert api.status_code == 201 and page.status_code == 201
    return {"menu": menu.json(), "api": api.json(), "page": page.json()}
