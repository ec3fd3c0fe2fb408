"""
Admin RBAC Service - FastAPI Application Entry Point

启动命令:
    uvicorn main:app --reload --host 0.0.0.0 --port 8000
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_pagination import add_pagination

from admin_rbac.core import AsyncSessionLocal, cache, settings, setup_logging
from admin_rbac.core.logging import logger
from admin_rbac.deps.rbac import build_permission_aggregator
from admin_rbac.services.rbac import (
    DuplicateRoleNameError,
    InvalidInputError,
    NotFoundError,
    ResourceInUseError,
    StructuralViolationError,
)


# 设置日志
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("application_startup", extra={"project": settings.PROJECT_NAME})
    try:
        cache.init()
    except Exception as exc:
        logger.warning(f"cache_init_failed: {exc}")

    yield

    await app.state.permission_aggregator.invalidate_all()
    try:
        await cache.close()
    except Exception as exc:
        logger.warning(f"cache_close_failed: {exc}")
    logger.info("application_shutdown")


def create_app() -> FastAPI:
    """创建 FastAPI 应用"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    # 单航班缓存与权限聚合器：每个应用实例一份
    app.state.permission_aggregator = build_permission_aggregator(AsyncSessionLocal)

    # CORS 配置
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=settings.BACKEND_CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.BACKEND_CORS_ALLOW_METHODS,
        allow_headers=settings.BACKEND_CORS_ALLOW_HEADERS,
    )

    register_exception_handlers(app)
    register_routes(app)
    add_pagination(app)

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """领域异常 -> HTTP 响应"""

    @app.exception_handler(InvalidInputError)
    async def _invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc)},
        )

    @app.exception_handler(StructuralViolationError)
    async def _structural_violation(request: Request, exc: StructuralViolationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": str(exc),
                "violations": [
                    {"kind": v.kind.value, "resource_id": v.resource_id, "message": v.message}
                    for v in exc.violations
                ],
            },
        )

    @app.exception_handler(ResourceInUseError)
    async def _resource_in_use(request: Request, exc: ResourceInUseError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "resource_ids": [str(r) for r in exc.resource_ids]},
        )

    @app.exception_handler(DuplicateRoleNameError)
    async def _duplicate_role(request: Request, exc: DuplicateRoleNameError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


def register_routes(app: FastAPI) -> None:
    """注册所有 API 路由"""
    from admin_rbac.api.v1 import admin_resources_router, admin_roles_router

    api_prefix = settings.API_V1_STR

    app.include_router(admin_resources_router, prefix=api_prefix, tags=["Admin - Resources"])
    app.include_router(admin_roles_router, prefix=api_prefix, tags=["Admin - Roles"])


# 创建应用实例
app = create_app()


def run():
    """脚本入口点"""
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
