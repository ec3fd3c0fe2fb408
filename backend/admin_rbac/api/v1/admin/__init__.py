"""
Admin API 路由包
"""
from admin_rbac.api.v1.admin.resources_route import router as resources_router
from admin_rbac.api.v1.admin.roles_route import router as roles_router

__all__ = ["resources_router", "roles_router"]
