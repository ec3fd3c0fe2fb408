"""
v1 路由聚合
"""
from admin_rbac.api.v1.admin import resources_router as admin_resources_router
from admin_rbac.api.v1.admin import roles_router as admin_roles_router

__all__ = [
    "admin_resources_router",
    "admin_roles_router",
]
