"""
RBAC 核心服务模块
"""
from admin_rbac.services.rbac.aggregator import (
    PermissionAggregator,
    PermissionNode,
    PermissionResolution,
    RoleGrant,
)
from admin_rbac.services.rbac.errors import (
    DuplicateRoleNameError,
    InvalidInputError,
    NotFoundError,
    RbacError,
    ResourceInUseError,
    ResourceNotFoundError,
    RoleNotFoundError,
    StructuralViolationError,
    UnknownResourceTypeError,
)
from admin_rbac.services.rbac.resource_service import ResourceService
from admin_rbac.services.rbac.role_permission_service import RolePermissionService
from admin_rbac.services.rbac.stores import (
    InMemoryResourceStore,
    InMemoryRoleStore,
    ResourceRecord,
    RoleRecord,
    SqlResourceStore,
    SqlRoleStore,
)
from admin_rbac.services.rbac.validator import TreeValidator, TreeViolation, ViolationKind

__all__ = [
    "DuplicateRoleNameError",
    "InMemoryResourceStore",
    "InMemoryRoleStore",
    "InvalidInputError",
    "NotFoundError",
    "PermissionAggregator",
    "PermissionNode",
    "PermissionResolution",
    "RbacError",
    "ResourceInUseError",
    "ResourceNotFoundError",
    "ResourceRecord",
    "ResourceService",
    "RoleGrant",
    "RoleNotFoundError",
    "RolePermissionService",
    "RoleRecord",
    "SqlResourceStore",
    "SqlRoleStore",
    "StructuralViolationError",
    "TreeValidator",
    "TreeViolation",
    "UnknownResourceTypeError",
    "ViolationKind",
]
