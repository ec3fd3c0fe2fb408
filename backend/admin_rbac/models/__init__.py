from .base import Base
from .rbac import Resource, Role, RoleResource

__all__ = [
    "Base",
    "Resource",
    "Role",
    "RoleResource",
]
