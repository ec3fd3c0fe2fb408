from .resource_repository import ResourceRepository
from .role_repository import RoleRepository

__all__ = [
    "ResourceRepository",
    "RoleRepository",
]
