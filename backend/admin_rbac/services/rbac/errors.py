"""
RBAC 领域异常

- 输入类错误（InvalidInputError / UnknownResourceTypeError）与结构类错误
  （StructuralViolationError）必须原样抛给调用方，不做吞并
- NotFoundError 供直接查询使用；多角色聚合时缺失的角色按空授权降级处理
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from admin_rbac.services.rbac.validator import TreeViolation


class RbacError(Exception):
    """Base error for RBAC operations."""


class InvalidInputError(RbacError, ValueError):
    """Malformed path, missing module suffix or empty normalized identifier."""


class UnknownResourceTypeError(InvalidInputError):
    """Resource type outside the closed enumeration."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Unknown resource type: {value!r}")


class StructuralViolationError(RbacError):
    """A write would leave the resource tree structurally invalid."""

    def __init__(self, violations: list["TreeViolation"]):
        self.violations = list(violations)
        summary = "; ".join(v.message for v in self.violations[:5])
        super().__init__(f"{len(self.violations)} structural violation(s): {summary}")


class NotFoundError(RbacError, LookupError):
    """Base error for missing records."""


class ResourceNotFoundError(NotFoundError):
    def __init__(self, resource_id: Any):
        self.resource_id = resource_id
        super().__init__(f"Resource not found: {resource_id}")


class RoleNotFoundError(NotFoundError):
    def __init__(self, role_id: Any):
        self.role_id = role_id
        super().__init__(f"Role not found: {role_id}")


class ResourceInUseError(RbacError):
    """Raised when deleting resources that are still attached to roles."""

    def __init__(self, resource_ids: list[Any]):
        self.resource_ids = list(resource_ids)
        super().__init__(
            f"Resources still attached to roles: {', '.join(str(r) for r in self.resource_ids)}"
        )


class DuplicateRoleNameError(RbacError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Role name already exists: {name}")
