"""
权限树相关 Pydantic Schema
"""
from pydantic import Field

from admin_rbac.constants.resources import ResourceType
from admin_rbac.schemas.base import BaseSchema


class PermissionTreeNode(BaseSchema):
    """
    三态权限树节点（派生数据，不落库）

    - is_assigned: 该资源 ID 在聚合授权集合中
    - is_indeterminate: 自身未分配，但存在已分配（或半选）的后代
    """
    resource_id: str
    resource_name: str
    resource_type: ResourceType
    resource_path: str | None = None
    res_code: str
    parent_id: str | None = None
    level: int = 0
    is_assigned: bool = False
    is_indeterminate: bool = False
    children: list["PermissionTreeNode"] = Field(default_factory=list)


class PermissionPreviewRequest(BaseSchema):
    role_ids: list[str] = Field(default_factory=list, description="角色 ID 列表")


class PermissionPreviewResponse(BaseSchema):
    role_ids: list[str]
    is_super_admin: bool = False
    missing_role_ids: list[str] = Field(default_factory=list)
    tree: list[PermissionTreeNode] = Field(default_factory=list)
    assigned_resource_ids: list[str] = Field(default_factory=list)


class PermissionCheckRequest(BaseSchema):
    role_ids: list[str] = Field(default_factory=list, description="角色 ID 列表")
    resource: str = Field(..., min_length=1, description="资源 ID 或 res_code")


class PermissionCheckResponse(BaseSchema):
    resource: str
    allowed: bool


class RolePermissionTreeResponse(BaseSchema):
    role_id: str
    role_name: str
    permission_tree: list[PermissionTreeNode] = Field(default_factory=list)
