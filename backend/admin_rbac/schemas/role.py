"""
角色相关 Pydantic Schema
"""
from uuid import UUID

from pydantic import Field

from admin_rbac.constants.resources import ResourceType
from admin_rbac.schemas.base import BaseSchema, IDSchema, TimestampSchema


class RoleCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=80, description="角色名")
    description: str | None = Field(None, description="描述")
    is_active: bool = Field(True, description="是否启用")
    is_super_admin: bool = Field(False, description="是否超级管理员（隐式持有全部资源）")


class RoleUpdate(BaseSchema):
    name: str | None = Field(None, min_length=1, max_length=80, description="角色名")
    description: str | None = Field(None, description="描述")
    is_active: bool | None = Field(None, description="是否启用")
    is_super_admin: bool | None = Field(None, description="是否超级管理员")


class RoleRead(IDSchema, TimestampSchema):
    name: str
    description: str | None = None
    is_active: bool
    is_super_admin: bool


class AssignResourcesRequest(BaseSchema):
    """整体替换角色的资源集合"""
    resource_ids: list[UUID] = Field(default_factory=list, description="资源 ID 列表")


class BatchAssignRequest(BaseSchema):
    grant_resource_ids: list[UUID] = Field(default_factory=list, description="要授予的资源")
    revoke_resource_ids: list[UUID] = Field(default_factory=list, description="要撤销的资源")


class PermissionDiffRequest(BaseSchema):
    target_resource_ids: list[UUID] = Field(default_factory=list, description="目标资源集合")


class ResourceBrief(BaseSchema):
    resource_id: UUID
    resource_name: str
    resource_type: ResourceType | None = None


class PermissionDiffResponse(BaseSchema):
    role_id: UUID
    role_name: str
    to_grant: list[ResourceBrief] = Field(default_factory=list)
    to_revoke: list[ResourceBrief] = Field(default_factory=list)
    unchanged_count: int = 0
    total_changes: int = 0


class PermissionStatsResponse(BaseSchema):
    role_id: UUID
    role_name: str
    total_resources: int
    assigned_resources: int
    unassigned_resources: int
    permission_coverage: float = Field(..., description="已分配资源占比（百分比）")
    type_distribution: dict[str, int] = Field(default_factory=dict)


class RoleResourcesRead(BaseSchema):
    role_id: UUID
    resource_ids: list[UUID] = Field(default_factory=list)
