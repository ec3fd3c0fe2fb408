"""
资源相关 Pydantic Schema
"""
from uuid import UUID

from pydantic import Field, field_validator

from admin_rbac.constants.resources import ResourceType
from admin_rbac.schemas.base import BaseSchema, IDSchema, TimestampSchema


class ResourceCreate(BaseSchema):
    """创建资源请求；res_code 由服务端根据 type + path（或 custom_suffix）生成"""
    name: str = Field(..., min_length=1, max_length=100, description="资源名称")
    type: ResourceType = Field(..., description="资源类型 1=菜单 2=页面 3=接口 4=模块")
    path: str | None = Field(None, max_length=255, description="路由 / 接口路径（MENU/PAGE/API 必填）")
    custom_suffix: str | None = Field(None, max_length=100, description="模块自定义码（MODULE 必填）")
    parent_id: UUID | None = Field(None, description="父级资源 ID，空表示根")
    sort_order: int = Field(0, ge=0, description="同级排序，升序")
    description: str | None = Field(None, description="描述")
    is_active: bool = Field(True, description="是否启用")

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        # 延迟导入，避免 schema 层与 service 层循环依赖
        from admin_rbac.services.rbac.res_code import coerce_resource_type

        return coerce_resource_type(value)


class ResourceUpdate(BaseSchema):
    """更新资源请求：type / res_code 创建后不可修改"""
    name: str | None = Field(None, min_length=1, max_length=100, description="资源名称")
    path: str | None = Field(None, max_length=255, description="路径元数据")
    description: str | None = Field(None, description="描述")
    sort_order: int | None = Field(None, ge=0, description="同级排序")
    is_active: bool | None = Field(None, description="是否启用")


class ResourceMove(BaseSchema):
    """移动资源请求；new_parent_id 为空表示移动到根"""
    new_parent_id: UUID | None = Field(None, description="新的父级资源 ID")


class ResourceRead(IDSchema, TimestampSchema):
    """资源读取响应"""
    name: str
    type: ResourceType
    path: str | None = None
    custom_suffix: str | None = None
    res_code: str
    parent_id: UUID | None = None
    whole_id: str
    sort_order: int
    description: str | None = None
    is_active: bool


class ResourceTreeRead(ResourceRead):
    """资源树节点"""
    level: int = 0
    children: list["ResourceTreeRead"] = Field(default_factory=list)


class ResCodeRequest(BaseSchema):
    """资源码生成请求（管理端预览用）"""
    type: int | str = Field(..., description="资源类型")
    path: str | None = Field(None, description="路径")
    custom_suffix: str | None = Field(None, description="模块自定义码")


class ResCodeResponse(BaseSchema):
    res_code: str
    type: ResourceType
    suffix: str


class ResourceTypeOptionRead(BaseSchema):
    value: int
    label: str
    color: str
    description: str
    disabled: bool = False


class TreeViolationRead(BaseSchema):
    kind: str
    resource_id: str
    message: str


class TreeValidationResponse(BaseSchema):
    is_valid: bool
    violations: list[TreeViolationRead] = Field(default_factory=list)
