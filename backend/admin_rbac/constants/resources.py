"""
资源类型注册表（单一真源）

资源类型是封闭枚举，创建后不可修改；resCode 前缀与类型一一对应。
前端下拉、标签颜色等展示信息也从这里导出。
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ResourceType(IntEnum):
    MENU = 1    # 目录，用于菜单展示
    PAGE = 2    # 页面，用于路由权限控制
    API = 3     # 接口，用于后端接口访问控制
    MODULE = 4  # 模块，用于页面内的操作/按钮权限

    @property
    def prefix(self) -> str:
        return self.name


@dataclass(frozen=True)
class ResourceTypeOption:
    value: int
    label: str
    color: str
    description: str
    disabled: bool = False


RESOURCE_TYPE_OPTIONS: tuple[ResourceTypeOption, ...] = (
    ResourceTypeOption(ResourceType.MENU, "菜单", "primary", "目录资源，用于前端菜单展示"),
    ResourceTypeOption(ResourceType.PAGE, "页面", "info", "页面资源，用于前端路由权限控制，不展示在菜单"),
    ResourceTypeOption(ResourceType.API, "接口", "success", "API接口资源，用于后端接口访问控制"),
    ResourceTypeOption(ResourceType.MODULE, "模块", "warning", "模块资源，用于前端页面内的操作权限"),
)

RESOURCE_TYPE_LABELS: dict[ResourceType, str] = {
    ResourceType(option.value): option.label for option in RESOURCE_TYPE_OPTIONS
}
