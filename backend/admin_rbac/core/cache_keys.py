"""缓存 Key 注册表实现。

禁止在业务代码中硬编码缓存 Key，统一从此处生成，便于失效管理。
"""

from __future__ import annotations


class CacheKeys:
    prefix = "rbac"

    # ===== Role =====
    @classmethod
    def role_grant(cls, role_id: str) -> str:
        """单个角色的授权快照（资源 ID 集合 + 超管/启用标记）。"""
        return f"{cls.prefix}:role:{role_id}"

    # ===== Resource =====
    @classmethod
    def resource_catalog(cls) -> str:
        """全量资源目录缓存 key。"""
        return f"{cls.prefix}:catalog"

    # ===== Enum =====
    @classmethod
    def enum_options(cls, name: str) -> str:
        """枚举选项缓存 key（供前端下拉、标签渲染使用）。"""
        return f"{cls.prefix}:enum:{name}"
