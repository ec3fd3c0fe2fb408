import uuid

from sqlalchemy import UUID as SA_UUID
from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import ActiveFlagMixin, Base, TimestampMixin, UUIDPrimaryKeyMixin


class Resource(Base, UUIDPrimaryKeyMixin, ActiveFlagMixin, TimestampMixin):
    __tablename__ = "resource"
    __table_args__ = (
        CheckConstraint("sort_order >= 0", name="sort_order_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False, comment="资源名称")
    type: Mapped[int] = mapped_column(Integer, nullable=False, index=True, comment="资源类型 1=菜单 2=页面 3=接口 4=模块")
    path: Mapped[str | None] = mapped_column(String(255), nullable=True, comment="路由或接口路径（MODULE 类型忽略）")
    custom_suffix: Mapped[str | None] = mapped_column(String(100), nullable=True, comment="MODULE 类型的自定义码")
    res_code: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, comment="资源码，创建时生成，不可修改")
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        SA_UUID(as_uuid=True),
        ForeignKey("resource.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
        comment="父级资源 ID，空表示根",
    )
    whole_id: Mapped[str] = mapped_column(String(1024), nullable=False, index=True, comment="祖先链 ID，点号分隔")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0", comment="同级排序")
    description: Mapped[str | None] = mapped_column(Text, nullable=True, comment="描述")

    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary="role_resource",
        back_populates="resources",
    )

    def __repr__(self) -> str:
        return f"<Resource(res_code={self.res_code})>"


class Role(Base, UUIDPrimaryKeyMixin, ActiveFlagMixin, TimestampMixin):
    __tablename__ = "role"

    name: Mapped[str] = mapped_column(String(80), unique=True, nullable=False, comment="角色名")
    description: Mapped[str | None] = mapped_column(Text, nullable=True, comment="描述")
    is_super_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false", comment="是否超级管理员")

    resources: Mapped[list[Resource]] = relationship(
        "Resource",
        secondary="role_resource",
        back_populates="roles",
    )

    def __repr__(self) -> str:
        return f"<Role(name={self.name})>"


class RoleResource(Base):
    __tablename__ = "role_resource"
    __table_args__ = (
        UniqueConstraint("role_id", "resource_id", name="uq_role_resource"),
    )

    role_id: Mapped[uuid.UUID] = mapped_column(SA_UUID(as_uuid=True), ForeignKey("role.id", ondelete="CASCADE"), primary_key=True)
    resource_id: Mapped[uuid.UUID] = mapped_column(SA_UUID(as_uuid=True), ForeignKey("resource.id", ondelete="CASCADE"), primary_key=True)
