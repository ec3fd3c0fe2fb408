"""
ORM 基类与通用列

资源、角色两张主表共用：UUID 主键、启用标记、带时区的创建 / 更新时间。
关联表 role_resource 只继承 Base。
"""
import uuid
from datetime import datetime

from sqlalchemy import UUID as SA_UUID
from sqlalchemy import Boolean, DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from admin_rbac.utils.time_utils import Datetime

# 约束命名与迁移脚本中的显式命名保持一致
RBAC_NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=RBAC_NAMING_CONVENTION)


class UUIDPrimaryKeyMixin:
    # 服务端在写入前预分配 id，用于推导 whole_id
    id: Mapped[uuid.UUID] = mapped_column(SA_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


class ActiveFlagMixin:
    """停用的资源仍参与树结构；停用的角色不授予任何资源"""

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true", comment="是否启用"
    )


class TimestampMixin:
    # created_at 同时作为同级排序的次要键
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=Datetime.now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=Datetime.now, onupdate=Datetime.now, nullable=False
    )
