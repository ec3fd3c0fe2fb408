"""create resource / role / role_resource tables

Revision ID: 20261017_01
Revises:
Create Date: 2026-10-17
"""
import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "resource",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.Integer(), nullable=False),
        sa.Column("path", sa.String(length=255), nullable=True),
        sa.Column("custom_suffix", sa.String(length=100), nullable=True),
        sa.Column("res_code", sa.String(length=255), nullable=False),
        sa.Column(
            "parent_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("resource.id", ondelete="RESTRICT", name="fk_resource_parent_id_resource"),
            nullable=True,
        ),
        sa.Column("whole_id", sa.String(length=1024), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("res_code", name="uq_resource_res_code"),
        sa.CheckConstraint("sort_order >= 0", name="ck_resource_sort_order_non_negative"),
    )
    op.create_index("ix_resource_type", "resource", ["type"])
    op.create_index("ix_resource_parent_id", "resource", ["parent_id"])
    op.create_index("ix_resource_whole_id", "resource", ["whole_id"])

    op.create_table(
        "role",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_super_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("name", name="uq_role_name"),
    )

    op.create_table(
        "role_resource",
        sa.Column("role_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("role.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("resource.id", ondelete="CASCADE"), primary_key=True),
        sa.UniqueConstraint("role_id", "resource_id", name="uq_role_resource"),
    )
    op.create_index("ix_role_resource_resource_id", "role_resource", ["resource_id"])


def downgrade() -> None:
    op.drop_index("ix_role_resource_resource_id", table_name="role_resource")
    op.drop_table("role_resource")
    op.drop_table("role")
    op.drop_index("ix_resource_whole_id", table_name="resource")
    op.drop_index("ix_resource_parent_id", table_name="resource")
    op.drop_index("ix_resource_type", table_name="resource")
    op.drop_table("resource")
