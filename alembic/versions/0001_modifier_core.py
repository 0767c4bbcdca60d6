from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "0001_modifier_core"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if not _has_table(inspector, "categories"):
        op.create_table(
            "categories",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        )

    if not _has_table(inspector, "products"):
        op.create_table(
            "products",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("code", sa.String(), nullable=False, unique=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=True),
            sa.Column("price", sa.Numeric(10, 2), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        )
        op.create_index("ix_products_category_id", "products", ["category_id"], unique=False)

    if not _has_table(inspector, "modifiers"):
        op.create_table(
            "modifiers",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("selection_type", sa.String(length=16), nullable=False, server_default="single"),
            sa.Column("min_choices", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("max_choices", sa.Integer(), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_modifiers_name", "modifiers", ["name"], unique=False)

    if not _has_table(inspector, "modifier_options"):
        op.create_table(
            "modifier_options",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "modifier_id",
                sa.Integer(),
                sa.ForeignKey("modifiers.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("price_delta", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        )
        op.create_index("ix_modifier_options_modifier_id", "modifier_options", ["modifier_id"], unique=False)

    if not _has_table(inspector, "modifier_assignments"):
        op.create_table(
            "modifier_assignments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("modifier_id", sa.Integer(), sa.ForeignKey("modifiers.id"), nullable=False),
            sa.Column("entity_type", sa.String(length=16), nullable=False),
            sa.Column("entity_id", sa.Integer(), nullable=False),
            sa.UniqueConstraint("modifier_id", "entity_type", "entity_id", name="uq_modifier_assignment"),
        )
        op.create_index("ix_modifier_assignments_modifier_id", "modifier_assignments", ["modifier_id"], unique=False)
        op.create_index(
            "ix_modifier_assignments_entity",
            "modifier_assignments",
            ["entity_type", "entity_id"],
            unique=False,
        )

    if not _has_table(inspector, "staff_users"):
        op.create_table(
            "staff_users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("username", sa.String(), nullable=False, unique=True),
            sa.Column("display_name", sa.String(), nullable=True),
            sa.Column("password_hash", sa.String(), nullable=False),
            sa.Column("role", sa.String(), nullable=False, server_default="cashier"),
            sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_staff_users_id", "staff_users", ["id"], unique=False)

    if not _has_table(inspector, "modifier_audit_log"):
        op.create_table(
            "modifier_audit_log",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("action", sa.String(length=64), nullable=False),
            sa.Column("modifier_id", sa.Integer(), nullable=True),
            sa.Column("target_type", sa.String(length=16), nullable=True),
            sa.Column("target_id", sa.Integer(), nullable=True),
            sa.Column("changes_json", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_modifier_audit_log_user_id", "modifier_audit_log", ["user_id"], unique=False)
        op.create_index("ix_modifier_audit_log_modifier_id", "modifier_audit_log", ["modifier_id"], unique=False)


def downgrade() -> None:
    op.drop_table("modifier_audit_log")
    op.drop_table("staff_users")
    op.drop_table("modifier_assignments")
    op.drop_table("modifier_options")
    op.drop_table("modifiers")
    op.drop_table("products")
    op.drop_table("categories")
