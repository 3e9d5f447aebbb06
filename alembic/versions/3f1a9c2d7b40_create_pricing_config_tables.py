"""create pricing configuration tables

Revision ID: 3f1a9c2d7b40
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1a9c2d7b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    ]


def _actors() -> list[sa.Column]:
    return [
        sa.Column("created_by", sa.String(length=255), nullable=False, server_default=sa.text("'system@local'")),
        sa.Column("updated_by", sa.String(length=255), nullable=False, server_default=sa.text("'system@local'")),
    ]


def upgrade() -> None:
    op.create_table(
        "setting_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("icon", sa.String(length=50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_setting_categories_name"),
    )
    op.create_index("ix_setting_categories_name", "setting_categories", ["name"], unique=False)

    op.create_table(
        "business_settings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("setting_key", sa.String(length=200), nullable=False),
        sa.Column("setting_value", sa.JSON(), nullable=True),
        sa.Column("data_type", sa.String(length=20), nullable=False, server_default=sa.text("'string'")),
        sa.Column("outlet_id", sa.Integer(), nullable=True),
        sa.Column("cylinder_type", sa.String(length=50), nullable=True),
        sa.Column("customer_tier", sa.String(length=20), nullable=True),
        sa.Column("operation_type", sa.String(length=20), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("effective_date", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("expiry_date", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        *_actors(),
        sa.ForeignKeyConstraint(["category_id"], ["setting_categories.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_business_settings_category_id", "business_settings", ["category_id"], unique=False)
    op.create_index("ix_business_settings_setting_key", "business_settings", ["setting_key"], unique=False)
    op.create_index(
        "ix_business_settings_key_scope",
        "business_settings",
        ["setting_key", "outlet_id", "cylinder_type", "customer_tier", "operation_type"],
        unique=False,
    )

    op.create_table(
        "pricing_rules",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("rule_type", sa.String(length=30), nullable=False),
        sa.Column("conditions", sa.JSON(), nullable=False),
        sa.Column("actions", sa.JSON(), nullable=False),
        sa.Column("applies_to", sa.JSON(), nullable=False),
        sa.Column("outlet_ids", sa.JSON(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("effective_date", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("expiry_date", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        *_actors(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pricing_rules_rule_type", "pricing_rules", ["rule_type"], unique=False)

    op.create_table(
        "settings_audit",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("setting_id", sa.Integer(), nullable=True),
        sa.Column("rule_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("changed_by", sa.String(length=255), nullable=False),
        sa.Column("change_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("prev_hash", sa.String(length=64), nullable=True),
        sa.Column("entry_hash", sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_settings_audit_setting_id", "settings_audit", ["setting_id"], unique=False)
    op.create_index("ix_settings_audit_rule_id", "settings_audit", ["rule_id"], unique=False)
    op.create_index("ix_settings_audit_action", "settings_audit", ["action"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_settings_audit_action", table_name="settings_audit")
    op.drop_index("ix_settings_audit_rule_id", table_name="settings_audit")
    op.drop_index("ix_settings_audit_setting_id", table_name="settings_audit")
    op.drop_table("settings_audit")

    op.drop_index("ix_pricing_rules_rule_type", table_name="pricing_rules")
    op.drop_table("pricing_rules")

    op.drop_index("ix_business_settings_key_scope", table_name="business_settings")
    op.drop_index("ix_business_settings_setting_key", table_name="business_settings")
    op.drop_index("ix_business_settings_category_id", table_name="business_settings")
    op.drop_table("business_settings")

    op.drop_index("ix_setting_categories_name", table_name="setting_categories")
    op.drop_table("setting_categories")
