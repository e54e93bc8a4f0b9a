"""initial damage reporting schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


location_enum = sa.Enum("asrama_kampus_1", "asrama_kampus_2", "asrama_kampus_3", name="location")
damage_type_enum = sa.Enum("rehab", "listrik", "air", "taman", "lainnya", name="damagetype")
report_status_enum = sa.Enum("pending", "in_progress", "completed", name="reportstatus")


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=50), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"], unique=False)

    op.create_table(
        "admin_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("admin_id", sa.String(length=50), nullable=False),
        sa.Column("admin_name", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("target_type", sa.String(length=20), nullable=False),
        sa.Column("target_id", sa.String(length=50), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_logs_admin_id", "admin_logs", ["admin_id"], unique=False)
    op.create_index("ix_admin_logs_created_at", "admin_logs", ["created_at"], unique=False)

    op.create_table(
        "damage_reports",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("reporter_name", sa.String(length=100), nullable=False),
        sa.Column("damage_description", sa.Text(), nullable=False),
        sa.Column("location", location_enum, nullable=False),
        sa.Column("damage_type", damage_type_enum, nullable=False),
        sa.Column("photo_url", sa.String(length=500), nullable=True),
        sa.Column("photo_path", sa.String(length=500), nullable=True),
        sa.Column("status", report_status_enum, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_damage_reports_location", "damage_reports", ["location"], unique=False)
    op.create_index("ix_damage_reports_status", "damage_reports", ["status"], unique=False)
    op.create_index("ix_damage_reports_created_at", "damage_reports", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_damage_reports_created_at", table_name="damage_reports")
    op.drop_index("ix_damage_reports_status", table_name="damage_reports")
    op.drop_index("ix_damage_reports_location", table_name="damage_reports")
    op.drop_table("damage_reports")
    op.drop_index("ix_admin_logs_created_at", table_name="admin_logs")
    op.drop_index("ix_admin_logs_admin_id", table_name="admin_logs")
    op.drop_table("admin_logs")
    op.drop_index("ix_user_roles_user_id", table_name="user_roles")
    op.drop_table("user_roles")
    op.drop_index("ix_accounts_email", table_name="accounts")
    op.drop_table("accounts")
    report_status_enum.drop(op.get_bind(), checkfirst=True)
    damage_type_enum.drop(op.get_bind(), checkfirst=True)
    location_enum.drop(op.get_bind(), checkfirst=True)
