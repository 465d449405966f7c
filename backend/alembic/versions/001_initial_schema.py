"""Initial schema — accounts, servers, cameras, analytics, attachments and result tables.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _result_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "primary_analytics_id", sa.Integer,
            sa.ForeignKey("primary_analytics.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("cctv_id", sa.Integer, sa.ForeignKey("cctv.id", ondelete="CASCADE"), nullable=False),
        sa.Column("datetime_send", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


RESULT_TABLES = (
    "activity_monitoring", "weapon_detection", "animal_population", "nomor_lambung", "ppe_detection",
)


def upgrade() -> None:
    # Accounts
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password", sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(191), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        "permissions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(191), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        "roles_users",
        sa.Column("role_id", sa.Integer, sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_table(
        "permissions_roles",
        sa.Column(
            "permission_id", sa.Integer,
            sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("role_id", sa.Integer, sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    )

    # Infrastructure
    op.create_table(
        "servers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("ip", sa.String(191), nullable=False, unique=True),
        sa.Column("description", sa.String(191), nullable=True),
        sa.Column("max_activity_monitoring", sa.Integer, nullable=False, server_default="0"),
        sa.Column("cur_activity_monitoring", sa.Integer, nullable=False, server_default="0"),
        sa.Column("max_nomor_lambung", sa.Integer, nullable=False, server_default="0"),
        sa.Column("cur_nomor_lambung", sa.Integer, nullable=False, server_default="0"),
        sa.Column("max_ppe_detection", sa.Integer, nullable=False, server_default="0"),
        sa.Column("cur_ppe_detection", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_table(
        "cctv",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("cctv_name", sa.String(191), nullable=False),
        sa.Column("ip_cctv", sa.String(191), nullable=True),
        sa.Column("ip_server", sa.String(191), nullable=True),
        sa.Column("rtsp", sa.String(191), nullable=False),
        sa.Column("embed", sa.String(191), nullable=True),
        sa.Column("latitude", sa.String(191), nullable=True),
        sa.Column("longitude", sa.String(191), nullable=True),
        sa.Column("type_streaming", sa.Enum("embed", "m3u8", name="type_streaming"), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("polygon_img", sa.Text, nullable=False),
        *_timestamps(),
    )

    # Analytics
    op.create_table(
        "type_analytic",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(191), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        "sub_type_analytic",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(191), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "primary_analytics",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("servers_id", sa.Integer, sa.ForeignKey("servers.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "type_analytic_id", sa.Integer,
            sa.ForeignKey("type_analytic.id", ondelete="RESTRICT"), nullable=False,
        ),
        sa.Column("name", sa.String(191), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String(191), nullable=False, server_default="pending"),
        *_timestamps(),
    )
    op.create_table(
        "cctv_primary_analytics",
        sa.Column("cctv_id", sa.Integer, sa.ForeignKey("cctv.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "primary_analytics_id", sa.Integer,
            sa.ForeignKey("primary_analytics.id", ondelete="CASCADE"), primary_key=True,
        ),
    )
    op.create_table(
        "sub_analytics",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "primary_analytic_id", sa.Integer,
            sa.ForeignKey("primary_analytics.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "sub_type_analytic_id", sa.Integer,
            sa.ForeignKey("sub_type_analytic.id", ondelete="CASCADE"), nullable=False,
        ),
        *_timestamps(),
    )

    # Attachments
    op.create_table(
        "model_has_values",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("model_id", sa.Integer, nullable=False, index=True),
        sa.Column("model_type", sa.String(191), nullable=False),
        sa.Column("value_name", sa.String(191), nullable=False),
        sa.Column("value", sa.String(191), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "model_has_polygons",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(191), nullable=False, server_default="receptionist"),
        sa.Column("cctv_id", sa.Integer, sa.ForeignKey("cctv.id", ondelete="CASCADE"), nullable=False),
        sa.Column("model_id", sa.Integer, nullable=False, index=True),
        sa.Column("model_type", sa.String(191), nullable=False),
        sa.Column("polygon", sa.JSON, nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "model_has_embeds",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("cctv_id", sa.Integer, sa.ForeignKey("cctv.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "model_id", sa.Integer,
            sa.ForeignKey("primary_analytics.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("embed", sa.Text, nullable=False),
        *_timestamps(),
    )

    # Detection results
    op.create_table(
        "activity_monitoring",
        *_result_columns(),
        sa.Column("capture_img", sa.Text, nullable=True),
        sa.Column("sub_type_analytic", sa.String(191), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "weapon_detection",
        *_result_columns(),
        sa.Column("weapon_type", sa.String(191), nullable=False),
        sa.Column("capture_img", sa.Text, nullable=True),
        sa.Column("confidence", sa.Float, nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "animal_population",
        *_result_columns(),
        sa.Column("total", sa.Integer, nullable=False),
        sa.Column("normal", sa.Integer, nullable=False),
        sa.Column("sick", sa.Integer, nullable=False),
        sa.Column("dead", sa.Integer, nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "nomor_lambung",
        *_result_columns(),
        sa.Column("status", sa.String(191), nullable=False),
        sa.Column("avg_speed", sa.Float, nullable=False),
        sa.Column("max_speed", sa.Float, nullable=False),
        sa.Column("no_lambung", sa.String(191), nullable=False),
        sa.Column("capture_img", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "ppe_detection",
        *_result_columns(),
        sa.Column("object_id", sa.Integer, nullable=True),
        sa.Column("vest", sa.Boolean, nullable=True),
        sa.Column("helmet", sa.Boolean, nullable=True),
        sa.Column("mask", sa.Boolean, nullable=True),
        sa.Column("gloves", sa.Boolean, nullable=True),
        sa.Column("goggles", sa.Boolean, nullable=True),
        sa.Column("capture_person", sa.String(191), nullable=True),
        *_timestamps(),
    )
    for table in RESULT_TABLES:
        op.create_index(f"ix_{table}_datetime_send", table, ["datetime_send"])


def downgrade() -> None:
    for table in RESULT_TABLES:
        op.drop_index(f"ix_{table}_datetime_send", table_name=table)
        op.drop_table(table)
    for table in (
        "model_has_embeds", "model_has_polygons", "model_has_values",
        "sub_analytics", "cctv_primary_analytics", "primary_analytics",
        "sub_type_analytic", "type_analytic", "cctv", "servers",
        "permissions_roles", "roles_users", "permissions", "roles", "users",
    ):
        op.drop_table(table)
    sa.Enum(name="type_streaming").drop(op.get_bind(), checkfirst=True)
