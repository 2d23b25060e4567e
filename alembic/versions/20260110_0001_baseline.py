"""Baseline: devices and presets.

Revision ID: 20260110_0001
Revises: 
Create Date: 2026-01-10 00:00:00
""" # pylint: disable=invalid-name

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20260110_0001"  # pylint: disable=invalid-name
down_revision = None  # pylint: disable=invalid-name
branch_labels = None  # pylint: disable=invalid-name
depends_on = None  # pylint: disable=invalid-name


def upgrade() -> None:
    """Create the devices and presets tables."""
    op.create_table(
        "devices",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("ip_address", sa.String(length=45), nullable=False),
        sa.Column("mac_address", sa.String(length=17), nullable=True),
        sa.Column("last_seen", sa.DateTime(), nullable=True),
        sa.Column("device_info", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id", name="devices_pkey"),
    )
    op.create_index("devices_ip_address_idx", "devices", ["ip_address"], unique=True)

    op.create_table(
        "presets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("color", postgresql.ARRAY(sa.Integer()), nullable=False),
        sa.Column("brightness", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["device_id"], ["devices.id"], name="presets_device_id_fkey", ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id", name="presets_pkey"),
    )
    op.create_index("presets_device_id_idx", "presets", ["device_id"])
    op.create_index("presets_user_id_idx", "presets", ["user_id"])


def downgrade() -> None:
    """Drop the devices and presets tables."""
    op.drop_index("presets_user_id_idx", table_name="presets")
    op.drop_index("presets_device_id_idx", table_name="presets")
    op.drop_table("presets")
    op.drop_index("devices_ip_address_idx", table_name="devices")
    op.drop_table("devices")
