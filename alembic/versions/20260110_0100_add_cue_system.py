"""Add shows, cues with timed steps, and cue lists.

Revision ID: 20260110_0100
Revises: 20260110_0001
Create Date: 2026-01-10 12:00:00
"""  # pylint: disable=invalid-name

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20260110_0100"  # pylint: disable=invalid-name
down_revision = "20260110_0001"  # pylint: disable=invalid-name
branch_labels = None  # pylint: disable=invalid-name
depends_on = None  # pylint: disable=invalid-name


def _timestamps(updated: bool = True):
    columns = [sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True))
    return columns


def upgrade() -> None:
    """Create show, cue, cue step and cue list tables."""
    op.create_table(
        "shows",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="shows_pkey"),
    )
    op.create_index("shows_user_id_idx", "shows", ["user_id"])

    op.create_table(
        "cues",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("show_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["show_id"], ["shows.id"], name="cues_show_id_fkey", ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="cues_pkey"),
    )
    op.create_index("cues_show_id_idx", "cues", ["show_id"])
    op.create_index("cues_user_id_idx", "cues", ["user_id"])

    op.create_table(
        "cue_steps",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("cue_id", sa.Integer(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("time_offset", sa.Numeric(10, 2), nullable=False),
        sa.Column("transition_duration", sa.Numeric(10, 2), nullable=False),
        sa.Column("target_color", postgresql.ARRAY(sa.Integer()), nullable=False),
        sa.Column("target_brightness", sa.Integer(), nullable=True),
        sa.Column("start_color", postgresql.ARRAY(sa.Integer()), nullable=False),
        sa.Column("start_brightness", sa.Integer(), nullable=True),
        sa.Column("turn_off", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["cue_id"], ["cues.id"], name="cue_steps_cue_id_fkey", ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="cue_steps_pkey"),
    )
    op.create_index("cue_steps_cue_id_idx", "cue_steps", ["cue_id"])
    op.create_index("cue_steps_cue_id_order_idx", "cue_steps", ["cue_id", "order"])
    op.alter_column("cue_steps", "turn_off", server_default=None)

    op.create_table(
        "cue_step_devices",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("cue_step_id", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["cue_step_id"], ["cue_steps.id"], name="cue_step_devices_cue_step_id_fkey", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["device_id"], ["devices.id"], name="cue_step_devices_device_id_fkey", ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="cue_step_devices_pkey"),
        sa.UniqueConstraint("cue_step_id", "device_id", name="cue_step_devices_cue_step_id_device_id_key"),
    )
    op.create_index("cue_step_devices_cue_step_id_idx", "cue_step_devices", ["cue_step_id"])
    op.create_index("cue_step_devices_device_id_idx", "cue_step_devices", ["device_id"])

    op.create_table(
        "cue_lists",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("show_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("current_position", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["show_id"], ["shows.id"], name="cue_lists_show_id_fkey", ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="cue_lists_pkey"),
    )
    op.create_index("cue_lists_show_id_idx", "cue_lists", ["show_id"])
    op.create_index("cue_lists_user_id_idx", "cue_lists", ["user_id"])

    op.create_table(
        "cue_list_cues",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("cue_list_id", sa.Integer(), nullable=False),
        sa.Column("cue_id", sa.Integer(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["cue_list_id"], ["cue_lists.id"], name="cue_list_cues_cue_list_id_fkey", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["cue_id"], ["cues.id"], name="cue_list_cues_cue_id_fkey", ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name="cue_list_cues_pkey"),
        sa.UniqueConstraint("cue_list_id", "cue_id", name="cue_list_cues_cue_list_id_cue_id_key"),
        sa.UniqueConstraint("cue_list_id", "order", name="cue_list_cues_cue_list_id_order_key"),
    )
    op.create_index("cue_list_cues_cue_list_id_idx", "cue_list_cues", ["cue_list_id"])
    op.create_index("cue_list_cues_cue_id_idx", "cue_list_cues", ["cue_id"])


def downgrade() -> None:
    """Drop cue list, cue step, cue and show tables."""
    op.drop_table("cue_list_cues")
    op.drop_table("cue_lists")
    op.drop_table("cue_step_devices")
    op.drop_table("cue_steps")
    op.drop_table("cues")
    op.drop_table("shows")
