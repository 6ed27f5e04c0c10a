"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    replay_status = op.create_table(
        "replay_status",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        # Avoid index=True here because we create explicit indexes below.
        sa.Column("workflow", sa.Integer(), nullable=False),
    )
    op.create_index("ix_replay_status_workflow", "replay_status", ["workflow"])

    op.create_table(
        "replay",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("startdate", sa.DateTime(timezone=True), nullable=False),
        sa.Column("enddate", sa.DateTime(timezone=True), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("automatic", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_replay_timestamp", "replay", ["timestamp"])

    op.create_table(
        "replay_job",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("replay_id", sa.Integer(), sa.ForeignKey("replay.id"), nullable=False),
        sa.Column(
            "replay_status_id", sa.Integer(), sa.ForeignKey("replay_status.id"), nullable=False
        ),
        sa.Column("text", sa.Text(), nullable=False, server_default=""),
    )
    op.create_index(
        "ix_replay_job_replay_status", "replay_job", ["replay_id", "replay_status_id"]
    )

    # HRD and VMU gaps share the same sequence-range shape.
    for table, extra in (
        ("hrd_packet_gap", [sa.Column("channel", sa.String(), nullable=False)]),
        (
            "vmu_packet_gap",
            [
                sa.Column("source", sa.Integer(), nullable=False),
                sa.Column("phase", sa.String(), nullable=False),
            ],
        ),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("last_timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.Column("last_sequence_count", sa.Integer(), nullable=False),
            sa.Column("next_timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.Column("next_sequence_count", sa.Integer(), nullable=False),
            *extra,
            sa.Column("replay_id", sa.Integer(), sa.ForeignKey("replay.id"), nullable=True),
            sa.Column("corrupted", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        )
        op.create_index(f"ix_{table}_timestamp", table, ["timestamp"])
    op.create_index("ix_hrd_packet_gap_channel", "hrd_packet_gap", ["channel"])
    op.create_index("ix_vmu_packet_gap_source", "vmu_packet_gap", ["source"])
    op.create_index("ix_vmu_packet_gap_phase", "vmu_packet_gap", ["phase"])

    op.create_table(
        "variable",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("value", sa.String(), nullable=False, server_default=""),
        sa.Column("range_json", sa.JSON(), nullable=True),
        sa.Column("hazardous", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    # The lowest ordinal is where new replays start; the highest is cancellation.
    op.bulk_insert(
        replay_status,
        [
            {"id": 1, "name": "pending", "workflow": 0},
            {"id": 2, "name": "processing", "workflow": 1},
            {"id": 3, "name": "completed", "workflow": 2},
            {"id": 4, "name": "cancelled", "workflow": 3},
        ],
    )


def downgrade() -> None:
    op.drop_table("variable")
    op.drop_index("ix_vmu_packet_gap_phase", table_name="vmu_packet_gap")
    op.drop_index("ix_vmu_packet_gap_source", table_name="vmu_packet_gap")
    op.drop_index("ix_hrd_packet_gap_channel", table_name="hrd_packet_gap")
    for table in ("vmu_packet_gap", "hrd_packet_gap"):
        op.drop_index(f"ix_{table}_timestamp", table_name=table)
        op.drop_table(table)
    op.drop_index("ix_replay_job_replay_status", table_name="replay_job")
    op.drop_table("replay_job")
    op.drop_index("ix_replay_timestamp", table_name="replay")
    op.drop_table("replay")
    op.drop_index("ix_replay_status_workflow", table_name="replay_status")
    op.drop_table("replay_status")
