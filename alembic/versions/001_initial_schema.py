"""Initial schema: seasons, players, weeks, availability, schedules, foursomes,
pairing counts and schedule backups

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "season",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "player",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("handedness", sa.String(), nullable=False),
        sa.Column("time_preference", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["season_id"], ["season.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_player_season_id", "player", ["season_id"])

    op.create_table(
        "week",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("week_date", sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(["season_id"], ["season.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("season_id", "week_number", name="uq_season_week_number"),
    )
    op.create_index("ix_week_season_id", "week", ["season_id"])

    op.create_table(
        "weekavailability",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("week_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["week_id"], ["week.id"]),
        sa.ForeignKeyConstraint(["player_id"], ["player.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("week_id", "player_id", name="uq_week_player_availability"),
    )
    op.create_index("ix_weekavailability_week_id", "weekavailability", ["week_id"])
    op.create_index("ix_weekavailability_player_id", "weekavailability", ["player_id"])

    op.create_table(
        "schedule",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("week_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["week_id"], ["week.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_schedule_week_id", "schedule", ["week_id"])

    op.create_table(
        "foursome",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("schedule_id", sa.Integer(), nullable=False),
        sa.Column("time_slot", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("player_ids", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["schedule_id"], ["schedule.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("schedule_id", "time_slot", "position", name="uq_schedule_slot_position"),
    )
    op.create_index("ix_foursome_schedule_id", "foursome", ["schedule_id"])

    op.create_table(
        "pairingcount",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("player_id_a", sa.Integer(), nullable=False),
        sa.Column("player_id_b", sa.Integer(), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["season_id"], ["season.id"]),
        sa.ForeignKeyConstraint(["player_id_a"], ["player.id"]),
        sa.ForeignKeyConstraint(["player_id_b"], ["player.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("season_id", "player_id_a", "player_id_b", name="uq_season_pairing"),
        sa.CheckConstraint("player_id_a < player_id_b", name="ck_pairing_order"),
        sa.CheckConstraint("count >= 0", name="ck_pairing_count_non_negative"),
    )
    op.create_index("ix_pairingcount_season_id", "pairingcount", ["season_id"])
    op.create_index("ix_pairingcount_player_id_a", "pairingcount", ["player_id_a"])
    op.create_index("ix_pairingcount_player_id_b", "pairingcount", ["player_id_b"])

    op.create_table(
        "schedulebackup",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("schedule_id", sa.Integer(), nullable=False),
        sa.Column("week_id", sa.Integer(), nullable=False),
        sa.Column("snapshot", sa.JSON(), nullable=False),
        sa.Column("checksum", sa.String(length=64), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["schedule_id"], ["schedule.id"]),
        sa.ForeignKeyConstraint(["week_id"], ["week.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_schedulebackup_schedule_id", "schedulebackup", ["schedule_id"])
    op.create_index("ix_schedulebackup_week_id", "schedulebackup", ["week_id"])


def downgrade() -> None:
    op.drop_table("schedulebackup")
    op.drop_table("pairingcount")
    op.drop_table("foursome")
    op.drop_table("schedule")
    op.drop_table("weekavailability")
    op.drop_table("week")
    op.drop_table("player")
    op.drop_table("season")
