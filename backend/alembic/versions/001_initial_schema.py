"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create listeners table first (no dependencies)
    op.create_table(
        "listeners",
        sa.Column("id", sa.UUID(), nullable=False, server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "listener_metadata",
            sa.dialects.postgresql.JSONB(),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "first_seen_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "last_seen_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # Listening sessions: ended_at and duration stay null while open
    op.create_table(
        "listening_sessions",
        sa.Column("id", sa.UUID(), nullable=False, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("station_uuid", sa.String(64), nullable=False),
        sa.Column("station_name", sa.String(255), nullable=False),
        sa.Column(
            "started_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["listeners.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_listening_sessions_user_id_started_at",
        "listening_sessions",
        ["user_id", "started_at"],
    )

    # Presence: one heartbeat row per listener
    op.create_table(
        "active_listeners",
        sa.Column("id", sa.UUID(), nullable=False, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", sa.UUID(), nullable=False, unique=True),
        sa.Column("station_uuid", sa.String(64), nullable=False),
        sa.Column("station_name", sa.String(255), nullable=False),
        sa.Column(
            "started_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "last_heartbeat",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["listeners.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_active_listeners_station_uuid", "active_listeners", ["station_uuid"])

    # Reactions
    reaction_type = sa.Enum("fire", "wave", "crying", "sleep", name="reaction_type")
    op.create_table(
        "station_reactions",
        sa.Column("id", sa.UUID(), nullable=False, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("station_uuid", sa.String(64), nullable=False),
        sa.Column("station_name", sa.String(255), nullable=False),
        sa.Column("reaction_type", reaction_type, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["listeners.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_station_reactions_user_id", "station_reactions", ["user_id"])
    op.create_index("ix_station_reactions_station_uuid", "station_reactions", ["station_uuid"])

    # Per-listener, per-station counters
    op.create_table(
        "user_station_stats",
        sa.Column("id", sa.UUID(), nullable=False, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("station_uuid", sa.String(64), nullable=False),
        sa.Column("station_name", sa.String(255), nullable=False),
        sa.Column("fire_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wave_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("crying_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sleep_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_listen_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_listened_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["listeners.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "station_uuid", name="uq_user_station_stats"),
    )


def downgrade() -> None:
    op.drop_table("user_station_stats")
    op.drop_index("ix_station_reactions_station_uuid", table_name="station_reactions")
    op.drop_index("ix_station_reactions_user_id", table_name="station_reactions")
    op.drop_table("station_reactions")
    sa.Enum(name="reaction_type").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_active_listeners_station_uuid", table_name="active_listeners")
    op.drop_table("active_listeners")
    op.drop_index("ix_listening_sessions_user_id_started_at", table_name="listening_sessions")
    op.drop_table("listening_sessions")
    op.drop_table("listeners")
