"""Create reaction tracking, role toggle and static message tables

Revision ID: 5c1e7a0d9b42
Revises:
Create Date: 2026-10-19 10:12:03.118204

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c1e7a0d9b42'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the five tables backing reactions, roles and live messages."""

    # --- reaction_tracks ---
    op.create_table(
        "reaction_tracks",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("guild_id", sa.BigInteger, nullable=False),
        sa.Column("emoji_key", sa.String(100), nullable=False),
        sa.Column("emoji_name", sa.String(100), nullable=True),
        sa.Column("emoji_animated", sa.Boolean, nullable=True, server_default=sa.false()),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=True,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("guild_id", "emoji_key", name="uq_reaction_tracks_guild_emoji"),
    )

    # --- reaction_records ---
    op.create_table(
        "reaction_records",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("guild_id", sa.BigInteger, nullable=False),
        sa.Column("channel_id", sa.BigInteger, nullable=True),
        sa.Column("message_id", sa.BigInteger, nullable=False),
        sa.Column("user_id", sa.BigInteger, nullable=False),
        sa.Column("emoji_key", sa.String(100), nullable=False),
        sa.Column("emoji_name", sa.String(100), nullable=True),
        sa.Column("count", sa.Integer, nullable=False),
        sa.UniqueConstraint(
            "guild_id", "message_id", "emoji_key",
            name="uq_reaction_records_guild_message_emoji",
        ),
    )
    op.create_index(
        "ix_reaction_records_message", "reaction_records", ["guild_id", "message_id"],
    )

    # --- reaction_leaderboard ---
    op.create_table(
        "reaction_leaderboard",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("guild_id", sa.BigInteger, nullable=False),
        sa.Column("user_id", sa.BigInteger, nullable=False),
        sa.Column("emoji_key", sa.String(100), nullable=False),
        sa.Column("emoji_name", sa.String(100), nullable=True),
        sa.Column("count", sa.Integer, nullable=False),
        sa.UniqueConstraint(
            "guild_id", "user_id", "emoji_key",
            name="uq_reaction_leaderboard_guild_user_emoji",
        ),
    )
    op.create_index(
        "ix_reaction_leaderboard_guild_emoji", "reaction_leaderboard", ["guild_id", "emoji_key"],
    )

    # --- role_toggles ---
    op.create_table(
        "role_toggles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("guild_id", sa.BigInteger, nullable=False),
        sa.Column("role_id", sa.BigInteger, nullable=False),
        sa.Column("required_permissions", sa.BigInteger, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.UniqueConstraint("guild_id", "role_id", name="uq_role_toggles_guild_role"),
    )

    # --- static_messages ---
    op.create_table(
        "static_messages",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("guild_id", sa.BigInteger, nullable=False),
        sa.Column("channel_id", sa.BigInteger, nullable=False),
        sa.Column("message_id", sa.BigInteger, nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("config", sa.Text, nullable=True),
        sa.Column("update_cadence", sa.String(10), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=True,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("guild_id", "message_id", name="uq_static_messages_guild_message"),
    )
    op.create_index(
        "ix_static_messages_guild_type",
        "static_messages",
        ["guild_id", "type", "update_cadence"],
    )


def downgrade() -> None:
    """Drop all five tables."""
    op.drop_index("ix_static_messages_guild_type", table_name="static_messages")
    op.drop_table("static_messages")
    op.drop_table("role_toggles")
    op.drop_index("ix_reaction_leaderboard_guild_emoji", table_name="reaction_leaderboard")
    op.drop_table("reaction_leaderboard")
    op.drop_index("ix_reaction_records_message", table_name="reaction_records")
    op.drop_table("reaction_records")
    op.drop_table("reaction_tracks")
