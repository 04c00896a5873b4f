"""game tables

Revision ID: 3c1f2b7a9d10
Revises:
Create Date: 2026-10-18 09:12:44.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1f2b7a9d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the project, player state, attack and presence tables."""
    op.create_table(
        "projects",
        sa.Column("code", sa.String(length=16), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("review_cooldown_seconds", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("code"),
    )
    op.create_table(
        "player_state",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_code", sa.String(length=16), nullable=False),
        sa.Column("user_name", sa.Text(), nullable=False),
        sa.Column("user_name_norm", sa.Text(), nullable=False),
        sa.Column("review_tokens", sa.Integer(), nullable=False),
        sa.Column("attack_tokens", sa.Integer(), nullable=False),
        sa.Column("shield_tokens", sa.Integer(), nullable=False),
        sa.Column("last_review_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("review_tokens >= 0", name="ck_player_state_review_tokens"),
        sa.CheckConstraint("attack_tokens >= 0", name="ck_player_state_attack_tokens"),
        sa.CheckConstraint("shield_tokens >= 0", name="ck_player_state_shield_tokens"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_code", "user_name_norm", name="uq_player_state_user"),
    )
    op.create_index("ix_player_state_project_code", "player_state", ["project_code"])
    op.create_table(
        "attacks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_code", sa.String(length=16), nullable=False),
        sa.Column("attacker_name", sa.Text(), nullable=False),
        sa.Column("attacker_name_norm", sa.Text(), nullable=False),
        sa.Column("target_name", sa.Text(), nullable=False),
        sa.Column("target_name_norm", sa.Text(), nullable=False),
        sa.Column("pair_key", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("shield_used", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'defended', 'succeeded', 'expired')",
            name="ck_attacks_status",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_attacks_pending_pair",
        "attacks",
        ["project_code", "pair_key"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )
    op.create_index("ix_attacks_target", "attacks", ["project_code", "target_name_norm", "status"])
    op.create_index("ix_attacks_pending", "attacks", ["status", "expires_at"])
    op.create_table(
        "active_sessions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_code", sa.String(length=16), nullable=False),
        sa.Column("user_name", sa.Text(), nullable=False),
        sa.Column("user_name_norm", sa.Text(), nullable=False),
        sa.Column("session_id", sa.Text(), nullable=False),
        sa.Column("last_seen", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_code", "user_name_norm", name="uq_active_sessions_user"),
        sa.UniqueConstraint("session_id"),
    )
    op.create_index("ix_active_sessions_project_code", "active_sessions", ["project_code"])
    op.create_index("ix_active_sessions_last_seen", "active_sessions", ["last_seen"])


def downgrade() -> None:
    """Drop the game tables."""
    op.drop_index("ix_active_sessions_last_seen", table_name="active_sessions")
    op.drop_index("ix_active_sessions_project_code", table_name="active_sessions")
    op.drop_table("active_sessions")
    op.drop_index("ix_attacks_pending", table_name="attacks")
    op.drop_index("ix_attacks_target", table_name="attacks")
    op.drop_index("uq_attacks_pending_pair", table_name="attacks")
    op.drop_table("attacks")
    op.drop_index("ix_player_state_project_code", table_name="player_state")
    op.drop_table("player_state")
    op.drop_table("projects")
