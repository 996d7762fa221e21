"""Direct message schema - users, dm_conversations, dm_participants, dm_media, dm_messages

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Identifiers are opaque text (UUID4 strings by default) so that directory
contacts keep their configured ids. Timestamps are written by the
application; server defaults only cover manual inserts.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ==========================================================================
    # users table
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )

    # ==========================================================================
    # dm_conversations table
    # ==========================================================================
    op.create_table(
        "dm_conversations",
        sa.Column("id", sa.Text(), nullable=False),
        # "<min user id>:<max user id>"; one conversation per pair
        sa.Column("pair_key", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("last_activity_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("last_message_id", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pair_key", name="uq_dm_conversations_pair_key"),
    )

    # ==========================================================================
    # dm_participants table
    # ==========================================================================
    op.create_table(
        "dm_participants",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("conversation_id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["conversation_id"],
            ["dm_conversations.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("conversation_id", "user_id", name="uq_dm_participants_member"),
    )
    op.create_index("ix_dm_participants_user_id", "dm_participants", ["user_id"])

    # ==========================================================================
    # dm_media table
    # ==========================================================================
    op.create_table(
        "dm_media",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("filename", sa.Text(), nullable=True),
        sa.Column("media_url", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # ==========================================================================
    # dm_messages table
    # ==========================================================================
    op.create_table(
        "dm_messages",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("conversation_id", sa.Text(), nullable=False),
        sa.Column("sender_id", sa.Text(), nullable=False),
        sa.Column("text", sa.Text(), server_default="", nullable=False),
        sa.Column("media_id", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["conversation_id"],
            ["dm_conversations.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"]),
        sa.ForeignKeyConstraint(
            ["media_id"],
            ["dm_media.id"],
            ondelete="SET NULL",
        ),
    )
    op.create_index(
        "ix_dm_messages_conversation_created",
        "dm_messages",
        ["conversation_id", "created_at"],
    )


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key dependencies)
    op.drop_index("ix_dm_messages_conversation_created", table_name="dm_messages")
    op.drop_table("dm_messages")
    op.drop_table("dm_media")
    op.drop_index("ix_dm_participants_user_id", table_name="dm_participants")
    op.drop_table("dm_participants")
    op.drop_table("dm_conversations")
    op.drop_table("users")
