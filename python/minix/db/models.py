"""SQLAlchemy ORM models for miniX.

Defines all database tables using SQLAlchemy 2.x declarative patterns.

Identifiers are opaque strings (fresh ones are UUID4 text) so directory
contacts, clients and tests may supply their own ids. Timestamps are
generated application-side so that a message's created_at and the
conversation pointer written in the same transaction are identical.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return str(uuid4())


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# Users
# =============================================================================


class User(Base):
    """User account model.

    Created on first login or by directory seeding. Never updated.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


# =============================================================================
# Direct messages
# =============================================================================


class DmConversation(Base):
    """A persistent two-party message thread.

    pair_key is the canonical "<min id>:<max id>" of the two participants.
    Its unique index is what guarantees at most one conversation per pair
    when two find-or-create calls race.
    """

    __tablename__ = "dm_conversations"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    pair_key: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    last_activity_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # No FK: dm_messages already references this table.
    last_message_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    participants: Mapped[list["DmParticipant"]] = relationship(
        "DmParticipant",
        back_populates="conversation",
        order_by="DmParticipant.id",
    )


class DmParticipant(Base):
    """Join row binding a user to a conversation.

    The participant set is fixed when the conversation is created.
    """

    __tablename__ = "dm_participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[str] = mapped_column(
        Text, ForeignKey("dm_conversations.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_dm_participants_member"),
        Index("ix_dm_participants_user_id", "user_id"),
    )

    conversation: Mapped["DmConversation"] = relationship(
        "DmConversation", back_populates="participants"
    )
    user: Mapped["User"] = relationship("User")


class DmMedia(Base):
    """An uploaded media record that messages may reference."""

    __tablename__ = "dm_media"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    filename: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class DmMessage(Base):
    """A single immutable message in a conversation."""

    __tablename__ = "dm_messages"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    conversation_id: Mapped[str] = mapped_column(
        Text, ForeignKey("dm_conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[str] = mapped_column(Text, ForeignKey("users.id"), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    media_id: Mapped[str | None] = mapped_column(
        Text, ForeignKey("dm_media.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_dm_messages_conversation_created", "conversation_id", "created_at"),
    )


# =============================================================================
# Posts & comments
# =============================================================================


class Post(Base):
    """A root message on the public timeline. Its id is its thread id."""

    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    author: Mapped["User"] = relationship("User")
    comments: Mapped[list["Comment"]] = relationship(
        "Comment", back_populates="post", order_by="Comment.created_at"
    )


class Comment(Base):
    """A reply to a post or to another comment.

    conversation_id equals the root post id for every comment in a thread,
    however deeply nested.
    """

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    post_id: Mapped[str] = mapped_column(
        Text, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    replied_to: Mapped[str | None] = mapped_column(
        Text, ForeignKey("comments.id", ondelete="SET NULL"), nullable=True
    )
    conversation_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_comments_post_id", "post_id"),
        Index("ix_comments_conversation_id", "conversation_id"),
    )

    post: Mapped["Post"] = relationship("Post", back_populates="comments")
    author: Mapped["User"] = relationship("User")
