"""Database module for miniX.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from minix.db.engine import create_db_engine, get_engine
from minix.db.models import (
    Base,
    Comment,
    DmConversation,
    DmMedia,
    DmMessage,
    DmParticipant,
    Post,
    User,
)
from minix.db.session import get_db, is_unique_violation, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    "is_unique_violation",
    # Base
    "Base",
    # Models
    "User",
    "DmConversation",
    "DmParticipant",
    "DmMessage",
    "DmMedia",
    "Post",
    "Comment",
]
