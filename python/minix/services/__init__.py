"""Business logic services.

This module contains service-layer functions that implement business logic.
Services are called by route handlers and orchestrate database operations.
"""

from minix.services.directory import ensure_directory, get_user_directory
from minix.services.dm_conversations import (
    ensure_welcome_thread,
    find_or_create_conversation,
    list_conversations_for_user,
)
from minix.services.dm_messages import list_messages, send_message

__all__ = [
    "ensure_directory",
    "get_user_directory",
    "ensure_welcome_thread",
    "find_or_create_conversation",
    "list_conversations_for_user",
    "list_messages",
    "send_message",
]
