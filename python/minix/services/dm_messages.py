"""Direct message send and read service.

Messages are addressed either to an existing conversation or to a user.
An id that names no conversation is retried as a participant id, and the
conversation with that user is found or created on demand.

Invariants:
- A message and its conversation's last-message pointer are written in one
  transaction, so last_message_id / last_activity_at always name the most
  recently inserted message.
- A payload with blank text and no media is rejected before any write.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from minix.config import Settings
from minix.db.models import DmConversation, DmMessage, new_id, utcnow
from minix.db.session import transaction
from minix.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from minix.logging import get_logger
from minix.schemas.dm import (
    MessageOut,
    SendMessageOut,
    SendPayload,
    SentMessageOut,
)
from minix.services.directory import ensure_directory, fetch_profiles
from minix.services.dm_conversations import (
    find_or_create_conversation,
    get_conversation,
    require_sender_in_conversation,
)
from minix.services.dm_media import fetch_media_map, get_media

logger = get_logger(__name__)


# =============================================================================
# Ingestion
# =============================================================================


def validate_send(sender_id: str | None, payload: SendPayload) -> str:
    """Check a send request before touching the store.

    Returns:
        The sender id, stripped.

    Raises:
        InvalidRequestError: If the sender is missing, or if the payload has
            neither text nor media.
    """
    sender = (sender_id or "").strip()
    if not sender:
        raise InvalidRequestError(message="sender_id is required")
    if not payload.has_content:
        raise InvalidRequestError(message="Message text or media_id is required")
    return sender


def insert_message(
    db: Session, conversation_id: str, sender_id: str, payload: SendPayload
) -> DmMessage:
    """Append a message and move the conversation's last-message pointer to it.

    Text is trimmed. An empty text is stored as "" and is only meaningful
    alongside a media id; callers enforce that.

    Returns:
        The persisted message.
    """
    message = DmMessage(
        id=new_id(),
        conversation_id=conversation_id,
        sender_id=sender_id,
        text=payload.text.strip(),
        media_id=payload.media_id or None,
        created_at=utcnow(),
    )

    with transaction(db):
        db.add(message)
        conversation = db.get(DmConversation, conversation_id)
        if conversation is not None:
            conversation.last_message_id = message.id
            conversation.last_activity_at = message.created_at

    logger.info(
        "dm_message_inserted",
        conversation_id=conversation_id,
        message_id=message.id,
        has_media=message.media_id is not None,
    )
    return message


def send_message_to_conversation(
    db: Session, conversation_id: str, sender_id: str | None, payload: SendPayload
) -> tuple[str, DmMessage]:
    """Send into an existing conversation.

    Raises:
        InvalidRequestError: If the payload is invalid.
        NotFoundError: E_CONVERSATION_NOT_FOUND if the conversation does not exist.
        ForbiddenError: E_SENDER_NOT_IN_CONVERSATION if the sender is not a participant.
    """
    sender = validate_send(sender_id, payload)
    if get_conversation(db, conversation_id) is None:
        raise NotFoundError(ApiErrorCode.E_CONVERSATION_NOT_FOUND, "Conversation not found")

    require_sender_in_conversation(db, conversation_id, sender)
    return conversation_id, insert_message(db, conversation_id, sender, payload)


def send_message_to_participant(
    db: Session,
    participant_id: str,
    sender_id: str | None,
    payload: SendPayload,
    settings: Settings,
) -> tuple[str, DmMessage]:
    """Send to a user, finding or creating the conversation with them.

    Raises:
        InvalidRequestError: If the payload is invalid or the sender and
            participant are the same user.
        NotFoundError: E_PARTICIPANT_NOT_FOUND if the participant does not
            exist, E_USER_NOT_FOUND if the sender does not.
    """
    sender = validate_send(sender_id, payload)
    ensure_directory(db, settings.dm_directory_contacts)

    conversation_id = find_or_create_conversation(db, sender, participant_id)
    return conversation_id, insert_message(db, conversation_id, sender, payload)


def send_message(
    db: Session,
    target_id: str,
    sender_id: str | None,
    payload: SendPayload,
    settings: Settings,
) -> tuple[str, DmMessage]:
    """Send to target_id as a conversation, falling back to it as a user id."""
    try:
        return send_message_to_conversation(db, target_id, sender_id, payload)
    except NotFoundError as exc:
        if exc.code != ApiErrorCode.E_CONVERSATION_NOT_FOUND:
            raise
    return send_message_to_participant(db, target_id, sender_id, payload, settings)


def build_send_response(db: Session, conversation_id: str, message: DmMessage) -> SendMessageOut:
    """Shape a sent message, embedding its media when one is attached."""
    media = get_media(db, message.media_id) if message.media_id else None
    return SendMessageOut(
        dm_event_id=message.id,
        conversation_id=conversation_id,
        message=SentMessageOut(
            id=message.id,
            text=message.text,
            sender_id=message.sender_id,
            media=media,
        ),
    )


# =============================================================================
# Reading
# =============================================================================


def list_messages(db: Session, conversation_id: str, settings: Settings) -> list[MessageOut]:
    """List a conversation's messages oldest first.

    Sender profiles and attached media are resolved in one batch each.
    A message whose media record is gone is returned without media.

    Raises:
        NotFoundError: E_CONVERSATION_NOT_FOUND if the conversation does not exist.
    """
    if get_conversation(db, conversation_id) is None:
        raise NotFoundError(ApiErrorCode.E_CONVERSATION_NOT_FOUND, "Conversation not found")

    messages = db.scalars(
        select(DmMessage)
        .where(DmMessage.conversation_id == conversation_id)
        .order_by(DmMessage.created_at.asc())
    ).all()

    profiles = fetch_profiles(db, (m.sender_id for m in messages), settings)
    media_map = fetch_media_map(db, (m.media_id for m in messages if m.media_id))

    return [
        MessageOut(
            id=message.id,
            text=message.text,
            sender_id=message.sender_id,
            sender=profiles.get(message.sender_id),
            created_at=message.created_at,
            media=media_map.get(message.media_id) if message.media_id else None,
        )
        for message in messages
    ]
