"""Direct message conversation service.

Finds or creates the single conversation shared by two users, authorizes
senders, opens the welcome thread for new users, and lists a user's
conversations in the v2 DM wire shape.

Invariants:
- A conversation has exactly the two participants it was created with.
- At most one conversation exists per unordered pair of users. pair_key
  ("<min id>:<max id>") carries a unique index, so a lost find-or-create
  race surfaces as a unique violation and resolves to the winner's row.
- A conversation and its participant rows are created in one transaction.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from minix.config import Settings
from minix.db.models import DmConversation, DmMessage, DmParticipant, User, new_id, utcnow
from minix.db.session import is_unique_violation, transaction
from minix.errors import (
    ApiErrorCode,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
)
from minix.logging import get_logger
from minix.schemas.dm import ConversationOut, LastMessageOut, ProfileOut
from minix.services.directory import (
    build_profile,
    ensure_directory,
    ensure_user_exists,
    get_user,
    get_user_by_username,
)

logger = get_logger(__name__)


# =============================================================================
# Lookups
# =============================================================================


def make_pair_key(user_a: str, user_b: str) -> str:
    """Canonical key of an unordered user pair."""
    low, high = sorted((user_a, user_b))
    return f"{low}:{high}"


def get_conversation(db: Session, conversation_id: str) -> DmConversation | None:
    return db.get(DmConversation, conversation_id)


def get_conversation_by_pair(db: Session, pair_key: str) -> DmConversation | None:
    return db.scalars(select(DmConversation).where(DmConversation.pair_key == pair_key)).first()


def list_conversation_ids_for_user(db: Session, user_id: str) -> list[str]:
    return list(
        db.scalars(
            select(DmParticipant.conversation_id).where(DmParticipant.user_id == user_id)
        ).all()
    )


def find_shared_conversation(db: Session, sender_id: str, participant_id: str) -> str | None:
    """Return the id of a conversation both users participate in, if any.

    Conversations are two-party, so at most one can match.
    """
    sender_conversations = list_conversation_ids_for_user(db, sender_id)
    if not sender_conversations:
        return None

    return db.scalars(
        select(DmParticipant.conversation_id)
        .where(
            DmParticipant.user_id == participant_id,
            DmParticipant.conversation_id.in_(sender_conversations),
        )
        .limit(1)
    ).first()


def require_sender_in_conversation(db: Session, conversation_id: str, sender_id: str) -> None:
    """Raise E_SENDER_NOT_IN_CONVERSATION unless sender participates."""
    membership = db.scalars(
        select(DmParticipant.id).where(
            DmParticipant.conversation_id == conversation_id,
            DmParticipant.user_id == sender_id,
        )
    ).first()
    if membership is None:
        raise ForbiddenError(
            ApiErrorCode.E_SENDER_NOT_IN_CONVERSATION, "Sender is not part of this conversation"
        )


# =============================================================================
# Creation
# =============================================================================


def _new_conversation(user_a: str, user_b: str, created_at: datetime) -> DmConversation:
    conversation = DmConversation(
        id=new_id(),
        pair_key=make_pair_key(user_a, user_b),
        created_at=created_at,
        last_activity_at=created_at,
    )
    conversation.participants = [
        DmParticipant(user_id=user_a),
        DmParticipant(user_id=user_b),
    ]
    return conversation


def find_or_create_conversation(db: Session, sender_id: str, participant_id: str) -> str:
    """Return the conversation shared by sender and participant, creating it if needed.

    Steps:
    1. The participant must be an existing user.
    2. The sender must be an existing user, distinct from the participant.
    3. An existing shared conversation is returned as-is.
    4. Otherwise a conversation and its two participant rows are created
       atomically. If a concurrent call created the pair first, the unique
       pair_key index rejects this insert and the winner's id is returned.

    Args:
        db: Database session.
        sender_id: The user sending the first message.
        participant_id: The addressee.

    Returns:
        The conversation id.

    Raises:
        NotFoundError: E_PARTICIPANT_NOT_FOUND if the participant does not exist.
            E_USER_NOT_FOUND if the sender does not.
        InvalidRequestError: E_SELF_CONVERSATION if sender_id == participant_id.
    """
    if get_user(db, participant_id) is None:
        raise NotFoundError(ApiErrorCode.E_PARTICIPANT_NOT_FOUND, "Participant not found")
    if get_user(db, sender_id) is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "Sender not found")
    if sender_id == participant_id:
        raise InvalidRequestError(
            ApiErrorCode.E_SELF_CONVERSATION, "Cannot start a conversation with yourself"
        )

    existing_id = find_shared_conversation(db, sender_id, participant_id)
    if existing_id is not None:
        return existing_id

    conversation = _new_conversation(sender_id, participant_id, utcnow())
    try:
        with transaction(db):
            db.add(conversation)
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        winner = get_conversation_by_pair(db, make_pair_key(sender_id, participant_id))
        if winner is None:
            raise
        logger.info("dm_conversation_race_resolved", conversation_id=winner.id)
        return winner.id

    logger.info(
        "dm_conversation_created",
        conversation_id=conversation.id,
        sender_id=sender_id,
        participant_id=participant_id,
    )
    return conversation.id


def ensure_welcome_thread(db: Session, user_id: str, settings: Settings) -> str | None:
    """Open a conversation with the DM bot for a user who has none.

    The conversation, both participant rows, the greeting message and the
    last-message pointer are written in one transaction. Users that already
    participate in any conversation are left alone, so this runs once per
    user.

    Returns:
        The new conversation id, or None if nothing was created.
    """
    if list_conversation_ids_for_user(db, user_id):
        return None

    bot_contact = settings.bot_contact
    if bot_contact is None:
        return None
    bot = get_user_by_username(db, bot_contact.username)
    if bot is None or bot.id == user_id:
        return None

    now = utcnow()
    conversation = _new_conversation(user_id, bot.id, now)
    greeting = DmMessage(
        id=new_id(),
        conversation_id=conversation.id,
        sender_id=bot.id,
        text=settings.dm_welcome_text,
        media_id=None,
        created_at=now,
    )
    conversation.last_message_id = greeting.id

    try:
        with transaction(db):
            db.add(conversation)
            db.add(greeting)
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        logger.info("dm_welcome_thread_race_lost", user_id=user_id)
        return None

    logger.info("dm_welcome_thread_created", user_id=user_id, conversation_id=conversation.id)
    return conversation.id


# =============================================================================
# Listing
# =============================================================================


def list_conversations_for_user(
    db: Session,
    user_id: str,
    settings: Settings,
    username: str | None = None,
) -> list[ConversationOut]:
    """List a user's conversations, most recently active first.

    Seeds the directory, makes sure the user exists (creating it from
    username when given), and opens the welcome thread before listing.
    Participants, profiles and the latest message of every conversation
    are fetched in batches, not per conversation.

    Raises:
        NotFoundError: E_USER_NOT_FOUND if the user is unknown and no
            username was supplied.
    """
    ensure_directory(db, settings.dm_directory_contacts)
    ensure_user_exists(db, user_id, username)
    ensure_welcome_thread(db, user_id, settings)

    conversation_ids = list_conversation_ids_for_user(db, user_id)
    if not conversation_ids:
        return []

    activity = func.coalesce(DmConversation.last_activity_at, DmConversation.created_at)
    conversations = db.scalars(
        select(DmConversation)
        .where(DmConversation.id.in_(conversation_ids))
        .order_by(activity.desc())
    ).all()

    participant_rows = db.execute(
        select(DmParticipant.conversation_id, User)
        .join(User, User.id == DmParticipant.user_id)
        .where(DmParticipant.conversation_id.in_(conversation_ids))
        .order_by(DmParticipant.id)
    ).all()

    participant_ids: dict[str, list[str]] = {}
    participant_profiles: dict[str, list[ProfileOut]] = {}
    for conversation_id, user in participant_rows:
        participant_ids.setdefault(conversation_id, []).append(user.id)
        participant_profiles.setdefault(conversation_id, []).append(build_profile(user, settings))

    # Newest first; the first row seen per conversation is its latest message.
    latest: dict[str, DmMessage] = {}
    for message in db.scalars(
        select(DmMessage)
        .where(DmMessage.conversation_id.in_(conversation_ids))
        .order_by(DmMessage.created_at.desc())
    ):
        latest.setdefault(message.conversation_id, message)

    return [
        ConversationOut(
            id=conversation.id,
            participants=participant_ids.get(conversation.id, []),
            participant_profiles=participant_profiles.get(conversation.id, []),
            last_message=_last_message_out(latest.get(conversation.id)),
            updated_at=conversation.last_activity_at or conversation.created_at,
        )
        for conversation in conversations
    ]


def _last_message_out(message: DmMessage | None) -> LastMessageOut | None:
    if message is None:
        return None
    return LastMessageOut(
        id=message.id,
        text=message.text,
        sender_id=message.sender_id,
        media_id=message.media_id,
        created_at=message.created_at,
    )
