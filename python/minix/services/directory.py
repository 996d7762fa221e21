"""User directory service.

Seeds the configured mock contacts into the user table, resolves users for
the DM endpoints, and shapes users into public profiles.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from minix.config import DirectoryContact, Settings
from minix.db.models import User
from minix.db.session import is_unique_violation, transaction
from minix.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from minix.logging import get_logger
from minix.schemas.dm import ProfileOut
from minix.services.dm_media import encode_uri_component

logger = get_logger(__name__)


# =============================================================================
# Profiles
# =============================================================================


def build_profile(user: User, settings: Settings) -> ProfileOut:
    """Shape a user row into its public profile.

    Directory contacts carry their configured display name, title and avatar.
    Everyone else gets their username as display name, the default title, and
    an avatar seeded by their username.
    """
    contact = _contacts_by_username(settings.dm_directory_contacts).get(user.username)
    if contact is not None:
        return ProfileOut(
            id=user.id,
            username=user.username,
            display_name=contact.display_name,
            title=contact.title,
            avatar_url=contact.avatar_url,
        )
    return ProfileOut(
        id=user.id,
        username=user.username,
        display_name=user.username,
        title=settings.default_profile_title,
        avatar_url=f"{settings.avatar_base_url}{encode_uri_component(user.username)}",
    )


def fetch_profiles(
    db: Session, user_ids: Iterable[str], settings: Settings
) -> dict[str, ProfileOut]:
    """Batch-resolve user ids to profiles. Unknown ids are absent from the result."""
    unique_ids = set(user_ids)
    if not unique_ids:
        return {}
    users = db.scalars(select(User).where(User.id.in_(unique_ids))).all()
    return {user.id: build_profile(user, settings) for user in users}


def _contacts_by_username(contacts: Iterable[DirectoryContact]) -> dict[str, DirectoryContact]:
    return {contact.username: contact for contact in contacts}


# =============================================================================
# Seeding
# =============================================================================


def ensure_directory(db: Session, contacts: list[DirectoryContact]) -> int:
    """Insert every directory contact whose username is not yet present.

    Idempotent: existing users are never updated or removed. A unique
    violation on insert means a concurrent caller seeded first and is
    ignored; any other store failure propagates.

    Args:
        db: Database session.
        contacts: The directory to seed.

    Returns:
        Number of users inserted by this call (0 when the race was lost).
    """
    if not contacts:
        return 0

    usernames = [contact.username for contact in contacts]
    existing = set(db.scalars(select(User.username).where(User.username.in_(usernames))).all())
    missing = [contact for contact in contacts if contact.username not in existing]
    if not missing:
        return 0

    db.add_all(User(id=contact.id, username=contact.username) for contact in missing)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not is_unique_violation(exc):
            raise
        logger.info("directory_seed_race_lost", missing=len(missing))
        return 0

    logger.info("directory_seeded", inserted=len(missing))
    return len(missing)


# =============================================================================
# User resolution
# =============================================================================


def get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.scalars(select(User).where(User.username == username)).first()


def ensure_user_exists(db: Session, user_id: str, username: str | None = None) -> User:
    """Return the user with this id, creating it from username if absent.

    Race-safe: if a concurrent caller created the same id first, the unique
    violation is absorbed and the existing row returned.

    Raises:
        NotFoundError: E_USER_NOT_FOUND if the id is unknown and no username
            was supplied.
        InvalidRequestError: If the username already belongs to another id.
    """
    user = get_user(db, user_id)
    if user is not None:
        return user
    if not username:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")

    user = User(id=user_id, username=username)
    try:
        with transaction(db):
            db.add(user)
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        winner = get_user(db, user_id)
        if winner is not None:
            return winner
        logger.warning("username_taken", user_id=user_id, username=username)
        raise InvalidRequestError(message="username already taken") from exc

    logger.info("user_created", user_id=user_id, username=username)
    return user


def get_user_directory(
    db: Session, settings: Settings, exclude_id: str | None = None
) -> list[ProfileOut]:
    """List every user as a profile, directory contacts first.

    Seeds the directory, then returns all users except exclude_id. Contacts
    sort before everyone else; within each group profiles sort by display
    name, case-insensitively.
    """
    ensure_directory(db, settings.dm_directory_contacts)

    users = db.scalars(select(User).order_by(User.created_at.asc())).all()
    contacts = _contacts_by_username(settings.dm_directory_contacts)
    profiles = [build_profile(user, settings) for user in users if user.id != exclude_id]
    profiles.sort(key=lambda p: (p.username not in contacts, p.display_name.casefold()))
    return profiles
