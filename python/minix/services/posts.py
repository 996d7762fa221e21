"""Users and posts service.

Login is by username only: the first login creates the user.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from minix.db.models import Comment, Post, User, new_id, utcnow
from minix.db.session import is_unique_violation, transaction
from minix.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from minix.logging import get_logger
from minix.schemas.posts import FeedCommentOut, FeedPostOut
from minix.services.directory import get_user_by_username

logger = get_logger(__name__)

UNKNOWN_USERNAME = "unknown"


# =============================================================================
# Users
# =============================================================================


def login(db: Session, username: str | None) -> User:
    """Return the user with this username, creating it on first login.

    Race-safe: if a concurrent login created the same username first, the
    unique violation is absorbed and the existing row returned.

    Raises:
        InvalidRequestError: If username is missing.
    """
    if not username:
        raise InvalidRequestError(message="username required")

    existing = get_user_by_username(db, username)
    if existing is not None:
        return existing

    user = User(id=new_id(), username=username, created_at=utcnow())
    try:
        with transaction(db):
            db.add(user)
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        existing = get_user_by_username(db, username)
        if existing is None:
            raise
        return existing

    logger.info("user_created", user_id=user.id, username=username)
    return user


def list_users(db: Session) -> list[User]:
    """All users, newest first."""
    return list(db.scalars(select(User).order_by(User.created_at.desc())).all())


# =============================================================================
# Posts
# =============================================================================


def create_post(db: Session, username: str | None, text: str | None) -> Post:
    """Create a post authored by the user with this username.

    Raises:
        InvalidRequestError: If username or text is missing.
        NotFoundError: E_USER_NOT_FOUND if the username matches no user.
    """
    if not username or not text:
        raise InvalidRequestError(message="username and text required")

    user = get_user_by_username(db, username)
    if user is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "user not found")

    return create_post_for_user(db, user.id, text)


def create_post_for_user(db: Session, user_id: str, text: str) -> Post:
    """Insert a post for a known author id."""
    post = Post(id=new_id(), user_id=user_id, text=text, created_at=utcnow())
    with transaction(db):
        db.add(post)

    logger.info("post_created", post_id=post.id, user_id=user_id)
    return post


def list_posts(db: Session, user_id: str | None = None) -> list[FeedPostOut]:
    """List posts newest first with their comments, optionally for one author."""
    query = (
        select(Post)
        .options(
            selectinload(Post.author),
            selectinload(Post.comments).selectinload(Comment.author),
        )
        .order_by(Post.created_at.desc())
        .execution_options(populate_existing=True)
    )
    if user_id:
        query = query.where(Post.user_id == user_id)

    return [
        FeedPostOut(
            id=post.id,
            text=post.text,
            created_at=post.created_at,
            username=_username(post.author),
            comments=[
                FeedCommentOut(
                    id=comment.id,
                    text=comment.text,
                    created_at=comment.created_at,
                    replied_to=comment.replied_to,
                    username=_username(comment.author),
                )
                for comment in post.comments
            ],
        )
        for post in db.scalars(query).all()
    ]


def _username(user: User | None) -> str:
    return user.username if user is not None and user.username else UNKNOWN_USERNAME
