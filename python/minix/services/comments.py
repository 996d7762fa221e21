"""Comment service.

Every comment in a thread carries the root post's id as its
conversation_id, however deep the reply chain. A reply inherits its
parent's conversation_id instead of recomputing it, falling back to the
post id when the parent has none.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from minix.db.models import Comment, User, new_id, utcnow
from minix.db.session import transaction
from minix.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from minix.logging import get_logger
from minix.schemas.posts import CommentCreateRequest, CommentWithUsernameOut, ReplyCreateRequest
from minix.services.directory import get_user_by_username

logger = get_logger(__name__)


def resolve_comment_conversation_id(db: Session, post_id: str, replied_to: str | None) -> str:
    """Return the conversation id a new comment should carry.

    Args:
        db: Database session.
        post_id: The post the comment belongs to.
        replied_to: Parent comment id, if the comment is a reply.

    Returns:
        The parent's conversation_id when it has one, else post_id.
    """
    if not replied_to:
        return post_id
    parent = db.get(Comment, replied_to)
    if parent is not None and parent.conversation_id:
        return parent.conversation_id
    return post_id


def create_comment(
    db: Session,
    post_id: str,
    user_id: str,
    text: str,
    replied_to: str | None = None,
) -> Comment:
    """Insert a comment with its thread's conversation id."""
    comment = Comment(
        id=new_id(),
        post_id=post_id,
        user_id=user_id,
        text=text,
        replied_to=replied_to,
        conversation_id=resolve_comment_conversation_id(db, post_id, replied_to),
        created_at=utcnow(),
    )
    with transaction(db):
        db.add(comment)

    logger.info(
        "comment_created",
        comment_id=comment.id,
        post_id=post_id,
        conversation_id=comment.conversation_id,
    )
    return comment


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


def create_comment_from_request(db: Session, request: CommentCreateRequest) -> Comment:
    """Create a comment from the lenient POST /comments body.

    The author is the given user id, else the user with the given username.
    Text is trimmed; a blank replied_to means a top-level comment.

    Raises:
        InvalidRequestError: If post id, text or author is missing.
        NotFoundError: E_USER_NOT_FOUND if the username matches no user.
    """
    post_id = _clean(request.post_id)
    text = _clean(request.text)
    if not post_id:
        raise InvalidRequestError(message="postId required")
    if not text:
        raise InvalidRequestError(message="text required")

    user_id = _clean(request.user_id)
    username = _clean(request.username)
    if not user_id and username:
        user = get_user_by_username(db, username)
        if user is None:
            raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "user not found")
        user_id = user.id
    if not user_id:
        raise InvalidRequestError(message="userId or username required")

    replied_to = request.replied_to if _clean(request.replied_to) else None
    return create_comment(db, post_id, user_id, text, replied_to)


def create_reply(db: Session, request: ReplyCreateRequest) -> Comment:
    """Create a comment from the strict POST /comments/create body.

    Raises:
        InvalidRequestError: If post_id, user_id or text is missing.
    """
    if not request.post_id or not request.user_id or not request.text:
        raise InvalidRequestError(message="Missing required fields")
    return create_comment(
        db, request.post_id, request.user_id, request.text, request.replied_to or None
    )


def list_comments(db: Session, post_id: str | None) -> list[CommentWithUsernameOut]:
    """List a post's comments oldest first, each with its author's username.

    Raises:
        InvalidRequestError: If post_id is missing.
    """
    if not post_id:
        raise InvalidRequestError(message="post_id query param required")

    rows = db.execute(
        select(Comment, User.username)
        .join(User, User.id == Comment.user_id)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.asc())
    ).all()

    return [
        CommentWithUsernameOut(
            id=comment.id,
            post_id=comment.post_id,
            user_id=comment.user_id,
            text=comment.text,
            replied_to=comment.replied_to,
            conversation_id=comment.conversation_id,
            created_at=comment.created_at,
            username=username,
        )
        for comment, username in rows
    ]
