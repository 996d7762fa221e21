"""Twitter/X v2 tweet service.

Posts and comments are presented as v2 tweets:
- a post is a root tweet whose conversation_id is its own id
- a comment is a reply whose conversation_id is its thread's root post id

Engagement counters other than reply_count are always zero.
"""

from collections.abc import Mapping

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from minix.db.models import Comment, Post, User
from minix.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from minix.logging import get_logger
from minix.schemas.tweets import (
    Attachments,
    CreateTweetRequest,
    PublicMetrics,
    ReferencedTweet,
    SearchMeta,
    TimelineMeta,
    TweetOut,
    TweetUserOut,
)
from minix.services.comments import create_comment
from minix.services.directory import get_user_by_username
from minix.services.posts import create_post_for_user

logger = get_logger(__name__)

IDENTICON_BASE_URL = "https://api.dicebear.com/8.x/identicon/svg?seed="
CONVERSATION_QUERY_PREFIX = "conversation_id:"

_REPLY_SETTINGS = {
    "everyone": "everyone",
    "mentionedusers": "mentionedUsers",
    "mentioned_users": "mentionedUsers",
    "following": "following",
}


def normalize_reply_settings(value: object) -> str:
    """Map a client reply_settings value onto everyone|mentionedUsers|following."""
    if not isinstance(value, str):
        return "everyone"
    return _REPLY_SETTINGS.get(value.strip().lower(), "everyone")


def _first_nonblank(*values: object) -> str:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def resolve_author_id(
    db: Session, request: CreateTweetRequest, headers: Mapping[str, str]
) -> str | None:
    """Work out who is tweeting.

    Lookup order: body user_id / userId / author_id / authorId, the
    X-User-Id / X-UserId headers, a bearer token (taken as a user id), then
    body username / screen_name or the X-Username / X-Screen-Name headers
    resolved through the user table.
    """
    authorization = headers.get("authorization", "")
    bearer = authorization[7:] if authorization.lower().startswith("bearer ") else ""
    user_id = _first_nonblank(
        request.user_id,
        request.userId,
        request.author_id,
        request.authorId,
        headers.get("x-user-id"),
        headers.get("x-userid"),
        bearer,
    )
    if user_id:
        return user_id

    username = _first_nonblank(
        request.username,
        request.screen_name,
        headers.get("x-username"),
        headers.get("x-screen-name"),
    )
    if not username:
        return None
    user = get_user_by_username(db, username)
    return user.id if user is not None else None


# =============================================================================
# Create
# =============================================================================


def create_tweet(db: Session, request: CreateTweetRequest, headers: Mapping[str, str]) -> TweetOut:
    """Create a root tweet (a post) or a reply (a comment).

    A reply to a post becomes a top-level comment on it. A reply to a
    comment becomes a nested comment on the same post, inheriting the
    parent's conversation id.

    Raises:
        InvalidRequestError: If text or the author is missing.
        NotFoundError: E_TWEET_NOT_FOUND if the reply target does not exist.
    """
    text = (request.text or "").strip()
    if not text:
        raise InvalidRequestError(message="text is required")

    author_id = resolve_author_id(db, request, headers)
    if not author_id:
        raise InvalidRequestError(
            message="user_id (or username) is required. Provide user_id, author_id, "
            "username, or a Bearer token that contains a user id."
        )

    target_id = request.reply_target()
    referenced = None
    if target_id:
        row = _create_reply(db, target_id, author_id, text)
        referenced = [ReferencedTweet(id=target_id)]
        tweet_id, conversation_id, created_at = row.id, row.conversation_id, row.created_at
    else:
        post = create_post_for_user(db, author_id, text)
        tweet_id, conversation_id, created_at = post.id, post.id, post.created_at

    media_keys = request.media_keys()
    logger.info("tweet_created", tweet_id=tweet_id, is_reply=bool(target_id))
    return TweetOut(
        edit_history_tweet_ids=[tweet_id],
        id=tweet_id,
        text=text,
        author_id=author_id,
        conversation_id=conversation_id,
        created_at=created_at,
        reply_settings=normalize_reply_settings(request.reply_settings),
        attachments=Attachments(media_keys=media_keys) if media_keys else None,
        referenced_tweets=referenced,
    )


def _create_reply(db: Session, target_id: str, author_id: str, text: str) -> Comment:
    post = db.get(Post, target_id)
    if post is not None:
        return create_comment(db, post.id, author_id, text, replied_to=None)

    parent = db.get(Comment, target_id)
    if parent is None:
        raise NotFoundError(ApiErrorCode.E_TWEET_NOT_FOUND, f"Tweet {target_id} not found")
    return create_comment(db, parent.post_id, author_id, text, replied_to=parent.id)


# =============================================================================
# Read
# =============================================================================


def list_user_tweets(db: Session, user_id: str) -> tuple[list[TweetOut], TimelineMeta]:
    """A user's posts newest first, each with its reply count."""
    posts = db.scalars(
        select(Post).where(Post.user_id == user_id).order_by(Post.created_at.desc())
    ).all()

    reply_counts: dict[str, int] = {}
    if posts:
        reply_counts = dict(
            db.execute(
                select(Comment.post_id, func.count(Comment.id))
                .where(Comment.post_id.in_([p.id for p in posts]))
                .group_by(Comment.post_id)
            ).all()
        )

    tweets = [
        TweetOut(
            edit_history_tweet_ids=[post.id],
            id=post.id,
            text=post.text,
            author_id=post.user_id,
            conversation_id=post.id,
            created_at=post.created_at,
            public_metrics=PublicMetrics(reply_count=reply_counts.get(post.id, 0)),
        )
        for post in posts
    ]
    meta = TimelineMeta(
        result_count=len(tweets),
        newest_id=tweets[0].id if tweets else None,
        oldest_id=tweets[-1].id if tweets else None,
    )
    return tweets, meta


def parse_conversation_query(query: str | None) -> str:
    """Extract <id> from a "conversation_id:<id>" search query.

    Raises:
        InvalidRequestError: If the query is not in that form.
    """
    if not query or not query.startswith(CONVERSATION_QUERY_PREFIX):
        raise InvalidRequestError(message="query must be in format conversation_id:<id>")
    conversation_id = query[len(CONVERSATION_QUERY_PREFIX) :].strip()
    if not conversation_id:
        raise InvalidRequestError(message="query must be in format conversation_id:<id>")
    return conversation_id


def search_conversation(
    db: Session, query: str | None
) -> tuple[list[TweetOut], list[TweetUserOut], SearchMeta]:
    """Replies in one conversation, newest first, with their authors.

    Each reply references its parent comment, or the root post for
    top-level replies, and counts its direct replies.
    """
    conversation_id = parse_conversation_query(query)

    comments = db.scalars(
        select(Comment)
        .where(Comment.conversation_id == conversation_id)
        .order_by(Comment.created_at.desc())
    ).all()

    direct_replies: dict[str, int] = {}
    for comment in comments:
        if comment.replied_to:
            direct_replies[comment.replied_to] = direct_replies.get(comment.replied_to, 0) + 1

    tweets = [
        TweetOut(
            edit_history_tweet_ids=[comment.id],
            id=comment.id,
            text=comment.text,
            author_id=comment.user_id,
            conversation_id=comment.conversation_id,
            created_at=comment.created_at,
            referenced_tweets=[ReferencedTweet(id=comment.replied_to or comment.post_id)],
            public_metrics=PublicMetrics(reply_count=direct_replies.get(comment.id, 0)),
        )
        for comment in comments
    ]

    author_ids = {comment.user_id for comment in comments}
    authors = (
        db.scalars(select(User).where(User.id.in_(author_ids))).all() if author_ids else []
    )
    users = [
        TweetUserOut(
            id=user.id,
            name=user.username,
            username=user.username,
            profile_image_url=f"{IDENTICON_BASE_URL}{user.username}",
        )
        for user in authors
    ]

    meta = SearchMeta(
        newest_id=tweets[0].id if tweets else None,
        oldest_id=tweets[-1].id if tweets else None,
        result_count=len(tweets),
    )
    return tweets, users, meta
