"""User, Post and Comment Pydantic schemas.

These endpoints keep their historical top-level keys ({"user": ...},
{"posts": [...]}, {"comment": ...}) instead of the {"data": ...} envelope.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# =============================================================================
# Response Schemas
# =============================================================================


class UserOut(BaseModel):
    """Response schema for a user row."""

    id: str
    username: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostOut(BaseModel):
    """Response schema for a freshly created post."""

    id: str
    user_id: str
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentOut(BaseModel):
    """Response schema for a comment row."""

    id: str
    post_id: str
    user_id: str
    text: str
    replied_to: str | None = None
    conversation_id: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentWithUsernameOut(CommentOut):
    """A comment row with its author's username, as listed per post."""

    username: str


class FeedCommentOut(BaseModel):
    """A comment nested inside a feed post."""

    id: str
    text: str
    created_at: datetime
    replied_to: str | None = None
    username: str


class FeedPostOut(BaseModel):
    """A post in the feed, with its author and nested comments."""

    id: str
    text: str
    created_at: datetime
    username: str
    comments: list[FeedCommentOut]


# =============================================================================
# Request Schemas
# =============================================================================


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    username: str | None = None


class PostCreateRequest(BaseModel):
    """Request body for POST /posts."""

    username: str | None = None
    text: str | None = None


class CommentCreateRequest(BaseModel):
    """Request body for POST /comments.

    The author is given by user id, or by username when no id is sent.
    """

    post_id: str | None = Field(default=None, validation_alias=AliasChoices("postId", "post_id"))
    user_id: str | None = Field(default=None, validation_alias=AliasChoices("userId", "user_id"))
    username: str | None = None
    text: str | None = None
    replied_to: str | None = Field(
        default=None, validation_alias=AliasChoices("replied_to", "repliedTo")
    )

    model_config = ConfigDict(extra="ignore")


class ReplyCreateRequest(BaseModel):
    """Request body for POST /comments/create. All ids are taken verbatim."""

    post_id: str | None = None
    user_id: str | None = None
    text: str | None = None
    replied_to: str | None = None
