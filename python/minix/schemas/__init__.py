"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from minix.schemas.dm import (
    ConversationOut,
    LastMessageOut,
    MediaOut,
    MediaUploadOut,
    MediaUploadRequest,
    MessageMediaOut,
    MessageOut,
    ProfileOut,
    SendMessageOut,
    SendMessageRequest,
    SendPayload,
    SentMessageOut,
)
from minix.schemas.posts import (
    CommentCreateRequest,
    CommentOut,
    CommentWithUsernameOut,
    FeedCommentOut,
    FeedPostOut,
    LoginRequest,
    PostCreateRequest,
    PostOut,
    ReplyCreateRequest,
    UserOut,
)
from minix.schemas.tweets import (
    CreateTweetRequest,
    PublicMetrics,
    ReferencedTweet,
    SearchMeta,
    TimelineMeta,
    TweetOut,
    TweetUserOut,
)

__all__ = [
    # DM schemas
    "ProfileOut",
    "ConversationOut",
    "LastMessageOut",
    "MessageOut",
    "MessageMediaOut",
    "MediaOut",
    "MediaUploadOut",
    "MediaUploadRequest",
    "SendMessageOut",
    "SendMessageRequest",
    "SendPayload",
    "SentMessageOut",
    # Posts & comments
    "UserOut",
    "LoginRequest",
    "PostOut",
    "PostCreateRequest",
    "FeedPostOut",
    "FeedCommentOut",
    "CommentOut",
    "CommentWithUsernameOut",
    "CommentCreateRequest",
    "ReplyCreateRequest",
    # Tweets
    "CreateTweetRequest",
    "TweetOut",
    "TweetUserOut",
    "PublicMetrics",
    "ReferencedTweet",
    "TimelineMeta",
    "SearchMeta",
]
