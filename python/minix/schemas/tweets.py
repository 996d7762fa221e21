"""Twitter/X v2 tweet Pydantic schemas.

Only the subset of the v2 object model the client reads is produced:
engagement counters other than reply_count are always zero.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ReplySettings = Literal["everyone", "mentionedUsers", "following"]

# =============================================================================
# Response Schemas
# =============================================================================


class PublicMetrics(BaseModel):
    retweet_count: int = 0
    reply_count: int = 0
    like_count: int = 0
    quote_count: int = 0
    bookmark_count: int = 0
    impression_count: int = 0


class ReferencedTweet(BaseModel):
    type: Literal["replied_to"] = "replied_to"
    id: str


class Attachments(BaseModel):
    media_keys: list[str]


class TweetOut(BaseModel):
    """A post or comment rendered as a v2 tweet object.

    Optional parts (author_id, reply_settings, attachments, referenced_tweets)
    are omitted from the wire when unset.
    """

    edit_history_tweet_ids: list[str]
    id: str
    text: str
    author_id: str | None = None
    conversation_id: str
    created_at: datetime
    reply_settings: ReplySettings | None = None
    public_metrics: PublicMetrics = Field(default_factory=PublicMetrics)
    attachments: Attachments | None = None
    referenced_tweets: list[ReferencedTweet] | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class TweetUserOut(BaseModel):
    """Expansion object for tweet authors."""

    id: str
    name: str
    username: str
    profile_image_url: str


class TimelineMeta(BaseModel):
    result_count: int
    newest_id: str | None = None
    oldest_id: str | None = None
    next_token: str | None = None


class SearchMeta(BaseModel):
    newest_id: str | None = None
    oldest_id: str | None = None
    result_count: int


# =============================================================================
# Request Schemas
# =============================================================================


class ReplyTarget(BaseModel):
    in_reply_to_tweet_id: str | None = None


class TweetMedia(BaseModel):
    media_ids: list[Any] | None = None


class CreateTweetRequest(BaseModel):
    """Request body for POST /2/tweets.

    The author may be identified in the body or by request headers; see
    services.tweets.resolve_author_id for the lookup order.
    """

    text: str | None = None
    user_id: str | None = None
    userId: str | None = None
    author_id: str | None = None
    authorId: str | None = None
    username: str | None = None
    screen_name: str | None = None
    reply: ReplyTarget | None = None
    media: TweetMedia | None = None
    reply_settings: Any = None

    model_config = ConfigDict(extra="ignore")

    def media_keys(self) -> list[str]:
        """Non-blank string media ids, trimmed."""
        if self.media is None or not self.media.media_ids:
            return []
        return [m.strip() for m in self.media.media_ids if isinstance(m, str) and m.strip()]

    def reply_target(self) -> str:
        if self.reply is None or not self.reply.in_reply_to_tweet_id:
            return ""
        return self.reply.in_reply_to_tweet_id.strip()
