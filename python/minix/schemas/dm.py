"""Direct message Pydantic schemas.

Contains request and response models for conversation, message, directory
and media endpoints. Response models mirror the Twitter/X v2 DM wire format
used by the bundled client.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

# =============================================================================
# Response Schemas
# =============================================================================


class ProfileOut(BaseModel):
    """Public profile of a user.

    display_name, title and avatar_url are synthesized for users that are
    not directory contacts.
    """

    id: str
    username: str
    display_name: str
    title: str
    avatar_url: str


class LastMessageOut(BaseModel):
    """Most recent message of a conversation, as embedded in the listing."""

    id: str
    text: str
    sender_id: str
    media_id: str | None = None
    created_at: datetime


class ConversationOut(BaseModel):
    """A conversation as listed for one of its participants."""

    id: str
    type: Literal["dm_conversation"] = "dm_conversation"
    participants: list[str]
    participant_profiles: list[ProfileOut]
    last_message: LastMessageOut | None = None
    updated_at: datetime


class MessageMediaOut(BaseModel):
    """Media embedded in a listed message."""

    id: str
    media_url: str


class MessageOut(BaseModel):
    """A message with its sender profile and media resolved."""

    id: str
    text: str
    sender_id: str
    sender: ProfileOut | None = None
    created_at: datetime
    media: MessageMediaOut | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize, omitting media entirely when none is attached."""
        return self.model_dump(mode="json", exclude={"media"} if self.media is None else None)


class MediaOut(BaseModel):
    """A media record as returned by lookups and send responses."""

    media_id: str
    media_url: str


class MediaUploadOut(BaseModel):
    """Response for a newly registered media upload."""

    media_id: str
    media_url: str
    uploaded_at: datetime


class SentMessageOut(BaseModel):
    """The message part of a send response."""

    id: str
    text: str
    sender_id: str
    media: MediaOut | None = None


class SendMessageOut(BaseModel):
    """Response for POST /conversations/{id}/messages."""

    dm_event_id: str
    conversation_id: str
    message: SentMessageOut

    def to_wire(self) -> dict[str, Any]:
        exclude = {"message": {"media"}} if self.message.media is None else None
        return self.model_dump(mode="json", exclude=exclude)


# =============================================================================
# Request Schemas
# =============================================================================


@dataclass(frozen=True)
class SendPayload:
    """Normalized message content handed to the message ingestor."""

    text: str
    media_id: str | None = None

    @property
    def has_content(self) -> bool:
        """True when there is non-blank text or an attached media id."""
        return bool(self.text.strip()) or bool(self.media_id)


class NestedMedia(BaseModel):
    """`message.media` shape: {"media_id": "..."}."""

    media_id: str | None = None


class NestedMessage(BaseModel):
    """`message` shape: {"text": "...", "media_id": "...", "media": {...}}."""

    text: str | None = None
    media_id: str | None = None
    media: NestedMedia | None = None


class SendMessageRequest(BaseModel):
    """Request body for sending a direct message.

    Accepted shapes (all optional fields):
        {"sender_id" | "senderId": "...",
         "message": {"text": "...", "media_id": "...", "media": {"media_id": "..."}},
         "text": "...", "media_id": "..."}

    Precedence (first non-empty wins):
        text:     message.text, text, ""
        media_id: message.media_id, message.media.media_id, media_id, None
    """

    sender_id: str | None = Field(
        default=None, validation_alias=AliasChoices("sender_id", "senderId")
    )
    message: NestedMessage | None = None
    text: str | None = None
    media_id: str | None = None

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_non_object_message(cls, data: Any) -> Any:
        """A `message` that is not an object is ignored, not rejected."""
        if not isinstance(data, dict):
            return data
        message = data.get("message")
        if message is not None and not isinstance(message, dict):
            return {key: value for key, value in data.items() if key != "message"}
        return data

    def to_payload(self) -> SendPayload:
        """Normalize the accepted shapes into a single SendPayload."""
        nested = self.message or NestedMessage()

        if nested.text is not None:
            text = nested.text
        elif self.text is not None:
            text = self.text
        else:
            text = ""

        nested_media_id = nested.media.media_id if nested.media else None
        media_id = nested.media_id or nested_media_id or self.media_id or None

        return SendPayload(text=text, media_id=media_id)


class MediaUploadRequest(BaseModel):
    """Request body for POST /media."""

    filename: str | None = Field(
        default=None, validation_alias=AliasChoices("filename", "fileName")
    )

    model_config = ConfigDict(extra="ignore")
