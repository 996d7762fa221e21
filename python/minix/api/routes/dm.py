"""Direct message API routes.

Route handlers for conversations, messages, the contact directory and
media registration. Routes are transport-only: each calls exactly one
service function.

Response envelope: {"data": ...}
Error envelope: {"error": {"code": "...", "message": "...", "request_id": "..."}}
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from minix.api.deps import get_db
from minix.config import get_settings
from minix.errors import InvalidRequestError
from minix.responses import success_response
from minix.schemas.dm import MediaUploadRequest, SendMessageRequest
from minix.services import directory as directory_service
from minix.services import dm_conversations as conversations_service
from minix.services import dm_media as media_service
from minix.services import dm_messages as messages_service

router = APIRouter()


# =============================================================================
# Conversation Endpoints
# =============================================================================


@router.get("/conversations")
def list_conversations(
    db: Annotated[Session, Depends(get_db)],
    user_id: str | None = Query(default=None),
    user_id_alias: str | None = Query(default=None, alias="userId"),
    username: str | None = Query(default=None),
    username_alias: str | None = Query(default=None, alias="user_name"),
) -> dict:
    """List the user's conversations, most recently active first.

    The user is created from username on first sight; a new user also gets
    a welcome thread from the DM bot.

    Errors:
        E_INVALID_REQUEST (400): user_id is missing.
        E_USER_NOT_FOUND (404): Unknown user_id and no username given.
    """
    resolved_id = user_id or user_id_alias
    if not resolved_id:
        raise InvalidRequestError(message="user_id query parameter is required")

    conversations = conversations_service.list_conversations_for_user(
        db=db,
        user_id=resolved_id,
        settings=get_settings(),
        username=username or username_alias,
    )
    return success_response([c.model_dump(mode="json") for c in conversations])


# =============================================================================
# Message Endpoints
# =============================================================================


@router.get("/conversations/{conversation_id}/messages")
def list_messages(
    conversation_id: str,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """List a conversation's messages, oldest first.

    Errors:
        E_CONVERSATION_NOT_FOUND (404): Conversation does not exist.
    """
    messages = messages_service.list_messages(db, conversation_id, get_settings())
    return success_response([m.to_wire() for m in messages])


@router.post("/conversations/{conversation_id}/messages", status_code=201)
def send_message(
    conversation_id: str,
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[SendMessageRequest | None, Body()] = None,
) -> dict:
    """Send a message.

    The path id is tried as a conversation id first. If no such
    conversation exists it is taken as the recipient's user id, and the
    conversation with that user is found or created.

    Errors:
        E_INVALID_REQUEST (400): Missing sender, or neither text nor media.
        E_SELF_CONVERSATION (400): Sender addressed themselves.
        E_SENDER_NOT_IN_CONVERSATION (403): Sender is not a participant.
        E_PARTICIPANT_NOT_FOUND (404): Recipient user does not exist.
    """
    request = body or SendMessageRequest()
    target_conversation_id, message = messages_service.send_message(
        db=db,
        target_id=conversation_id,
        sender_id=request.sender_id,
        payload=request.to_payload(),
        settings=get_settings(),
    )
    result = messages_service.build_send_response(db, target_conversation_id, message)
    return success_response(result.to_wire())


# =============================================================================
# Directory & Media Endpoints
# =============================================================================


@router.get("/directory")
def get_directory(
    db: Annotated[Session, Depends(get_db)],
    exclude_id: str | None = Query(default=None),
    exclude_id_alias: str | None = Query(default=None, alias="excludeId"),
) -> dict:
    """List DM contacts, directory contacts first."""
    profiles = directory_service.get_user_directory(
        db, get_settings(), exclude_id=exclude_id or exclude_id_alias
    )
    return success_response([p.model_dump(mode="json") for p in profiles])


@router.post("/media", status_code=201)
def create_media(
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[MediaUploadRequest | None, Body()] = None,
) -> dict:
    """Register a media record for a later message attachment."""
    filename = body.filename if body else None
    result = media_service.create_media_entry(db, get_settings(), filename=filename)
    return success_response(result.model_dump(mode="json"))
