"""Users, posts and comments API routes.

These endpoints predate the {"data": ...} envelope and keep their
historical top-level keys. Errors still use the standard error envelope.
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from minix.api.deps import get_db
from minix.schemas.posts import (
    CommentCreateRequest,
    CommentOut,
    LoginRequest,
    PostCreateRequest,
    PostOut,
    ReplyCreateRequest,
    UserOut,
)
from minix.services import comments as comments_service
from minix.services import posts as posts_service

router = APIRouter()


# =============================================================================
# User Endpoints
# =============================================================================


@router.post("/login")
def login(
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[LoginRequest | None, Body()] = None,
) -> dict:
    """Log in by username, creating the user on first login."""
    user = posts_service.login(db, body.username if body else None)
    return {"user": UserOut.model_validate(user).model_dump(mode="json")}


@router.get("/users")
def list_users(db: Annotated[Session, Depends(get_db)]) -> dict:
    """List all users, newest first."""
    users = posts_service.list_users(db)
    return {"users": [UserOut.model_validate(u).model_dump(mode="json") for u in users]}


# =============================================================================
# Post Endpoints
# =============================================================================


@router.get("/posts")
def list_posts(
    db: Annotated[Session, Depends(get_db)],
    user_id: str | None = Query(default=None, alias="userId"),
) -> dict:
    """List posts newest first with nested comments."""
    posts = posts_service.list_posts(db, user_id=user_id)
    return {"posts": [p.model_dump(mode="json") for p in posts]}


@router.post("/posts", status_code=201)
def create_post(
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[PostCreateRequest | None, Body()] = None,
) -> dict:
    """Create a post for the user with the given username.

    Errors:
        E_INVALID_REQUEST (400): username or text missing.
        E_USER_NOT_FOUND (404): No user has that username.
    """
    request = body or PostCreateRequest()
    post = posts_service.create_post(db, request.username, request.text)
    return {"post": PostOut.model_validate(post).model_dump(mode="json")}


# =============================================================================
# Comment Endpoints
# =============================================================================


@router.get("/comments")
def list_comments(
    db: Annotated[Session, Depends(get_db)],
    post_id: str | None = Query(default=None),
) -> list[dict]:
    """List a post's comments oldest first, each with its author's username."""
    comments = comments_service.list_comments(db, post_id)
    return [c.model_dump(mode="json") for c in comments]


@router.post("/comments", status_code=201)
def create_comment(
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[CommentCreateRequest | None, Body()] = None,
) -> dict:
    """Create a comment or a reply to another comment.

    Errors:
        E_INVALID_REQUEST (400): post id, text or author missing.
        E_USER_NOT_FOUND (404): No user has the given username.
    """
    comment = comments_service.create_comment_from_request(db, body or CommentCreateRequest())
    return {"comment": CommentOut.model_validate(comment).model_dump(mode="json")}


@router.post("/comments/create")
def create_reply(
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[ReplyCreateRequest | None, Body()] = None,
) -> dict:
    """Create a comment from explicit post_id, user_id and text."""
    comment = comments_service.create_reply(db, body or ReplyCreateRequest())
    return {
        "message": "Reply created",
        "comment": CommentOut.model_validate(comment).model_dump(mode="json"),
    }
