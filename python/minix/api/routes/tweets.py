"""Twitter/X v2 tweet API routes.

Responses follow the v2 shape ({"data": ..., "meta": ...}); errors use
the standard error envelope.
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.orm import Session

from minix.api.deps import get_db
from minix.schemas.tweets import CreateTweetRequest
from minix.services import tweets as tweets_service

router = APIRouter(prefix="/2")


@router.post("/tweets", status_code=201)
def create_tweet(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[CreateTweetRequest | None, Body()] = None,
) -> dict:
    """Create a tweet, or a reply when reply.in_reply_to_tweet_id is set.

    Errors:
        E_INVALID_REQUEST (400): text or author missing.
        E_TWEET_NOT_FOUND (404): Reply target does not exist.
    """
    tweet = tweets_service.create_tweet(db, body or CreateTweetRequest(), request.headers)
    return {"data": tweet.to_wire(), "errors": []}


@router.get("/users/{user_id}/tweets")
def list_user_tweets(
    user_id: str,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """A user's tweets, newest first."""
    tweets, meta = tweets_service.list_user_tweets(db, user_id)
    return {"data": [t.to_wire() for t in tweets], "meta": meta.model_dump(mode="json")}


@router.get("/tweets/search/recent")
def search_recent(
    db: Annotated[Session, Depends(get_db)],
    query: str | None = Query(default=None),
) -> dict:
    """Replies in a conversation, newest first.

    Only "conversation_id:<id>" queries are supported.

    Errors:
        E_INVALID_REQUEST (400): Query is not in that form.
    """
    tweets, users, meta = tweets_service.search_conversation(db, query)
    return {
        "data": [t.to_wire() for t in tweets],
        "includes": {"users": [u.model_dump(mode="json") for u in users], "media": []},
        "meta": meta.model_dump(mode="json"),
    }
