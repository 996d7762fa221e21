"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from minix.api.routes.dm import router as dm_router
from minix.api.routes.health import router as health_router
from minix.api.routes.posts import router as posts_router
from minix.api.routes.tweets import router as tweets_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(dm_router, tags=["direct-messages"])
    api_router.include_router(posts_router, tags=["posts"])
    api_router.include_router(tweets_router, tags=["tweets"])
    return api_router


__all__ = ["create_api_router"]
