"""FastAPI dependencies for route handlers."""

from minix.db.session import get_db

__all__ = ["get_db"]
