"""Test helpers for common test operations.

Provides:
- Deterministic timestamps for ordering assertions
- Settings construction with overrides
- Request body builders for the DM endpoints
"""

from datetime import datetime, timedelta, timezone

from minix.config import Settings

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

BOT_ID = "33333333-3333-4333-8333-333333333333"
WELCOME_TEXT = "Hi! I am a mock DM bot. Send me anything to see the persisted response."


def at(minutes: int) -> datetime:
    """A fixed timestamp offset from BASE_TIME."""
    return BASE_TIME + timedelta(minutes=minutes)


def make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {
        "DATABASE_URL": "sqlite+pysqlite:///:memory:",
        "MINIX_ENV": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def send_body(sender_id: str, text: str = "", media_id: str | None = None) -> dict:
    """Canonical nested send body: {"sender_id", "message": {"text", "media_id"?}}."""
    message: dict = {"text": text}
    if media_id is not None:
        message["media_id"] = media_id
    return {"sender_id": sender_id, "message": message}
