"""Tests for logging context and structured service events.

Covers:
- Logging ContextVars (request_id, path, method)
- Service events emitted with snake_case names and identifying kwargs
"""

import pytest
from sqlalchemy.orm import Session

from minix.logging import (
    add_request_context,
    clear_request_context,
    get_request_id,
    set_request_context,
)
from minix.schemas.dm import SendPayload
from minix.services import dm_conversations, dm_messages
from tests.factories import create_test_conversation, create_test_user

# ─── ContextVar Tests ────────────────────────────────────────────────


class TestContextVars:
    def setup_method(self):
        clear_request_context()

    def teardown_method(self):
        clear_request_context()

    def test_path_and_method_injected(self):
        """path and method appear in log event dict when set."""
        set_request_context("req-1", path="/conversations/abc/messages", method="POST")
        event_dict = add_request_context(None, "info", {})
        assert event_dict["path"] == "/conversations/abc/messages"
        assert event_dict["method"] == "POST"
        assert event_dict["request_id"] == "req-1"

    def test_clear_clears_all(self):
        set_request_context("req-1", path="/test", method="GET")
        clear_request_context()
        event_dict = add_request_context(None, "info", {})
        assert event_dict == {}
        assert get_request_id() is None

    def test_none_values_not_injected(self):
        """None-valued context vars are omitted from log events."""
        set_request_context("req-1")
        event_dict = add_request_context(None, "info", {})
        assert "path" not in event_dict
        assert "method" not in event_dict

    def test_explicit_event_keys_win(self):
        set_request_context("req-1")
        event_dict = add_request_context(None, "info", {"request_id": "explicit"})
        assert event_dict["request_id"] == "explicit"


# ─── Service Event Tests ─────────────────────────────────────────────


class RecordingLogger:
    """Stands in for a module's structlog logger and keeps every event."""

    def __init__(self):
        self.events: list[dict] = []

    def _record(self, level: str, event: str, **kwargs) -> None:
        self.events.append({"event": event, "log_level": level, **kwargs})

    def info(self, event: str, **kwargs) -> None:
        self._record("info", event, **kwargs)

    def warning(self, event: str, **kwargs) -> None:
        self._record("warning", event, **kwargs)

    def named(self, event: str) -> list[dict]:
        return [e for e in self.events if e["event"] == event]


@pytest.fixture
def recorder(monkeypatch) -> RecordingLogger:
    recorder = RecordingLogger()
    monkeypatch.setattr(dm_conversations, "logger", recorder)
    monkeypatch.setattr(dm_messages, "logger", recorder)
    return recorder


class TestServiceEvents:
    def test_conversation_created_event(self, db_session: Session, recorder: RecordingLogger):
        alice = create_test_user(db_session, username="alice")
        bob = create_test_user(db_session, username="bob")

        conversation_id = dm_conversations.find_or_create_conversation(
            db_session, alice.id, bob.id
        )

        (event,) = recorder.named("dm_conversation_created")
        assert event["conversation_id"] == conversation_id
        assert event["log_level"] == "info"

    def test_message_event_carries_no_text(self, db_session: Session, recorder: RecordingLogger):
        alice = create_test_user(db_session, username="alice")
        bob = create_test_user(db_session, username="bob")
        conversation = create_test_conversation(db_session, alice.id, bob.id)

        dm_messages.insert_message(
            db_session, conversation.id, alice.id, SendPayload(text="secret")
        )

        (event,) = recorder.named("dm_message_inserted")
        assert event["has_media"] is False
        assert "secret" not in repr(event)
