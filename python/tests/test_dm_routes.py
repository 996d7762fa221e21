"""Integration tests for the direct message endpoints.

Exercises the full HTTP round trip: list conversations, send by user id,
send into the conversation, read back, register and attach media.
"""

from fastapi.testclient import TestClient

from tests.helpers import BOT_ID, WELCOME_TEXT, send_body


def _login_conversations(client: TestClient, user_id: str, username: str) -> list[dict]:
    response = client.get("/conversations", params={"user_id": user_id, "username": username})
    assert response.status_code == 200
    return response.json()["data"]


class TestDirectMessageFlow:
    def test_full_round_trip(self, client: TestClient):
        _login_conversations(client, "u1", "alice")
        _login_conversations(client, "u2", "bob")

        first = client.post("/conversations/u2/messages", json=send_body("u1", "hi bob"))
        assert first.status_code == 201
        conversation_id = first.json()["data"]["conversation_id"]
        assert conversation_id != "u2"

        reply = client.post(
            f"/conversations/{conversation_id}/messages", json=send_body("u2", "hi alice")
        )
        assert reply.status_code == 201
        assert reply.json()["data"]["conversation_id"] == conversation_id

        messages = client.get(f"/conversations/{conversation_id}/messages").json()["data"]
        assert [m["text"] for m in messages] == ["hi bob", "hi alice"]
        assert messages[1]["sender"]["username"] == "bob"
        assert "media" not in messages[0]

        listed = _login_conversations(client, "u1", "alice")
        assert listed[0]["id"] == conversation_id
        assert listed[0]["last_message"]["text"] == "hi alice"
        assert listed[1]["last_message"]["text"] == WELCOME_TEXT

    def test_second_send_by_user_id_reuses_conversation(self, client: TestClient):
        _login_conversations(client, "u1", "alice")
        _login_conversations(client, "u2", "bob")

        first = client.post("/conversations/u2/messages", json=send_body("u1", "one"))
        second = client.post("/conversations/u1/messages", json=send_body("u2", "two"))

        assert first.json()["data"]["conversation_id"] == second.json()["data"]["conversation_id"]

    def test_reply_to_welcome_thread(self, client: TestClient):
        welcome = _login_conversations(client, "u1", "alice")[0]

        response = client.post(
            f"/conversations/{welcome['id']}/messages", json=send_body("u1", "thanks bot")
        )

        assert response.status_code == 201
        assert response.json()["data"]["message"]["sender_id"] == "u1"

    def test_send_to_bot_by_user_id_reuses_welcome_thread(self, client: TestClient):
        welcome = _login_conversations(client, "u1", "alice")[0]

        response = client.post(f"/conversations/{BOT_ID}/messages", json=send_body("u1", "yo"))

        assert response.json()["data"]["conversation_id"] == welcome["id"]


class TestSendMessageValidation:
    def test_missing_body_rejected(self, client: TestClient):
        response = client.post("/conversations/anything/messages")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    def test_empty_text_without_media_rejected(self, client: TestClient):
        _login_conversations(client, "u1", "alice")

        response = client.post(f"/conversations/{BOT_ID}/messages", json=send_body("u1", "  "))

        assert response.status_code == 400

    def test_flat_body_and_camel_case_sender(self, client: TestClient):
        _login_conversations(client, "u1", "alice")

        response = client.post(
            f"/conversations/{BOT_ID}/messages", json={"senderId": "u1", "text": "flat"}
        )

        assert response.status_code == 201
        assert response.json()["data"]["message"]["text"] == "flat"

    def test_string_message_falls_back_to_top_level_text(self, client: TestClient):
        _login_conversations(client, "u1", "alice")

        response = client.post(
            f"/conversations/{BOT_ID}/messages",
            json={"sender_id": "u1", "message": "hi", "text": "hello"},
        )

        assert response.status_code == 201
        assert response.json()["data"]["message"]["text"] == "hello"

    def test_outsider_forbidden(self, client: TestClient):
        welcome = _login_conversations(client, "u1", "alice")[0]
        _login_conversations(client, "u2", "bob")

        response = client.post(
            f"/conversations/{welcome['id']}/messages", json=send_body("u2", "sneaky")
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "E_SENDER_NOT_IN_CONVERSATION"

    def test_unknown_recipient(self, client: TestClient):
        _login_conversations(client, "u1", "alice")

        response = client.post("/conversations/ghost/messages", json=send_body("u1", "hello?"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_PARTICIPANT_NOT_FOUND"

    def test_message_to_self(self, client: TestClient):
        _login_conversations(client, "u1", "alice")

        response = client.post("/conversations/u1/messages", json=send_body("u1", "me"))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_SELF_CONVERSATION"

    def test_unknown_conversation_messages(self, client: TestClient):
        response = client.get("/conversations/nope/messages")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_CONVERSATION_NOT_FOUND"


class TestMediaFlow:
    def test_register_and_attach_media(self, client: TestClient):
        welcome = _login_conversations(client, "u1", "alice")[0]

        upload = client.post("/media", json={"fileName": "cat pic.png"})
        assert upload.status_code == 201
        media = upload.json()["data"]
        assert media["media_url"].endswith(f"/{media['media_id']}/cat%20pic.png")
        assert "uploaded_at" in media

        sent = client.post(
            f"/conversations/{welcome['id']}/messages",
            json={"sender_id": "u1", "message": {"media": {"media_id": media["media_id"]}}},
        )
        assert sent.status_code == 201
        assert sent.json()["data"]["message"]["media"] == {
            "media_id": media["media_id"],
            "media_url": media["media_url"],
        }
        assert sent.json()["data"]["message"]["text"] == ""

        messages = client.get(f"/conversations/{welcome['id']}/messages").json()["data"]
        assert messages[-1]["media"] == {"id": media["media_id"], "media_url": media["media_url"]}

    def test_register_without_body(self, client: TestClient):
        response = client.post("/media")

        assert response.status_code == 201
        media = response.json()["data"]
        assert media["media_url"] == f"https://mock.api/media/{media['media_id']}"
