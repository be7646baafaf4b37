"""
Tests for the bots HTTP API.
"""

import httpx
import openai

from conftest import GPT_REPLY, OTHER_VALID_TOKEN, REJECTED_TOKEN, VALID_TOKEN


def _bot_payload(**overrides) -> dict:
    payload = {
        "name": "Support",
        "username": "support_bot",
        "telegram_token": VALID_TOKEN,
        "personality": "You answer support questions.",
        "temperature": 0.4,
        "max_tokens": 120,
    }
    payload.update(overrides)
    return payload


class TestCreateBot:

    def test_create_starts_bot(self, client, manager, telegram):
        response = client.post("/api/bots", json=_bot_payload())

        assert response.status_code == 201
        bot = response.json()
        assert bot["is_active"] is True
        assert bot["user_id"] == "demo-user"
        assert manager.is_live(bot["id"])
        assert telegram.last.token == VALID_TOKEN

    def test_create_with_rejected_token(self, client, storage, manager):
        response = client.post("/api/bots", json=_bot_payload(telegram_token=REJECTED_TOKEN))

        assert response.status_code == 400
        assert "rejected" in response.json()["message"]
        stored = storage.get_bot_by_username("support_bot")
        assert stored.is_active is False
        assert manager.live_bot_ids == []

    def test_create_with_malformed_token(self, client, storage, telegram):
        response = client.post("/api/bots", json=_bot_payload(telegram_token="not-a-token"))

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "telegram_token"
        assert telegram.connections == []
        assert storage.get_bot_by_username("support_bot").is_active is False

    def test_create_when_telegram_unreachable(self, client, telegram):
        telegram.unreachable = True

        response = client.post("/api/bots", json=_bot_payload())

        assert response.status_code == 500

    def test_duplicate_username(self, client):
        client.post("/api/bots", json=_bot_payload())

        response = client.post("/api/bots", json=_bot_payload(telegram_token=OTHER_VALID_TOKEN))

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "username"

    def test_invalid_body_reports_fields(self, client):
        response = client.post("/api/bots", json={"name": "x", "temperature": 5})

        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["errors"]}
        assert {"username", "telegram_token", "temperature"} <= fields


class TestReadBots:

    def test_list_and_get(self, client):
        created = client.post("/api/bots", json=_bot_payload()).json()

        listed = client.get("/api/bots").json()
        fetched = client.get(f"/api/bots/{created['id']}").json()

        assert [b["id"] for b in listed] == [created["id"]]
        assert fetched["username"] == "support_bot"

    def test_get_missing(self, client):
        response = client.get("/api/bots/missing")

        assert response.status_code == 404
        assert response.json()["message"] == "Bot not found"


class TestUpdateBot:

    def test_update_fields_keeps_connection(self, client, telegram):
        bot = client.post("/api/bots", json=_bot_payload()).json()

        response = client.patch(f"/api/bots/{bot['id']}", json={"name": "Renamed", "personality": None})

        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["personality"] is None
        assert response.json()["is_active"] is True
        assert len(telegram.connections) == 1

    def test_null_for_required_field_is_ignored(self, client):
        bot = client.post("/api/bots", json=_bot_payload()).json()

        response = client.patch(f"/api/bots/{bot['id']}", json={"name": None, "description": "Answers tickets"})

        assert response.json()["name"] == "Support"
        assert response.json()["description"] == "Answers tickets"

    def test_empty_update_rejected(self, client, telegram):
        bot = client.post("/api/bots", json=_bot_payload()).json()

        for body in ({}, {"name": None, "telegram_token": None}):
            response = client.patch(f"/api/bots/{bot['id']}", json=body)

            assert response.status_code == 400
            assert response.json()["errors"][0]["field"] == "body"
        assert len(telegram.connections) == 1

    def test_new_token_restarts_bot(self, client, manager, telegram):
        bot = client.post("/api/bots", json=_bot_payload()).json()
        first = telegram.last

        response = client.patch(f"/api/bots/{bot['id']}", json={"telegram_token": OTHER_VALID_TOKEN})

        assert response.status_code == 200
        assert first.closed is True
        assert telegram.last.token == OTHER_VALID_TOKEN
        assert manager.is_live(bot["id"])
        assert response.json()["is_active"] is True

    def test_rejected_new_token(self, client, manager, storage):
        bot = client.post("/api/bots", json=_bot_payload()).json()

        response = client.patch(f"/api/bots/{bot['id']}", json={"telegram_token": REJECTED_TOKEN})

        assert response.status_code == 400
        assert not manager.is_live(bot["id"])
        assert storage.get_bot(bot["id"]).is_active is False

    def test_username_conflict(self, client):
        client.post("/api/bots", json=_bot_payload())
        other = client.post(
            "/api/bots", json=_bot_payload(username="other_bot", telegram_token=OTHER_VALID_TOKEN)
        ).json()

        response = client.patch(f"/api/bots/{other['id']}", json={"username": "support_bot"})

        assert response.status_code == 400

    def test_update_missing(self, client):
        assert client.patch("/api/bots/missing", json={"name": "x"}).status_code == 404


class TestDeleteBot:

    def test_delete_stops_bot(self, client, manager, telegram):
        bot = client.post("/api/bots", json=_bot_payload()).json()

        response = client.delete(f"/api/bots/{bot['id']}")

        assert response.status_code == 204
        assert telegram.last.closed is True
        assert not manager.is_live(bot["id"])
        assert client.get(f"/api/bots/{bot['id']}").status_code == 404

    def test_delete_missing(self, client):
        assert client.delete("/api/bots/missing").status_code == 404


class TestToggleBot:

    def test_toggle_off_and_on(self, client, manager):
        bot = client.post("/api/bots", json=_bot_payload()).json()

        stopped = client.post(f"/api/bots/{bot['id']}/toggle").json()
        assert stopped["is_active"] is False
        assert not manager.is_live(bot["id"])

        started = client.post(f"/api/bots/{bot['id']}/toggle").json()
        assert started["is_active"] is True
        assert manager.is_live(bot["id"])

    def test_toggle_missing(self, client):
        assert client.post("/api/bots/missing/toggle").status_code == 404


class TestBotMessages:

    def test_test_message(self, client, storage):
        bot = client.post("/api/bots", json=_bot_payload()).json()

        response = client.post(f"/api/bots/{bot['id']}/test", json={"message": "Hello?"})

        assert response.status_code == 200
        assert response.json() == {"response": GPT_REPLY}
        assert len(storage.list_bot_messages(bot["id"])) == 1

    def test_test_message_requires_text(self, client):
        bot = client.post("/api/bots", json=_bot_payload()).json()

        response = client.post(f"/api/bots/{bot['id']}/test", json={})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "message"

    def test_test_message_missing_bot(self, client):
        response = client.post("/api/bots/missing/test", json={"message": "Hello?"})

        assert response.status_code == 404

    def test_test_message_generation_failure(self, client, openai_client):
        bot = client.post("/api/bots", json=_bot_payload()).json()
        openai_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )

        response = client.post(f"/api/bots/{bot['id']}/test", json={"message": "Hello?"})

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to generate response from GPT"

    def test_history_newest_first_with_limit(self, client):
        bot = client.post("/api/bots", json=_bot_payload()).json()
        for text in ("first", "second", "third"):
            client.post(f"/api/bots/{bot['id']}/test", json={"message": text})

        response = client.get(f"/api/bots/{bot['id']}/messages", params={"limit": 2})

        assert response.status_code == 200
        assert [m["message"] for m in response.json()] == ["third", "second"]

    def test_history_default_limit(self, client, storage):
        bot = client.post("/api/bots", json=_bot_payload()).json()
        for i in range(55):
            storage.create_bot_message(bot["id"], f"msg {i}", "ok")

        messages = client.get(f"/api/bots/{bot['id']}/messages").json()

        assert len(messages) == 50
        assert messages[0]["message"] == "msg 54"

    def test_history_missing_bot(self, client):
        assert client.get("/api/bots/missing/messages").status_code == 404


class TestValidateOpenAI:

    def test_valid(self, client, openai_client):
        response = client.post("/api/validate-openai", json={"model": "gpt-4o"})

        assert response.json() == {"valid": True}
        assert openai_client.chat.completions.create.call_args.kwargs["model"] == "gpt-4o"

    def test_invalid(self, client, openai_client):
        openai_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )

        response = client.post("/api/validate-openai", json={})

        assert response.json() == {"valid": False}
