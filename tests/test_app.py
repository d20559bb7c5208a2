"""End-to-end tests for the REST routes and the realtime websocket."""

import json

import pytest
from fastapi.testclient import TestClient

from main import create_app


def _create_reply(filename: str, content: str) -> str:
    return json.dumps(
        {"action": "CREATE_ARTICLE", "responseText": "Article saved.", "filename": filename, "content": content}
    )


@pytest.fixture
def client_for(settings):
    def build(gateway):
        return TestClient(create_app(settings, model_gateway=gateway))

    return build


def test_health_reports_model_and_sessions(client_for, fake_gateway):
    with client_for(fake_gateway) as client:
        response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["model_available"] is True
    assert body["active_sessions"] == 0


def test_article_rest_lifecycle(client_for, fake_gateway):
    with client_for(fake_gateway) as client:
        created = client.post("/articles", json={"filename": "notes", "content": "# Notes"})
        assert created.json() == {"success": True, "filename": "notes.md"}

        assert client.get("/articles").json() == ["notes.md"]
        assert client.get("/articles/notes.md").json() == {"filename": "notes.md", "content": "# Notes"}

        updated = client.put("/articles/notes", json={"content": "# Notes v2"})
        assert updated.json()["success"] is True
        assert client.get("/articles/notes").json()["content"] == "# Notes v2"

        stats = client.get("/stats").json()
        assert stats["totalArticles"] == 1
        assert stats["articles"][0]["filename"] == "notes.md"

        assert client.delete("/articles/notes.md").json() == {"success": True}
        assert client.delete("/articles/notes.md").json() == {"success": False, "error": "Article not found"}
        assert client.get("/articles/notes.md").status_code == 404


def test_article_rest_validation(client_for, fake_gateway):
    with client_for(fake_gateway) as client:
        assert client.post("/articles", json={"filename": "x", "content": ""}).status_code == 400
        assert client.post("/articles", json={"filename": "x"}).status_code == 422
        assert client.get("/articles/.hidden").status_code == 400


def test_websocket_create_article_scenario(client_for, make_gateway):
    gateway = make_gateway(replies=[_create_reply("weld_safety.md", "# Weld safety\nWear a helmet.")])

    with client_for(gateway) as client:
        with client.websocket_connect("/ws") as ws:
            established = ws.receive_json()
            assert established["type"] == "connection_established"
            assert established["aiAvailable"] is True

            ws.send_json({"type": "send_message", "message": "write weld safety", "request_id": "r1"})
            reply = ws.receive_json()
            saved = ws.receive_json()

            assert reply["type"] == "ai_response"
            assert reply["action"] == "CREATE_ARTICLE"
            assert reply["request_id"] == "r1"
            assert saved == {
                "type": "article_saved",
                "filename": "weld_safety.md",
                "message": "Article saved successfully",
                "timestamp": saved["timestamp"],
                "request_id": "r1",
            }

            ws.send_json({"type": "get_articles", "request_id": "r2"})
            listing = ws.receive_json()
            assert listing["type"] == "articles_list"
            assert "weld_safety.md" in listing["articles"]

            ws.send_json({"type": "get_article", "filename": "weld_safety", "request_id": "r3"})
            content = ws.receive_json()
            assert content["type"] == "article_content"
            assert content["content"].startswith("# Weld safety")

        assert gateway.turns[0].text == "write weld safety"
        assert client.get("/articles").json() == ["weld_safety.md"]


def test_websocket_reports_bad_frames(client_for, fake_gateway):
    with client_for(fake_gateway) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()

            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Payload must be JSON"}

            ws.send_text("[1, 2]")
            assert ws.receive_json() == {"type": "error", "message": "Payload must be a JSON object"}

            ws.send_json({"type": "send_message", "message": "   ", "request_id": 5})
            assert ws.receive_json() == {"type": "error", "message": "Message text is required.", "request_id": 5}

            ws.send_json({"type": "delete_article", "filename": "ghost.md"})
            deleted = ws.receive_json()
            assert deleted["type"] == "article_deleted"
            assert deleted["success"] is False


def test_websocket_without_model_still_serves_articles(client_for, make_gateway):
    with client_for(make_gateway(available=False)) as client:
        with client.websocket_connect("/ws") as ws:
            init_error = ws.receive_json()
            assert init_error["type"] == "error"
            assert init_error["message"] == "Failed to create chat session"

            established = ws.receive_json()
            assert established["aiAvailable"] is False

            ws.send_json({"type": "send_message", "message": "hello", "request_id": "r1"})
            unavailable = ws.receive_json()
            assert unavailable["message"] == "Chat session not available"
            assert unavailable["request_id"] == "r1"

            ws.send_json({"type": "get_articles"})
            assert ws.receive_json()["articles"] == []

        assert client.get("/health").json()["model_available"] is False


def test_session_is_closed_on_disconnect(client_for, fake_gateway):
    with client_for(fake_gateway) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            assert client.get("/health").json()["active_sessions"] == 1

        assert client.get("/health").json()["active_sessions"] == 0
        assert len(fake_gateway.discarded) == 1


def test_stats_survive_non_utf8_article(client_for, fake_gateway, settings):
    with client_for(fake_gateway) as client:
        client.post("/articles", json={"filename": "good", "content": "ok"})
        with open(f"{settings.articles_dir}/legacy.md", "wb") as fh:
            fh.write(b"\xff\xfe bad")

        stats = client.get("/stats")
        legacy = client.get("/articles/legacy.md")

    assert stats.status_code == 200
    assert stats.json()["totalArticles"] == 2
    assert legacy.status_code == 500
    assert legacy.json() == {"detail": "Failed to read article"}
