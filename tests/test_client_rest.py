"""Tests for the REST fallback client and the console front-end."""

import json

import httpx
import pytest

from client.api_service import ApiService
from client.connection_manager import ConnectionManager
from client.console import ConsoleClient, format_reply, parse_command
from client.errors import ApiError
from client.view_model import Message
from utils.config import ClientSettings


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/health":
        return httpx.Response(200, json={"status": "OK"})
    if path == "/articles" and request.method == "GET":
        return httpx.Response(200, json=["a.md", "b.md"])
    if path == "/articles" and request.method == "POST":
        body = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "filename": body["filename"] + ".md"})
    if path == "/articles/a.md" and request.method == "GET":
        return httpx.Response(200, json={"filename": "a.md", "content": "# A"})
    if path == "/articles/a.md" and request.method == "DELETE":
        return httpx.Response(200, json={"success": True})
    if path == "/stats":
        return httpx.Response(
            200,
            json={"totalArticles": 1, "totalSize": 3, "articles": [{"filename": "a.md", "size": 3, "lines": 1}]},
        )
    if path == "/broken":
        return httpx.Response(500, json={"detail": "boom"})
    return httpx.Response(404, json={"detail": "Article not found"})


@pytest.fixture
def api():
    client = httpx.AsyncClient(base_url="http://ipa.test", transport=httpx.MockTransport(_handler))
    return ApiService("http://ipa.test", client=client)


@pytest.mark.asyncio
async def test_api_service_article_calls(api):
    assert (await api.health_check())["status"] == "OK"
    assert await api.get_articles() == ["a.md", "b.md"]
    assert await api.get_article("a.md") == "# A"
    assert await api.get_article("missing.md") is None
    assert await api.create_article("c", "body") == {"success": True, "filename": "c.md"}
    assert (await api.delete_article("a.md"))["success"] is True
    assert (await api.get_stats())["totalArticles"] == 1
    await api.aclose()


@pytest.mark.asyncio
async def test_api_service_wraps_http_errors(api):
    with pytest.raises(ApiError, match="HTTP 404"):
        await api.update_article("missing.md", "x")
    await api.aclose()


@pytest.mark.asyncio
async def test_api_service_wraps_transport_errors():
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    client = httpx.AsyncClient(base_url="http://ipa.test", transport=httpx.MockTransport(refuse))
    api = ApiService("http://ipa.test", client=client)

    with pytest.raises(ApiError, match="check server health"):
        await api.health_check()
    await api.aclose()


def test_parse_command():
    assert parse_command("/READ weld safety") == ("/read", ["weld", "safety"])
    assert parse_command("   ") == ("", [])


def test_format_reply_shows_extras():
    message = Message(
        id="m",
        text="Opening it.",
        sender="bot",
        timestamp="t",
        action="OPEN_BROWSER",
        data={"url": "https://example.com"},
    )

    assert format_reply(message) == "IPA: Opening it.\n  link: https://example.com"


@pytest.mark.asyncio
async def test_console_uses_rest_when_disconnected(api, capsys):
    console = ConsoleClient(ClientSettings(server_url="http://ipa.test"), manager=ConnectionManager(), api=api)

    assert await console.handle_line("/list") is True
    assert await console.handle_line("/read") is True
    assert await console.handle_line("/read a.md") is True
    assert await console.handle_line("hello") is True
    assert await console.handle_line("/nope") is True
    assert await console.handle_line("/quit") is False

    out = capsys.readouterr().out
    assert "  1. a.md" in out
    assert "Usage: /read <name>" in out
    assert "--- a.md ---\n# A" in out
    assert "Not connected to server. Message not sent." in out
    assert "Unknown command: /nope" in out
    await api.aclose()
