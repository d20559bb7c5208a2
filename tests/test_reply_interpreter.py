"""Tests for decoding model output into structured replies."""

import json

import pytest

from models.reply_models import ReplyKind
from services.errors import DecodeError, EmptyReplyError
from services.realtime.reply_interpreter import decode_reply, fallback_reply


def _raw(**fields) -> str:
    return json.dumps(fields)


@pytest.mark.parametrize(
    "action, kind",
    [
        ("CHAT", ReplyKind.CHAT),
        ("LIST_ARTICLES", ReplyKind.LIST_DOCS),
        ("LIST_DOCS", ReplyKind.LIST_DOCS),
        ("ENABLE_TTS", ReplyKind.SET_VOICE_MODE),
    ],
)
def test_decode_maps_actions_to_kinds(action, kind):
    reply = decode_reply(_raw(action=action, responseText="Sure."))

    assert reply.kind is kind
    assert reply.text == "Sure."


def test_decode_create_article_keeps_document_fields():
    reply = decode_reply(
        _raw(action="CREATE_ARTICLE", responseText="Saved.", filename="weld_safety.md", content="# Weld")
    )

    assert reply.kind is ReplyKind.CREATE_DOC
    assert reply.doc_name == "weld_safety.md"
    assert reply.doc_content == "# Weld"
    assert reply.action == "CREATE_ARTICLE"


def test_decode_strips_code_fences():
    raw = "```json\n" + _raw(action="CHAT", responseText="hi") + "\n```"

    assert decode_reply(raw).text == "hi"


def test_incomplete_mutation_degrades_to_chat():
    reply = decode_reply(_raw(action="UPDATE_ARTICLE", responseText="Updated.", filename="a.md"))

    assert reply.kind is ReplyKind.CHAT
    assert reply.text == "Updated."


def test_open_link_without_url_degrades_to_chat():
    assert decode_reply(_raw(action="OPEN_BROWSER", responseText="Opening")).kind is ReplyKind.CHAT


def test_voice_mode_flag_follows_action():
    enabled = decode_reply(_raw(action="ENABLE_TTS", responseText="On"))
    disabled = decode_reply(_raw(action="DISABLE_TTS", responseText="Off"))

    assert enabled.voice_enabled is True and enabled.action == "ENABLE_TTS"
    assert disabled.voice_enabled is False and disabled.action == "DISABLE_TTS"


def test_decode_plot_payload():
    plot = {
        "type": "line",
        "data": {"labels": ["0", "1"], "datasets": [{"label": "y", "data": [1, 2.5]}]},
        "title": "Growth",
        "xAxisLabel": "t",
        "yAxisLabel": "y",
    }
    reply = decode_reply(_raw(action="GENERATE_PLOT", responseText="Here.", plotData=plot))

    assert reply.kind is ReplyKind.PLOT
    assert reply.plot.to_payload()["data"]["datasets"][0]["data"] == [1.0, 2.5]
    assert reply.plot.to_payload()["xAxisLabel"] == "t"


def test_invalid_plot_degrades_to_chat():
    reply = decode_reply(_raw(action="GENERATE_PLOT", responseText="Here.", plotData={"type": "pie"}))

    assert reply.kind is ReplyKind.CHAT


@pytest.mark.parametrize(
    "raw",
    [
        "hello world",
        "[1, 2]",
        _raw(action="DANCE", responseText="no"),
        _raw(action="CHAT", responseText="   "),
        _raw(action="CHAT"),
    ],
)
def test_decode_rejects_bad_replies(raw):
    with pytest.raises(DecodeError):
        decode_reply(raw)


def test_fallback_wraps_plain_text_as_chat():
    reply = fallback_reply("hello world")

    assert reply.kind is ReplyKind.CHAT
    assert reply.text == "hello world"


@pytest.mark.parametrize("raw", ["", "   \n", None])
def test_fallback_rejects_empty_text(raw):
    with pytest.raises(EmptyReplyError):
        fallback_reply(raw)
