"""Shared fixtures for the server and client suites."""

import os

# Importing main builds the module-level app; keep it off disk and offline.
os.environ["LOG_DIR"] = ""
os.environ.pop("OPENAI_API_KEY", None)

from typing import List, Optional

import pytest

from models.session_models import ModelContext, Turn
from services.document_store import DocumentStore
from services.errors import SessionInitError
from utils.config import Settings


class FakeGateway:
    """Stand-in for ModelGateway that replays scripted replies."""

    def __init__(self, replies: Optional[List] = None, available: bool = True) -> None:
        self.replies = list(replies or [])
        self.available = available
        self.client = object() if available else None
        self.turns: List[Turn] = []
        self.discarded: List[ModelContext] = []
        self.release = None

    def create_context(self, session_id: str) -> ModelContext:
        if not self.available:
            raise SessionInitError("OPENAI_API_KEY is not configured")
        return ModelContext(session_id=session_id)

    def discard_context(self, context: ModelContext) -> None:
        context.discarded = True
        self.discarded.append(context)

    async def generate(self, context: ModelContext, turn: Turn) -> str:
        self.turns.append(turn)
        if self.release is not None:
            await self.release.wait()
        reply = self.replies.pop(0) if self.replies else '{"action": "CHAT", "responseText": "ok"}'
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def make_gateway():
    return FakeGateway


@pytest.fixture
def store(tmp_path) -> DocumentStore:
    return DocumentStore(str(tmp_path / "articles"))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        openai_api_key=None,
        articles_dir=str(tmp_path / "articles"),
        log_dir=None,
        log_level="WARNING",
    )
