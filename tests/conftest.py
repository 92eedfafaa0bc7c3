"""Shared fixtures: a scripted model gateway and an app wired to it."""

import uuid
from typing import Iterator, List, Optional

import pytest
from fastapi.testclient import TestClient

from chatbot.config import Settings
from chatbot.errors import UpstreamError
from chatbot.gateway import ModelGateway
from chatbot.main import create_app
from chatbot.store import HistoryStore, Turn


class ScriptedGateway(ModelGateway):
    """Replays fixed fragments and optionally fails afterwards."""

    name = "scripted"

    def __init__(
        self,
        fragments: Optional[List[str]] = None,
        fail: bool = False,
        error: Optional[Exception] = None,
    ) -> None:
        self.fragments = list(fragments or [])
        self.error = error or (UpstreamError("model unavailable") if fail else None)
        self.calls: List[List[Turn]] = []

    def complete(self, history: List[Turn]) -> str:
        self.calls.append(list(history))
        if self.error is not None:
            raise self.error
        return "".join(self.fragments)

    def stream(self, history: List[Turn]) -> Iterator[str]:
        self.calls.append(list(history))
        for fragment in self.fragments:
            yield fragment
        if self.error is not None:
            raise self.error


@pytest.fixture
def store():
    return HistoryStore()


@pytest.fixture
def gateway():
    return ScriptedGateway(["Hel", "lo"])


@pytest.fixture
def settings():
    return Settings(empty_reply_placeholder="(empty reply)")


@pytest.fixture
def app(settings, store, gateway):
    return create_app(settings=settings, store=store, gateway=gateway)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def conversation_id():
    return str(uuid.uuid4())
