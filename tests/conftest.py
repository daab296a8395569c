from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from codeassist.accounts import InMemoryUserStore
from codeassist.config import PROJECT_ROOT, AccountsConfig, AppConfig, HistoryConfig, ModelConfig
from codeassist.errors import UpstreamError
from codeassist.history import InMemoryHistoryStore
from codeassist.main import create_app
from codeassist.pipeline.client import StreamChunk


class FakeModelClient:
    """Replays scripted chunks; optionally fails after them."""

    def __init__(self, chunks: list[StreamChunk] | None = None, error: Exception | None = None):
        self.chunks = chunks or []
        self.error = error
        self.calls: list = []

    async def stream(self, messages):
        self.calls.append(messages)
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


def answer(*parts: str, reasoning: tuple[str, ...] = ()) -> list[StreamChunk]:
    """Reasoning chunks followed by answer chunks, like a reasoner model streams."""
    return [StreamChunk(reasoning=r) for r in reasoning] + [
        StreamChunk(content=p) for p in parts
    ]


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        model=ModelConfig(timeout=5),
        accounts=AccountsConfig(backend="memory"),
        history=HistoryConfig(backend="memory"),
        base_dir=PROJECT_ROOT,
    )


@pytest.fixture
def model_client() -> FakeModelClient:
    return FakeModelClient(answer("def f():", "\n    return 1", reasoning=("Let me", " think")))


@pytest.fixture
def failing_client() -> FakeModelClient:
    return FakeModelClient(
        answer("partial"), error=UpstreamError("Model API returned status 503")
    )


@pytest.fixture
def history() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def users() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def client(config, model_client, history, users):
    app = create_app(config, model_client=model_client, history=history, users=users)
    with TestClient(app) as c:
        yield c
