"""Pytest configuration and shared fixtures."""
import json
import os
from collections.abc import AsyncIterator, Callable, Iterable

import httpx
import pytest

from streamchat.llm import provider_from_settings
from streamchat.memory.in_memory import InMemoryBackend
from streamchat.settings import ModelSettings

BASE_URL = "https://example.com/v1"


def sse_line(content: str) -> str:
    """One `data:` line carrying a single content delta."""
    frame = {"choices": [{"delta": {"content": content}}]}
    return "data: " + json.dumps(frame, ensure_ascii=False) + "\n"


def sse_body(*deltas: str, done: bool = True) -> bytes:
    """A complete stream body for the given deltas."""
    body = "".join(sse_line(delta) for delta in deltas)
    if done:
        body += "data: [DONE]\n"
    return body.encode("utf-8")


async def byte_chunks(*chunks: bytes) -> AsyncIterator[bytes]:
    """Async iterable of raw body chunks, as a network read would deliver them."""
    for chunk in chunks:
        yield chunk


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class RecordingHandler:
    """MockTransport handler that replays canned responses and records requests."""

    def __init__(self, responses: Iterable[httpx.Response | Exception]):
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    @property
    def bodies(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(scope="session")
def api_keys():
    """Return API settings for integration tests from environment."""
    return {
        "api_key": os.getenv("STREAMCHAT_TEST_API_KEY"),
        "base_url": os.getenv("STREAMCHAT_TEST_BASE_URL"),
        "model": os.getenv("STREAMCHAT_TEST_MODEL"),
    }


@pytest.fixture
def settings():
    """Complete settings pointing at a fake endpoint."""
    return ModelSettings(name="glm-4-flash", base_url=BASE_URL, api_key="k")


@pytest.fixture
def backend():
    """Empty in-memory key/value backend."""
    return InMemoryBackend()


@pytest.fixture
def clock():
    """Deterministic epoch-millisecond clock advancing 1 ms per call."""
    state = {"now": 1_700_000_000_000}

    def tick() -> int:
        state["now"] += 1
        return state["now"]

    return tick


@pytest.fixture
def provider_factory():
    """Build a provider factory bound to a MockTransport handler."""

    def build(handler: Callable[[httpx.Request], httpx.Response]):
        client = mock_client(handler)
        return lambda settings: provider_from_settings(settings, http_client=client)

    return build
