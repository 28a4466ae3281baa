"""Shared fixtures: API client, credentials, and a fake upstream provider."""

import httpx
import pytest
from fastapi.testclient import TestClient

from excelhub_assistant.app.main import app, get_http_client


@pytest.fixture
def no_keys(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GROQ_API_KEY", raising=False)


@pytest.fixture
def api_keys(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "gemini-test-key")
    monkeypatch.setenv("GROQ_API_KEY", "groq-test-key")
    monkeypatch.delenv("GEMINI_MODEL", raising=False)
    monkeypatch.delenv("GROQ_MODEL", raising=False)


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def upstream():
    """
    Route outbound provider calls to `handler(request) -> httpx.Response`.
    Returns the list the intercepted requests are appended to.
    """
    def install(handler):
        calls = []

        def record(request):
            calls.append(request)
            return handler(request)

        async def override():
            async with httpx.AsyncClient(transport=httpx.MockTransport(record)) as c:
                yield c

        app.dependency_overrides[get_http_client] = override
        return calls

    yield install
    app.dependency_overrides.clear()
