"""Pytest configuration and shared fixtures."""

import json
from typing import Any, List

import httpx
import pytest
from fastapi.testclient import TestClient

from contract_analyzer.api.main import app
from contract_analyzer.models.config import Settings
from contract_analyzer.services.llm_client import GroqClient


CONTRACT_TEXT = (
    "§ 1 Vertragsgegenstand\n"
    "Der Auftragnehmer erstellt für den Auftraggeber eine Webanwendung.\n"
    "§ 2 Arbeitszeit\n"
    "Der Auftragnehmer arbeitet täglich von 9 bis 17 Uhr in den Räumen des Auftraggebers.\n"
    "§ 3 Vergütung\n"
    "Die Vergütung beträgt 50 EUR pro Stunde und wird monatlich abgerechnet.\n"
    "§ 4 Weisungen\n"
    "Der Auftragnehmer unterliegt den Weisungen des Auftraggebers.\n"
)


def chat_completion(content: str) -> dict:
    """Body of a chat-completions response with one assistant message."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


@pytest.fixture
def contract_text() -> str:
    return CONTRACT_TEXT


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a dummy API key, isolated from any local .env file."""
    return Settings(_env_file=None, GROQ_API_KEY="test-key")


@pytest.fixture
def llm_client_factory(test_settings):
    """
    Build GroqClient instances backed by httpx.MockTransport.

    Each answer is returned for one request, in order; the last answer
    repeats. Non-string answers are sent as JSON. Sent requests are
    recorded on ``client.requests``.
    """

    def factory(*answers: Any, status_code: int = 200, api_key: str = "test-key") -> GroqClient:
        queue: List[Any] = list(answers)
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if status_code != 200:
                return httpx.Response(status_code, json={"error": {"message": "upstream failure"}})
            answer = queue.pop(0) if len(queue) > 1 else queue[0]
            if not isinstance(answer, str):
                answer = json.dumps(answer, ensure_ascii=False)
            return httpx.Response(200, json=chat_completion(answer))

        client = GroqClient(test_settings, api_key=api_key, transport=httpx.MockTransport(handler))
        client.requests = requests
        return client

    return factory


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}
