"""Tests for the chat-completions client and JSON answer parsing."""

import json

import httpx
import pytest

from contract_analyzer.exceptions import AnalysisResponseError, LLMServiceError
from contract_analyzer.services.llm_client import GroqClient, parse_json_response, strip_code_fences


@pytest.mark.parametrize("text", [
    '```json\n{"a": 1}\n```',
    '```\n{"a": 1}\n```',
    '  {"a": 1}  ',
])
def test_strip_code_fences(text):
    assert strip_code_fences(text) == '{"a": 1}'


def test_parse_json_response_from_fenced_answer():
    assert parse_json_response('```json\n{"summary": "ok"}\n```') == {"summary": "ok"}


def test_parse_json_response_from_prose():
    text = 'Hier ist die Analyse:\n{"summary": "Risiko {hoch}"}\nViel Erfolg!'

    assert parse_json_response(text) == {"summary": "Risiko {hoch}"}


@pytest.mark.parametrize("text", ["Keine Analyse möglich.", "{kaputt", "[1, 2]", '"nur ein String"'])
def test_parse_json_response_rejects_non_objects(text):
    with pytest.raises(AnalysisResponseError) as exc_info:
        parse_json_response(text)

    assert exc_info.value.raw == text


class TestGroqClient:

    @pytest.mark.asyncio
    async def test_request_payload_and_headers(self, test_settings, llm_client_factory):
        client = llm_client_factory("Antwort")

        answer = await client.complete("Vertrag prüfen", system_prompt="Sie sind Anwalt.", max_tokens=123)

        assert answer == "Antwort"
        [request] = client.requests
        assert str(request.url) == "https://api.groq.com/openai/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer test-key"
        payload = json.loads(request.content)
        assert payload["model"] == test_settings.GROQ_MODEL
        assert payload["max_tokens"] == 123
        assert payload["temperature"] == test_settings.GENERATION_TEMPERATURE
        assert [m["role"] for m in payload["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_default_max_tokens_and_no_system_message(self, test_settings, llm_client_factory):
        client = llm_client_factory("Antwort")

        await client.complete("Vertrag prüfen")

        payload = json.loads(client.requests[0].content)
        assert payload["max_tokens"] == test_settings.GENERATION_MAX_TOKENS
        assert [m["role"] for m in payload["messages"]] == ["user"]

    @pytest.mark.asyncio
    async def test_complete_json(self, llm_client_factory):
        client = llm_client_factory('```json\n{"annotations": []}\n```')

        assert await client.complete_json("Vertrag prüfen") == {"annotations": []}

    @pytest.mark.asyncio
    async def test_http_error_status(self, llm_client_factory):
        client = llm_client_factory("", status_code=500)

        with pytest.raises(LLMServiceError) as exc_info:
            await client.complete("Vertrag prüfen")

        assert exc_info.value.status_code == 502
        assert str(exc_info.value) == "AI service returned HTTP 500"

    @pytest.mark.asyncio
    async def test_unconfigured_client_does_not_send(self, llm_client_factory):
        client = llm_client_factory("Antwort", api_key="")

        with pytest.raises(LLMServiceError) as exc_info:
            await client.complete("Vertrag prüfen")

        assert exc_info.value.status_code == 500
        assert client.requests == []

    @pytest.mark.asyncio
    async def test_empty_answer(self, llm_client_factory):
        client = llm_client_factory("")

        with pytest.raises(LLMServiceError, match="No response from AI analysis"):
            await client.complete("Vertrag prüfen")

    @pytest.mark.asyncio
    async def test_transport_failure(self, test_settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = GroqClient(test_settings, api_key="test-key", transport=httpx.MockTransport(handler))

        with pytest.raises(LLMServiceError, match="unreachable"):
            await client.complete("Vertrag prüfen")

    @pytest.mark.asyncio
    async def test_non_json_body(self, test_settings):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>Gateway</html>"))
        client = GroqClient(test_settings, api_key="test-key", transport=transport)

        with pytest.raises(LLMServiceError):
            await client.complete("Vertrag prüfen")

    def test_is_configured(self, test_settings):
        assert GroqClient(test_settings).is_configured
        assert not GroqClient(test_settings, api_key="").is_configured
