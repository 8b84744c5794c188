"""
LLM Client
Chat completions against Groq's OpenAI-compatible API.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import AnalysisResponseError, LLMServiceError
from ..models.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ``` or ```json fence if the model added one."""
    cleaned = text.strip()
    match = _FENCE_RE.match(cleaned)
    return match.group(1).strip() if match else cleaned


def parse_json_response(text: str) -> Dict[str, Any]:
    """
    Parse a model answer that should be a JSON object.

    Raises:
        AnalysisResponseError: if the answer is not a JSON object
    """
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        # Some answers wrap the object in prose
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start < 0 or end <= start:
            raise AnalysisResponseError("Invalid response format from AI analysis", raw=text) from e
        try:
            parsed = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as inner:
            raise AnalysisResponseError("Invalid response format from AI analysis", raw=text) from inner

    if not isinstance(parsed, dict):
        raise AnalysisResponseError("AI response is not a JSON object", raw=text)
    return parsed


class GroqClient:
    """
    Minimal async client for the chat-completions endpoint.

    A custom ``transport`` can be passed for testing (e.g. httpx.MockTransport).
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or default_settings
        self.api_key = api_key if api_key is not None else self.config.GROQ_API_KEY
        self.transport = transport

        llm = self.config.llm_config
        self.base_url = llm["base_url"].rstrip("/")
        self.model = llm["model"]
        self.temperature = llm["temperature"]
        self.max_tokens = llm["max_tokens"]
        self.timeout = llm["timeout"]

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def complete(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Run one chat completion and return the message content.

        Raises:
            LLMServiceError: not configured, HTTP/transport failure or empty answer
        """
        if not self.is_configured:
            raise LLMServiceError("GROQ_API_KEY is not configured", status_code=500)

        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.debug(f"Calling chat completions: model={self.model}, messages={len(messages)}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}/chat/completions", json=payload, headers=headers)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"LLM API error {e.response.status_code}: {e.response.text[:500]}")
            raise LLMServiceError(f"AI service returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"LLM API request failed: {e}")
            raise LLMServiceError("AI service is unreachable") from e
        except ValueError as e:
            raise LLMServiceError("AI service returned a non-JSON body") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None

        if not content:
            raise LLMServiceError("No response from AI analysis")
        return content

    async def complete_json(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Run a completion and parse its answer as a JSON object."""
        text = await self.complete(user_prompt, system_prompt, max_tokens)
        return parse_json_response(text)


def create_llm_client(config: Optional[Settings] = None, **kwargs) -> GroqClient:
    """Factory function to create the LLM client."""
    return GroqClient(config=config, **kwargs)
