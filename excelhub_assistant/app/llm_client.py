"""
Provider adapters for the text-generation relay.

Rationale:
- One small adapter per provider: build_request() maps the uniform request to
  the provider's wire format, parse_response() pulls the answer text back out.
- The relay handler only ever talks to the ProviderAdapter interface, so a new
  provider is one more entry in ADAPTERS.
- Raw JSON over httpx so the upstream status and error message can be relayed
  as-is. No retries / no fallback.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .errors import ConfigurationError, InvalidRequestError, ProviderFailure, UpstreamError
from .prompts import DetailLevel, build_system_prompt

logger = logging.getLogger(__name__)

# Serialized non-image file content is cut to this many characters.
MAX_CONTEXT_CHARS = 5000
MAX_OUTPUT_TOKENS = 2048


@dataclass(frozen=True)
class ProviderRequest:
    """Uniform request shared by every provider."""

    prompt: str
    file_content: Optional[Any] = None
    file_type: Optional[str] = None
    detail_level: DetailLevel = DetailLevel.DETAILED

    @property
    def has_image(self) -> bool:
        return bool(self.file_content) and bool(self.file_type) and self.file_type.startswith("image/")


@dataclass
class WireRequest:
    url: str
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)


def serialize_context(file_content: Any) -> str:
    """Compact JSON of the file content, truncated to MAX_CONTEXT_CHARS."""
    return json.dumps(file_content, ensure_ascii=False, separators=(",", ":"), default=str)[:MAX_CONTEXT_CHARS]


def build_user_parts(request: ProviderRequest) -> List[Dict[str, Any]]:
    """
    Build the user message parts: the prompt text, then either an inline image
    part or a labeled file-context text block.
    """
    parts: List[Dict[str, Any]] = [{"text": request.prompt}]
    if request.file_content:
        if request.has_image:
            parts.append({"inline_data": {"mime_type": request.file_type, "data": request.file_content}})
        else:
            parts.append({"text": f"\n\nFile Context:\n{serialize_context(request.file_content)}"})
    return parts


class ProviderAdapter:
    """Interface every provider implements."""

    name = ""
    label = ""
    env_var = ""
    model_env_var = ""
    default_model = ""

    def api_key(self) -> str:
        # Load API key lazily (after main.py loads .env)
        key = os.getenv(self.env_var)
        if not key:
            raise ConfigurationError(f"{self.label} API key not configured")
        return key

    def model_name(self) -> str:
        return os.getenv(self.model_env_var) or self.default_model

    def build_request(self, request: ProviderRequest, system_prompt: str, api_key: str) -> WireRequest:
        raise NotImplementedError

    def parse_response(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError


class GeminiAdapter(ProviderAdapter):
    """contents/parts structure with a separate systemInstruction; supports inline images."""

    name = "gemini"
    label = "Gemini"
    env_var = "GEMINI_API_KEY"
    model_env_var = "GEMINI_MODEL"
    default_model = "gemini-1.5-flash"
    base_url = "https://generativelanguage.googleapis.com/v1beta/models"

    def build_request(self, request: ProviderRequest, system_prompt: str, api_key: str) -> WireRequest:
        model_name = self.model_name()
        # Remove 'models/' prefix if present
        if model_name.startswith("models/"):
            model_name = model_name[len("models/"):]
        return WireRequest(
            url=f"{self.base_url}/{model_name}:generateContent",
            params={"key": api_key},
            headers={"Content-Type": "application/json"},
            body={
                "contents": [{"role": "user", "parts": build_user_parts(request)}],
                "systemInstruction": {"parts": [{"text": system_prompt}]},
                "generationConfig": {"maxOutputTokens": MAX_OUTPUT_TOKENS},
            },
        )

    def parse_response(self, data: Dict[str, Any]) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]


class GroqAdapter(ProviderAdapter):
    """Flat system/user message list. Text only: inline image parts are dropped."""

    name = "groq"
    label = "Groq"
    env_var = "GROQ_API_KEY"
    model_env_var = "GROQ_MODEL"
    default_model = "llama-3.3-70b-versatile"
    url = "https://api.groq.com/openai/v1/chat/completions"

    def build_request(self, request: ProviderRequest, system_prompt: str, api_key: str) -> WireRequest:
        user_text = "\n".join(p["text"] for p in build_user_parts(request) if "text" in p)
        return WireRequest(
            url=self.url,
            headers={"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"},
            body={
                "model": self.model_name(),
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_text},
                ],
                "max_tokens": MAX_OUTPUT_TOKENS,
            },
        )

    def parse_response(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]


ADAPTERS: Dict[str, ProviderAdapter] = {
    adapter.name: adapter for adapter in (GeminiAdapter(), GroqAdapter())
}


def get_adapter(provider: str) -> ProviderAdapter:
    adapter = ADAPTERS.get((provider or "").lower())
    if adapter is None:
        raise InvalidRequestError("Invalid provider specified")
    return adapter


def _extract_error_message(response: httpx.Response) -> str:
    """Pull error.message out of a provider error body, else 'HTTP <status>'."""
    try:
        data = response.json()
    except ValueError:
        data = None
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return f"HTTP {response.status_code}"


async def call_provider(adapter: ProviderAdapter, request: ProviderRequest, client: httpx.AsyncClient) -> str:
    """
    Send one request to the provider behind `adapter` and return the answer text.

    Raises:
        InvalidRequestError: empty prompt
        ConfigurationError: credential missing
        UpstreamError: provider answered with a non-success status
        ProviderFailure: anything else (transport error, unexpected body shape)
    """
    if not request.prompt or not request.prompt.strip():
        raise InvalidRequestError("Prompt is required")

    api_key = adapter.api_key()
    system_prompt = build_system_prompt(request.detail_level)
    wire = adapter.build_request(request, system_prompt, api_key)

    try:
        response = await client.post(wire.url, params=wire.params, headers=wire.headers, json=wire.body)
    except Exception:
        logger.exception(f"{adapter.name} Server Error")
        raise ProviderFailure(f"Failed to generate response with {adapter.name}")

    if not response.is_success:
        message = _extract_error_message(response)
        logger.error(f"{adapter.name} API Error: {response.status_code} {message}")
        raise UpstreamError(message, status_code=response.status_code)

    try:
        text = adapter.parse_response(response.json())
        if not isinstance(text, str):
            raise TypeError(f"answer is {type(text).__name__}, not str")
    except Exception:
        logger.exception(f"{adapter.name} returned an unexpected response body")
        raise ProviderFailure(f"Failed to generate response with {adapter.name}")

    logger.info(f"{adapter.name} answered with {len(text)} characters")
    return text
