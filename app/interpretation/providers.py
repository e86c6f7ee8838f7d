"""HTTP clients for the AI providers used to interpret lab results.

Each client sends the same system/user prompt pair, asks for a single JSON
object, and returns the parsed payload with model and token usage. Failures
of any kind surface as :class:`LLMError` so the fallback chain can move on to
the next provider.

Never log request bodies: they carry decrypted PHI.
"""

from __future__ import annotations

import json
import re
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Protocol

import httpx
from pydantic import ValidationError

from app.common.exceptions import LLMError
from app.common.logger import get_logger
from app.infra.llm_control import is_retryable_status, llm_slot, sleep_before_retry
from app.infra.settings import get_infra_settings
from app.interpretation.models import AIProvider, InterpretationRequest, ProviderPayload
from app.interpretation.prompts import SYSTEM_PROMPT, build_user_prompt
from config.settings import AIProviderSettings

logger = get_logger("interpretation.providers")

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
ANTHROPIC_API_VERSION = "2023-06-01"


@dataclass(frozen=True)
class ProviderResponse:
    model: str
    payload: ProviderPayload
    token_usage: int = 0


class InterpretationProvider(Protocol):
    provider: AIProvider
    model: str

    def interpret(self, request: InterpretationRequest) -> ProviderResponse:
        ...


def parse_payload(text: Any, *, source: str) -> ProviderPayload:
    """Parse a provider's JSON answer, tolerating markdown code fences."""
    if text is not None and not isinstance(text, str):
        raise LLMError(f"Non-text response from {source}")
    cleaned = (text or "").strip()
    match = _CODE_FENCE_RE.search(cleaned)
    if match:
        cleaned = match.group(1).strip()
    if not cleaned:
        raise LLMError(f"Empty response from {source}")
    try:
        data = json.loads(cleaned)
    except ValueError as exc:
        raise LLMError(f"Invalid JSON from {source}") from exc
    if not isinstance(data, dict):
        raise LLMError(f"Expected a JSON object from {source}")
    try:
        return ProviderPayload.model_validate(data)
    except ValidationError as exc:
        raise LLMError(f"Malformed interpretation from {source}: {exc.error_count()} field error(s)") from exc


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _token_count(usage: Any, *keys: str) -> int:
    """Sum integer usage counters; missing or non-numeric counters count as 0."""
    usage = _as_dict(usage)
    total = 0
    for key in keys:
        value = usage.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            total += int(value)
        elif isinstance(value, str) and value.strip().isdigit():
            total += int(value.strip())
    return total


def _error_message(response: httpx.Response) -> str:
    message = ""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict):
            message = str(err.get("message") or "")
        elif isinstance(err, str):
            message = err

    if not message:
        message = str(response.text or "").strip()

    message = " ".join(message.split())
    if len(message) > 500:
        message = message[:500] + "…"
    return message or f"HTTP {response.status_code}"


class _HttpProvider:
    """Shared POST/retry plumbing; subclasses build payloads and parse replies."""

    provider: AIProvider
    model: str

    def __init__(self, *, client: httpx.Client | None = None, max_attempts: int | None = None) -> None:
        self._client_override = client
        self._max_attempts = max_attempts

    @property
    def label(self) -> str:
        return self.provider.value

    @contextmanager
    def _client(self) -> Iterator[httpx.Client]:
        if self._client_override is not None:
            yield self._client_override
            return
        read_s = float(get_infra_settings().llm_timeout_s)
        timeout = httpx.Timeout(connect=10.0, read=read_s, write=30.0, pool=10.0)
        with httpx.Client(timeout=timeout) as client:
            yield client

    def _post_json(self, url: str, *, headers: dict[str, str], payload: dict[str, Any], model: str) -> dict[str, Any]:
        settings = get_infra_settings()
        attempts = max(1, self._max_attempts or settings.llm_max_attempts)
        deadline = time.monotonic() + float(settings.llm_timeout_s)

        with self._client() as client:
            for attempt in range(attempts):
                has_retry = attempt + 1 < attempts
                try:
                    with llm_slot():
                        response = client.post(url, headers=headers, json=payload)
                except httpx.TransportError as exc:
                    logger.warning(
                        "%s transport error attempt=%s model=%s error=%s",
                        self.label,
                        attempt + 1,
                        model,
                        type(exc).__name__,
                    )
                    if has_retry and sleep_before_retry({}, attempt, deadline):
                        continue
                    raise LLMError(f"{self.label} transport error (model={model}): {type(exc).__name__}") from exc

                if response.status_code < 400:
                    try:
                        data = response.json()
                    except ValueError as exc:
                        raise LLMError(f"{self.label} returned non-JSON body (model={model})") from exc
                    if not isinstance(data, dict):
                        raise LLMError(f"{self.label} returned unexpected body (model={model})")
                    return data

                message = _error_message(response)
                logger.warning(
                    "%s API error status=%s attempt=%s model=%s",
                    self.label,
                    response.status_code,
                    attempt + 1,
                    model,
                )
                if has_retry and is_retryable_status(response.status_code):
                    if sleep_before_retry(response.headers, attempt, deadline):
                        continue
                raise LLMError(
                    f"{self.label} request failed (status={response.status_code}, model={model}): {message}"
                )

        raise LLMError(f"{self.label} request failed after {attempts} attempt(s) (model={model})")


class OpenAIInterpreter(_HttpProvider):
    """OpenAI Chat Completions with ``response_format=json_object``."""

    provider = AIProvider.OPENAI

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        *,
        base_url: str = "https://api.openai.com",
        temperature: float = 0.2,
        max_tokens: int = 1000,
        client: httpx.Client | None = None,
        max_attempts: int | None = None,
    ) -> None:
        super().__init__(client=client, max_attempts=max_attempts)
        if not api_key:
            raise LLMError("OPENAI_API_KEY not configured")
        self.api_key = api_key
        self.model = model
        self.base_url = _normalize_openai_base_url(base_url)
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: AIProviderSettings, **kwargs: Any) -> "OpenAIInterpreter":
        return cls(
            settings.api_key("openai") or "",
            settings.openai_model,
            base_url=settings.openai_base_url,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            **kwargs,
        )

    def interpret(self, request: InterpretationRequest) -> ProviderResponse:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(request)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        data = self._post_json(
            f"{self.base_url}/v1/chat/completions", headers=headers, payload=payload, model=self.model
        )

        choices = _as_list(data.get("choices"))
        message = _as_dict(_as_dict(choices[0]).get("message")) if choices else {}
        content = message.get("content")
        if not content:
            raise LLMError("Empty response from OpenAI")

        return ProviderResponse(
            model=self.model,
            payload=parse_payload(content, source="OpenAI"),
            token_usage=_token_count(data.get("usage"), "total_tokens"),
        )


class AnthropicInterpreter(_HttpProvider):
    """Anthropic Messages API; replies may wrap the JSON in a code fence."""

    provider = AIProvider.ANTHROPIC

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        *,
        base_url: str = "https://api.anthropic.com",
        temperature: float = 0.2,
        max_tokens: int = 1000,
        client: httpx.Client | None = None,
        max_attempts: int | None = None,
    ) -> None:
        super().__init__(client=client, max_attempts=max_attempts)
        if not api_key:
            raise LLMError("ANTHROPIC_API_KEY not configured")
        self.api_key = api_key
        self.model = model
        self.base_url = (base_url or "").rstrip("/") or "https://api.anthropic.com"
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: AIProviderSettings, **kwargs: Any) -> "AnthropicInterpreter":
        return cls(
            settings.api_key("anthropic") or "",
            settings.anthropic_model,
            base_url=settings.anthropic_base_url,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            **kwargs,
        )

    def interpret(self, request: InterpretationRequest) -> ProviderResponse:
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": build_user_prompt(request)}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
            "content-type": "application/json",
        }
        data = self._post_json(f"{self.base_url}/v1/messages", headers=headers, payload=payload, model=self.model)

        text = None
        for block in _as_list(data.get("content")):
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text")
                break
        if not text:
            raise LLMError("Empty response from Anthropic")

        return ProviderResponse(
            model=self.model,
            payload=parse_payload(text, source="Anthropic"),
            token_usage=_token_count(data.get("usage"), "input_tokens", "output_tokens"),
        )


class GoogleInterpreter(_HttpProvider):
    """Gemini ``generateContent``; tries each configured model in order."""

    provider = AIProvider.GOOGLE

    def __init__(
        self,
        api_key: str,
        models: list[str] | tuple[str, ...] = ("gemini-2.5-flash", "gemini-2.5-flash-lite"),
        *,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
        temperature: float = 0.2,
        max_tokens: int = 1000,
        client: httpx.Client | None = None,
        max_attempts: int | None = None,
    ) -> None:
        super().__init__(client=client, max_attempts=max_attempts)
        if not api_key:
            raise LLMError("GOOGLE_AI_API_KEY not configured")
        if not models:
            raise LLMError("No Google models configured")
        self.api_key = api_key
        self.models = list(models)
        self.model = self.models[0]
        self.base_url = (base_url or "").rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: AIProviderSettings, **kwargs: Any) -> "GoogleInterpreter":
        return cls(
            settings.api_key("google") or "",
            settings.google_models,
            base_url=settings.google_base_url,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            **kwargs,
        )

    def _generate(self, model: str, request: InterpretationRequest) -> ProviderResponse:
        payload = {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [{"role": "user", "parts": [{"text": build_user_prompt(request)}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_tokens,
                "responseMimeType": "application/json",
            },
        }
        # Header auth keeps the key out of URLs that end up in logs.
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        data = self._post_json(
            f"{self.base_url}/{model}:generateContent", headers=headers, payload=payload, model=model
        )

        candidates = _as_list(data.get("candidates"))
        content = _as_dict(_as_dict(candidates[0]).get("content")) if candidates else {}
        parts = _as_list(content.get("parts"))
        text = _as_dict(parts[0]).get("text") if parts else None
        if not text:
            raise LLMError(f"Empty response from Google ({model})")

        return ProviderResponse(
            model=model,
            payload=parse_payload(text, source=f"Google ({model})"),
            token_usage=_token_count(data.get("usageMetadata"), "totalTokenCount"),
        )

    def interpret(self, request: InterpretationRequest) -> ProviderResponse:
        last_error: LLMError | None = None
        for model in self.models:
            try:
                return self._generate(model, request)
            except LLMError as exc:
                last_error = exc
                logger.warning("Google model %s failed: %s", model, exc)
        raise LLMError(f"Google AI failed (tried {', '.join(self.models)}): {last_error}")


def _normalize_openai_base_url(base_url: str | None) -> str:
    normalized = (base_url or "").strip().rstrip("/")
    if normalized.endswith("/v1"):
        normalized = normalized[:-3].rstrip("/")
    return normalized or "https://api.openai.com"


__all__ = [
    "AnthropicInterpreter",
    "GoogleInterpreter",
    "InterpretationProvider",
    "OpenAIInterpreter",
    "ProviderResponse",
    "parse_payload",
]
