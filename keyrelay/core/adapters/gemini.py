"""Google Gemini adapter (native generateContent API)."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

from ..error_types import FailureKind
from ..provider.catalog import ProviderId
from ..provider.model_info import ModelDescriptor, parse_model_modes
from .base import (
    AdapterResponse,
    GenerateRequest,
    ModelListResult,
    ProviderAdapter,
    TokenUsage,
)


def _error_details(body: str) -> tuple[str | None, set[str]]:
    """Return (``error.status``, set of ``error.details[].reason``) from a Gemini error body."""
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return None, set()
    error = data.get("error") if isinstance(data, dict) else None
    if not isinstance(error, dict):
        return None, set()

    reasons = set()
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and isinstance(detail.get("reason"), str):
            reasons.add(detail["reason"])
    status = error.get("status")
    return (status if isinstance(status, str) else None), reasons


def parse_gemini_model(entry: Any) -> ModelDescriptor | None:
    if not isinstance(entry, dict):
        return None
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        return None

    methods = entry.get("supportedGenerationMethods")
    if isinstance(methods, list) and "generateContent" not in methods:
        return None

    context_length = entry.get("inputTokenLimit")
    return ModelDescriptor(
        id=name.removeprefix("models/"),
        name=entry.get("displayName") if isinstance(entry.get("displayName"), str) else None,
        description=(
            entry.get("description") if isinstance(entry.get("description"), str) else None
        ),
        context_length=context_length if isinstance(context_length, int) else None,
        modes=parse_model_modes(methods if isinstance(methods, list) else None),
    )


def _candidate_text(data: dict[str, Any]) -> str | None:
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) else None


class GeminiAdapter(ProviderAdapter):
    """The key travels as the ``key`` query parameter."""

    provider = ProviderId.GEMINI

    def classify_error(self, status_code: int, body: str) -> FailureKind:
        status, reasons = _error_details(body)
        if status == "RESOURCE_EXHAUSTED":
            return FailureKind.RATE_LIMITED
        if "API_KEY_INVALID" in reasons:
            return FailureKind.AUTH_FAILED
        return super().classify_error(status_code, body)

    def build_payload(self, request: GenerateRequest) -> dict[str, Any]:
        # The system prompt is folded into the user turn
        text = request.prompt
        if request.system_prompt:
            text = f"{request.system_prompt}\n\n{request.prompt}"
        return {
            "contents": [{"role": "user", "parts": [{"text": text}]}],
            "generationConfig": {
                "maxOutputTokens": request.max_tokens,
                "temperature": request.temperature,
            },
        }

    async def list_models(self, secret: str) -> ModelListResult:
        response = await self._send("GET", f"{self.base_url}/models", params={"key": secret})
        entries = self._json(response).get("models")
        if not isinstance(entries, list):
            return ModelListResult()
        return ModelListResult(
            models=tuple(m for m in (parse_gemini_model(e) for e in entries) if m is not None)
        )

    async def generate(self, secret: str, request: GenerateRequest) -> AdapterResponse:
        response = await self._send(
            "POST",
            f"{self.base_url}/models/{request.model}:generateContent",
            params={"key": secret},
            headers={"Content-Type": "application/json"},
            json_body=self.build_payload(request),
        )
        data = self._json(response)
        content = _candidate_text(data)
        if not content or not content.strip():
            raise self._empty(response.status_code)

        usage = None
        metadata = data.get("usageMetadata")
        if isinstance(metadata, dict):
            usage = TokenUsage(
                prompt_tokens=metadata.get("promptTokenCount"),
                completion_tokens=metadata.get("candidatesTokenCount"),
                total_tokens=metadata.get("totalTokenCount"),
            )
        return AdapterResponse(content=content, model=request.model, usage=usage)

    async def stream(self, secret: str, request: GenerateRequest) -> AsyncIterator[str]:
        async for event in self._stream_sse(
            f"{self.base_url}/models/{request.model}:streamGenerateContent",
            params={"alt": "sse", "key": secret},
            headers={"Content-Type": "application/json"},
            json_body=self.build_payload(request),
        ):
            text = _candidate_text(event)
            if text:
                yield text
