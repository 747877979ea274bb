"""Adapters for vendors that speak the OpenAI chat completions format."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from ..provider.catalog import ProviderId
from ..provider.model_info import ModelDescriptor, ModelPricing
from .base import (
    AdapterResponse,
    GenerateRequest,
    ModelListResult,
    ProviderAdapter,
    TokenUsage,
)


def _per_million(value: Any) -> float | None:
    """Convert a per-token price (often a decimal string) to a per-million price."""
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price * 1_000_000 if price >= 0 else None


def parse_openai_model(entry: Any) -> ModelDescriptor | None:
    """Build a ModelDescriptor from one ``/models`` ``data`` entry."""
    if not isinstance(entry, dict):
        return None
    model_id = entry.get("id")
    if not isinstance(model_id, str) or not model_id:
        return None

    pricing_raw = entry.get("pricing")
    pricing = ModelPricing()
    if isinstance(pricing_raw, dict):
        pricing = ModelPricing(
            input_per_million=_per_million(pricing_raw.get("prompt")),
            output_per_million=_per_million(pricing_raw.get("completion")),
        )

    context_length = entry.get("context_length")
    return ModelDescriptor(
        id=model_id,
        name=entry.get("name") if isinstance(entry.get("name"), str) else None,
        description=(
            entry.get("description") if isinstance(entry.get("description"), str) else None
        ),
        context_length=context_length if isinstance(context_length, int) else None,
        pricing=pricing,
    )


def parse_openai_usage(data: dict[str, Any]) -> TokenUsage | None:
    usage = data.get("usage")
    if not isinstance(usage, dict):
        return None
    return TokenUsage(
        prompt_tokens=usage.get("prompt_tokens"),
        completion_tokens=usage.get("completion_tokens"),
        total_tokens=usage.get("total_tokens"),
    )


class OpenAICompatibleAdapter(ProviderAdapter):
    """Bearer-token auth, ``GET /models`` and ``POST /chat/completions``."""

    def headers(self, secret: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {secret}",
            "Content-Type": "application/json",
        }

    @property
    def models_url(self) -> str:
        return f"{self.base_url}/models"

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def build_payload(self, request: GenerateRequest, *, stream: bool = False) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})

        payload: dict[str, Any] = {
            "model": request.model,
            "messages": messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if stream:
            payload["stream"] = True
        return payload

    def parse_models(self, data: dict[str, Any]) -> tuple[ModelDescriptor, ...]:
        entries = data.get("data")
        if not isinstance(entries, list):
            return ()
        return tuple(m for m in (parse_openai_model(e) for e in entries) if m is not None)

    async def list_models(self, secret: str) -> ModelListResult:
        response = await self._send("GET", self.models_url, headers=self.headers(secret))
        return ModelListResult(models=self.parse_models(self._json(response)))

    async def generate(self, secret: str, request: GenerateRequest) -> AdapterResponse:
        response = await self._send(
            "POST",
            self.chat_url,
            headers=self.headers(secret),
            json_body=self.build_payload(request),
        )
        data = self._json(response)

        content = None
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict):
                content = message.get("content")

        if not isinstance(content, str) or not content.strip():
            raise self._empty(response.status_code)

        model = data.get("model") if isinstance(data.get("model"), str) else request.model
        return AdapterResponse(content=content, model=model, usage=parse_openai_usage(data))

    async def stream(self, secret: str, request: GenerateRequest) -> AsyncIterator[str]:
        async for event in self._stream_sse(
            self.chat_url,
            headers=self.headers(secret),
            json_body=self.build_payload(request, stream=True),
        ):
            choices = event.get("choices")
            if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
                continue
            delta = choices[0].get("delta")
            if isinstance(delta, dict):
                text = delta.get("content")
                if isinstance(text, str) and text:
                    yield text


class DeepSeekAdapter(OpenAICompatibleAdapter):
    provider = ProviderId.DEEPSEEK
