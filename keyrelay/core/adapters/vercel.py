"""Vercel AI Gateway adapter."""

from __future__ import annotations

from ..exceptions import AdapterError
from ..provider.catalog import ProviderId
from .base import ModelListResult
from .openai_compatible import OpenAICompatibleAdapter

GATEWAY_MODELS_URL = "https://ai-gateway.vercel.sh/v1/models"


class VercelAdapter(OpenAICompatibleAdapter):
    """Model listing tries the gateway host first, then the legacy API host."""

    provider = ProviderId.VERCEL

    def __init__(
        self,
        *,
        timeout: float | None = None,
        base_url: str | None = None,
        gateway_models_url: str = GATEWAY_MODELS_URL,
    ) -> None:
        super().__init__(timeout=timeout, base_url=base_url)
        self.gateway_models_url = gateway_models_url

    async def list_models(self, secret: str) -> ModelListResult:
        last_error: AdapterError | None = None
        for url in (self.gateway_models_url, self.models_url):
            try:
                response = await self._send("GET", url, headers=self.headers(secret))
                models = self.parse_models(self._json(response))
            except AdapterError as e:
                last_error = e
                continue
            if models:
                return ModelListResult(models=models)

        if last_error is not None:
            raise last_error
        return ModelListResult()
