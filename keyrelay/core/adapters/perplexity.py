"""Perplexity adapter.

Perplexity has no dependable public model listing, so an authenticated
listing call that yields nothing stands in the catalog's Sonar models.
"""

from __future__ import annotations

from ..error_types import FailureKind
from ..exceptions import AdapterError
from ..provider.catalog import ProviderId
from .base import ModelListResult
from .openai_compatible import OpenAICompatibleAdapter

# Shortest plausible Perplexity key when the listing endpoint is missing
MIN_KEY_LENGTH_WITHOUT_LISTING = 21


class PerplexityAdapter(OpenAICompatibleAdapter):
    provider = ProviderId.PERPLEXITY

    def _looks_like_key(self, secret: str) -> bool:
        prefix = self.descriptor.key_prefix or ""
        return secret.startswith(prefix) and len(secret) >= MIN_KEY_LENGTH_WITHOUT_LISTING

    async def list_models(self, secret: str) -> ModelListResult:
        try:
            response = await self._send("GET", self.models_url, headers=self.headers(secret))
        except AdapterError as e:
            if e.kind is FailureKind.AUTH_FAILED:
                raise AdapterError(
                    FailureKind.AUTH_FAILED,
                    f"{self.display_name}: Invalid API key ({e.status_code})",
                    status_code=e.status_code,
                ) from e
            if e.status_code == 404:
                if self._looks_like_key(secret):
                    return self._catalog_models()
                raise AdapterError(
                    FailureKind.AUTH_FAILED,
                    f'{self.display_name}: Invalid key format. Keys should start with '
                    f'"{self.descriptor.key_prefix}"',
                    status_code=404,
                ) from e
            raise

        try:
            models = self.parse_models(self._json(response))
        except AdapterError:
            models = ()
        return ModelListResult(models=models) if models else self._catalog_models()
