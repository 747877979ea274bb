"""OpenRouter adapter: OpenAI format plus attribution headers."""

from __future__ import annotations

from ..provider.catalog import ProviderId
from .openai_compatible import OpenAICompatibleAdapter


class OpenRouterAdapter(OpenAICompatibleAdapter):
    provider = ProviderId.OPENROUTER

    def __init__(
        self,
        *,
        timeout: float | None = None,
        base_url: str | None = None,
        referer: str | None = None,
        title: str | None = None,
    ) -> None:
        super().__init__(timeout=timeout, base_url=base_url)
        self._referer = referer
        self._title = title

    def headers(self, secret: str) -> dict[str, str]:
        from keyrelay.core.config import config

        headers = super().headers(secret)
        headers["HTTP-Referer"] = self._referer or config.openrouter_referer
        headers["X-Title"] = self._title or config.openrouter_title
        return headers
