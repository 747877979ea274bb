"""Provider adapters, one per supported vendor."""

from ..provider.catalog import ProviderId
from .base import (
    AdapterResponse,
    GenerateRequest,
    ModelListResult,
    ProviderAdapter,
    TokenUsage,
    classify_status,
    parse_retry_after,
)
from .gemini import GeminiAdapter
from .openai_compatible import DeepSeekAdapter, OpenAICompatibleAdapter
from .openrouter import OpenRouterAdapter
from .perplexity import PerplexityAdapter
from .vercel import VercelAdapter

AdapterMap = dict[ProviderId, ProviderAdapter]


def default_adapters() -> AdapterMap:
    """Build one adapter per provider with default settings."""
    return {
        ProviderId.GEMINI: GeminiAdapter(),
        ProviderId.DEEPSEEK: DeepSeekAdapter(),
        ProviderId.OPENROUTER: OpenRouterAdapter(),
        ProviderId.VERCEL: VercelAdapter(),
        ProviderId.PERPLEXITY: PerplexityAdapter(),
    }


ADAPTERS: AdapterMap = default_adapters()


def get_adapter(provider: str | ProviderId) -> ProviderAdapter:
    """Return the default adapter for ``provider``.

    Raises:
        ValueError: If the provider is unknown.
    """
    return ADAPTERS[ProviderId.parse(provider)]


__all__ = [
    "ADAPTERS",
    "AdapterMap",
    "AdapterResponse",
    "DeepSeekAdapter",
    "GeminiAdapter",
    "GenerateRequest",
    "ModelListResult",
    "OpenAICompatibleAdapter",
    "OpenRouterAdapter",
    "PerplexityAdapter",
    "ProviderAdapter",
    "TokenUsage",
    "VercelAdapter",
    "classify_status",
    "default_adapters",
    "get_adapter",
    "parse_retry_after",
]
